from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from ..models.order import (
    OrderType, Company, PaymentMethod, PaymentTerms, SOStatus, FulfillingStatus,
    DispatchStatus, InstallationStatus, PaymentReceived, BillStatus, CompletionStatus,
)
from ..utils.date_utils import parse_date
from .common import CamelModel
from .user import UserSummary

GST_INCLUDED = "including"

# Wire names a partial update may touch; anything else in the body is ignored.
EDITABLE_FIELDS = (
    "soDate", "dispatchFrom", "dispatchDate", "name", "city", "state", "pinCode",
    "contactNo", "alterno", "customerEmail", "customername", "products", "total",
    "gstno", "freightstatus", "installchargesstatus", "paymentCollected",
    "paymentMethod", "paymentDue", "neftTransactionId", "chequeId", "freightcs",
    "orderType", "installation", "installationStatus", "remarksByInstallation",
    "dispatchStatus", "salesPerson", "report", "company", "transporter",
    "transporterDetails", "docketNo", "receiptDate", "shippingAddress",
    "billingAddress", "sameAddress", "invoiceNo", "invoiceDate", "fulfillingStatus",
    "remarksByProduction", "remarksByAccounts", "paymentReceived", "billNumber",
    "piNumber", "remarksByBilling", "verificationRemarks", "billStatus",
    "completionStatus", "fulfillmentDate", "remarks", "sostatus", "gemOrderNumber",
    "deliveryDate", "deliveredDate", "demoDate", "paymentTerms", "creditDays",
    "actualFreight", "stockStatus",
)

MONEY_FIELDS = (
    "total", "payment_collected", "payment_due", "freight_charges",
    "installation_charges", "actual_freight",
)


def split_list(value: Any) -> Optional[List[str]]:
    """Comma-separated string or list -> list of trimmed non-empty strings."""
    if value is None:
        return None
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    return [str(item).strip() for item in items if item is not None and str(item).strip()]


def normalize_gst(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.lower() == GST_INCLUDED:
        return GST_INCLUDED
    try:
        rate = float(text.rstrip("%"))
    except ValueError:
        raise ValueError("gst must be a number or 'including'")
    if rate < 0:
        raise ValueError("gst must not be negative")
    return str(int(rate)) if rate.is_integer() else str(rate)


def coerce_number(value: Any) -> Any:
    """Spreadsheet cells arrive as text; blanks and 'N/A' mean absent."""
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text or text.upper() == "N/A":
            return None
        return text
    return value


def coerce_int(value: Any) -> Any:
    value = coerce_number(value)
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def coerce_date(value: Any) -> Optional[datetime]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"'{value}' is not a recognizable date")
    return parsed


def coerce_bool(value: Any) -> Any:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("yes", "y", "true", "1"):
            return True
        if text in ("no", "n", "false", "0", ""):
            return False
    return value


class ProductIn(CamelModel):
    """A product line as submitted; required-field checks happen after defaults are applied."""

    product_type: Optional[str] = None
    size: Optional[str] = None
    spec: Optional[str] = None
    qty: Optional[int] = None
    unit_price: Optional[float] = None
    gst: Optional[str] = None
    brand: Optional[str] = None
    warranty: Optional[str] = None
    serial_nos: Optional[List[str]] = None
    model_nos: Optional[List[str]] = None
    product_code: Optional[List[str]] = None

    @field_validator("product_type", "size", "spec", "brand", "warranty", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("qty", mode="before")
    @classmethod
    def parse_qty(cls, v):
        return coerce_int(v)

    @field_validator("unit_price", mode="before")
    @classmethod
    def parse_price(cls, v):
        return coerce_number(v)

    @field_validator("gst", mode="before")
    @classmethod
    def parse_gst(cls, v):
        return normalize_gst(v)

    @field_validator("serial_nos", "model_nos", "product_code", mode="before")
    @classmethod
    def parse_lists(cls, v):
        return split_list(v)


class OrderFields(CamelModel):
    """Fields shared by create and edit."""

    name: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, alias="customername")
    contact_no: Optional[str] = None
    alternate_no: Optional[str] = Field(default=None, alias="alterno")
    customer_email: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pin_code: Optional[str] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    same_address: Optional[bool] = None
    gst_no: Optional[str] = Field(default=None, alias="gstno")

    order_type: Optional[OrderType] = None
    company: Optional[Company] = None
    dispatch_from: Optional[str] = None

    total: Optional[float] = None
    payment_collected: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    payment_due: Optional[float] = None
    payment_terms: Optional[PaymentTerms] = None
    credit_days: Optional[int] = None
    freight_charges: Optional[float] = Field(default=None, alias="freightcs")
    freight_status: Optional[str] = Field(default=None, alias="freightstatus")
    installation_charges: Optional[float] = Field(default=None, alias="installation")
    install_charges_status: Optional[str] = Field(default=None, alias="installchargesstatus")
    neft_transaction_id: Optional[str] = None
    cheque_id: Optional[str] = None
    gem_order_number: Optional[str] = None
    sales_person: Optional[str] = None
    reporting_manager: Optional[str] = Field(default=None, alias="report")
    remarks: Optional[str] = None

    so_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    demo_date: Optional[datetime] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator(*MONEY_FIELDS, mode="before", check_fields=False)
    @classmethod
    def parse_money(cls, v):
        return coerce_number(v)

    @field_validator("credit_days", mode="before")
    @classmethod
    def parse_credit_days(cls, v):
        return coerce_int(v)

    @field_validator("so_date", "delivery_date", "demo_date", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return coerce_date(v)

    @field_validator("same_address", mode="before")
    @classmethod
    def parse_same_address(cls, v):
        return coerce_bool(v)

    @field_validator("dispatch_from", "customer_email", mode="before")
    @classmethod
    def strip_value(cls, v):
        return v.strip() if isinstance(v, str) else v


class OrderCreate(OrderFields):
    products: List[ProductIn] = []
    fulfilling_status: Optional[FulfillingStatus] = None
    assigned_to: Optional[int] = None


class OrderUpdate(OrderFields):
    """Partial update. Products stay raw so each line can be merged with its stored counterpart."""

    products: Optional[List[Dict[str, Any]]] = None

    dispatch_date: Optional[datetime] = None
    receipt_date: Optional[datetime] = None
    invoice_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    fulfillment_date: Optional[datetime] = None

    sostatus: Optional[SOStatus] = None
    fulfilling_status: Optional[FulfillingStatus] = None
    dispatch_status: Optional[DispatchStatus] = None
    installation_status: Optional[InstallationStatus] = None
    payment_received: Optional[PaymentReceived] = None
    bill_status: Optional[BillStatus] = None
    completion_status: Optional[CompletionStatus] = None

    transporter: Optional[str] = None
    transporter_details: Optional[str] = None
    docket_no: Optional[str] = None
    invoice_no: Optional[str] = None
    bill_number: Optional[str] = None
    pi_number: Optional[str] = None
    stock_status: Optional[str] = None
    actual_freight: Optional[float] = None
    remarks_by_production: Optional[str] = None
    remarks_by_installation: Optional[str] = None
    remarks_by_accounts: Optional[str] = None
    remarks_by_billing: Optional[str] = None
    verification_remarks: Optional[str] = None

    @field_validator("dispatch_date", "receipt_date", "invoice_date", "delivered_date",
                     "fulfillment_date", mode="before")
    @classmethod
    def parse_stage_dates(cls, v):
        return coerce_date(v)


class ProductOut(CamelModel):
    product_type: str
    size: Optional[str] = None
    spec: Optional[str] = None
    qty: int
    unit_price: float
    gst: str
    brand: Optional[str] = None
    warranty: Optional[str] = None
    serial_nos: List[str] = []
    model_nos: List[str] = []
    product_code: List[str] = []

    @field_validator("serial_nos", "model_nos", "product_code", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class OrderResponse(CamelModel):
    id: int
    order_id: str

    name: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, alias="customername")
    contact_no: Optional[str] = None
    alternate_no: Optional[str] = Field(default=None, alias="alterno")
    customer_email: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pin_code: Optional[str] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    same_address: bool = False
    gst_no: Optional[str] = Field(default=None, alias="gstno")

    order_type: str
    company: Optional[str] = None
    dispatch_from: Optional[str] = None
    products: List[ProductOut] = []

    total: Optional[float] = None
    payment_collected: Optional[float] = None
    payment_method: Optional[str] = None
    payment_due: Optional[float] = None
    payment_terms: Optional[str] = None
    credit_days: Optional[int] = None
    freight_charges: Optional[float] = Field(default=None, alias="freightcs")
    freight_status: Optional[str] = Field(default=None, alias="freightstatus")
    installation_charges: Optional[float] = Field(default=None, alias="installation")
    install_charges_status: Optional[str] = Field(default=None, alias="installchargesstatus")
    actual_freight: Optional[float] = None
    neft_transaction_id: Optional[str] = None
    cheque_id: Optional[str] = None
    gem_order_number: Optional[str] = None
    sales_person: Optional[str] = None
    reporting_manager: Optional[str] = Field(default=None, alias="report")

    sostatus: str
    fulfilling_status: Optional[str] = None
    dispatch_status: Optional[str] = None
    installation_status: Optional[str] = None
    payment_received: Optional[str] = None
    bill_status: Optional[str] = None
    completion_status: Optional[str] = None

    so_date: Optional[datetime] = None
    dispatch_date: Optional[datetime] = None
    receipt_date: Optional[datetime] = None
    invoice_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    demo_date: Optional[datetime] = None
    fulfillment_date: Optional[datetime] = None

    transporter: Optional[str] = None
    transporter_details: Optional[str] = None
    docket_no: Optional[str] = None
    invoice_no: Optional[str] = None
    bill_number: Optional[str] = None
    pi_number: Optional[str] = None
    stock_status: Optional[str] = None
    remarks: Optional[str] = None
    remarks_by_production: Optional[str] = None
    remarks_by_installation: Optional[str] = None
    remarks_by_accounts: Optional[str] = None
    remarks_by_billing: Optional[str] = None
    verification_remarks: Optional[str] = None
    po_file_path: Optional[str] = None

    created_by: Optional[UserSummary] = None
    assigned_to: Optional[UserSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
