"""
Sales order aggregate: the order header, its product lines and the status
axes each pipeline stage advances independently.
"""
import enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Numeric, ForeignKey, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import BaseModel


class OrderType(str, enum.Enum):
    B2G = "B2G"
    B2C = "B2C"
    B2B = "B2B"
    DEMO = "Demo"
    REPLACEMENT = "Replacement"
    STOCK_OUT = "Stock Out"


class Company(str, enum.Enum):
    PROMARK = "ProMark"
    PROMINE = "ProMine"
    OTHERS = "Others"


class DispatchLocation(str, enum.Enum):
    PATNA = "Patna"
    BAREILLY = "Bareilly"
    RANCHI = "Ranchi"
    MORINDA = "Morinda"
    LUCKNOW = "Lucknow"
    DELHI = "Delhi"
    JAIPUR = "Jaipur"
    RAJASTHAN = "Rajasthan"


# Depots that ship from stock; everything else goes through the factory.
DEPOT_FULFILLMENT_LOCATIONS = [
    DispatchLocation.PATNA.value,
    DispatchLocation.BAREILLY.value,
    DispatchLocation.RANCHI.value,
    DispatchLocation.LUCKNOW.value,
    DispatchLocation.DELHI.value,
    DispatchLocation.JAIPUR.value,
    DispatchLocation.RAJASTHAN.value,
]
FACTORY_LOCATION = DispatchLocation.MORINDA.value


class PaymentMethod(str, enum.Enum):
    CASH = "Cash"
    NEFT = "NEFT"
    RTGS = "RTGS"
    CHEQUE = "Cheque"
    UPI = "UPI"


class PaymentTerms(str, enum.Enum):
    FULL_ADVANCE = "100% Advance"
    PARTIAL_ADVANCE = "Partial Advance"
    CREDIT = "Credit"


class SOStatus(str, enum.Enum):
    PENDING_FOR_APPROVAL = "Pending for Approval"
    ACCOUNTS_APPROVED = "Accounts Approved"
    APPROVED = "Approved"


class FulfillingStatus(str, enum.Enum):
    PENDING = "Pending"
    FULFILLED = "Fulfilled"
    NOT_FULFILLED = "Not Fulfilled"
    PARTIAL_DISPATCH = "Partial Dispatch"


class DispatchStatus(str, enum.Enum):
    NOT_DISPATCHED = "Not Dispatched"
    DISPATCHED = "Dispatched"
    DOCKET_AWAITED = "Docket Awaited Dispatched"
    DELIVERED = "Delivered"


class InstallationStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    HOLD = "Hold"
    SITE_NOT_READY = "Site Not Ready"


class PaymentReceived(str, enum.Enum):
    NOT_RECEIVED = "Not Received"
    RECEIVED = "Received"


class BillStatus(str, enum.Enum):
    PENDING = "Pending"
    UNDER_BILLING = "Under Billing"
    BILLING_COMPLETE = "Billing Complete"


class CompletionStatus(str, enum.Enum):
    IN_PROGRESS = "In Progress"
    COMPLETE = "Complete"


class Order(BaseModel):
    __tablename__ = "orders"

    order_id = Column(String(32), unique=True, nullable=False, index=True)

    # Customer / shipping
    name = Column(String(255))
    customer_name = Column(String(255), index=True)
    contact_no = Column(String(50))
    alternate_no = Column(String(50))
    customer_email = Column(String(255))
    city = Column(String(100))
    state = Column(String(100))
    pin_code = Column(String(20))
    shipping_address = Column(Text)
    billing_address = Column(Text)
    same_address = Column(Boolean, default=False, nullable=False)
    gst_no = Column(String(50))

    # Classification
    order_type = Column(String(20), default=OrderType.B2C.value, nullable=False, index=True)
    company = Column(String(20))
    dispatch_from = Column(String(50), index=True)

    # Commercial
    total = Column(Numeric(14, 2), default=0)
    payment_collected = Column(Numeric(14, 2))
    payment_method = Column(String(20))
    payment_due = Column(Numeric(14, 2))
    payment_terms = Column(String(30), index=True)
    credit_days = Column(Integer)
    freight_charges = Column(Numeric(14, 2))
    freight_status = Column(String(30), default="Extra")
    installation_charges = Column(Numeric(14, 2))
    install_charges_status = Column(String(30), default="Extra")
    actual_freight = Column(Numeric(14, 2))
    neft_transaction_id = Column(String(100))
    cheque_id = Column(String(100))
    gem_order_number = Column(String(100))
    sales_person = Column(String(255))
    reporting_manager = Column(String(255))

    # Pipeline status axes
    sostatus = Column(String(30), default=SOStatus.PENDING_FOR_APPROVAL.value, nullable=False, index=True)
    fulfilling_status = Column(String(30), default=FulfillingStatus.PENDING.value, index=True)
    dispatch_status = Column(String(40), default=DispatchStatus.NOT_DISPATCHED.value, index=True)
    installation_status = Column(String(30), default=InstallationStatus.PENDING.value, index=True)
    payment_received = Column(String(20), default=PaymentReceived.NOT_RECEIVED.value, index=True)
    bill_status = Column(String(30), default=BillStatus.PENDING.value, index=True)
    completion_status = Column(String(20), default=CompletionStatus.IN_PROGRESS.value)

    # Stage dates
    so_date = Column(DateTime(timezone=True), server_default=func.now())
    dispatch_date = Column(DateTime(timezone=True))
    receipt_date = Column(DateTime(timezone=True))
    invoice_date = Column(DateTime(timezone=True))
    delivery_date = Column(DateTime(timezone=True))
    delivered_date = Column(DateTime(timezone=True))
    demo_date = Column(DateTime(timezone=True))
    fulfillment_date = Column(DateTime(timezone=True))

    # Downstream stage details
    transporter = Column(String(255))
    transporter_details = Column(Text)
    docket_no = Column(String(100))
    invoice_no = Column(String(100))
    bill_number = Column(String(100))
    pi_number = Column(String(100))
    stock_status = Column(String(50))
    remarks = Column(Text)
    remarks_by_production = Column(Text)
    remarks_by_installation = Column(Text)
    remarks_by_accounts = Column(Text)
    remarks_by_billing = Column(Text)
    verification_remarks = Column(Text)

    po_file_path = Column(String(500))

    # Ownership
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)

    created_by = relationship("User", foreign_keys=[created_by_id], lazy="joined")
    assigned_to = relationship("User", foreign_keys=[assigned_to_id], lazy="joined")
    products = relationship(
        "OrderProduct",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderProduct.position",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order(id={self.id}, order_id='{self.order_id}', sostatus='{self.sostatus}')>"


class OrderProduct(BaseModel):
    """A product line; exists only as part of its order."""

    __tablename__ = "order_products"

    order_pk = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    product_type = Column(String(100), nullable=False)
    size = Column(String(100), default="N/A")
    spec = Column(String(255), default="N/A")
    qty = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    gst = Column(String(16), nullable=False)
    brand = Column(String(100), default="")
    warranty = Column(String(50))
    serial_nos = Column(JSON, default=list)
    model_nos = Column(JSON, default=list)
    product_code = Column(JSON, default=list)

    order = relationship("Order", back_populates="products")

    def __repr__(self):
        return f"<OrderProduct(order_pk={self.order_pk}, type='{self.product_type}', qty={self.qty})>"
