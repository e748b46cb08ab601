"""
Order entity rules: required fields, defaults and derived money fields.

One rule set serves single create, edit and bulk import.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..core.exceptions import ValidationError
from ..models.order import (
    OrderType, DispatchLocation, FulfillingStatus, FACTORY_LOCATION, OrderProduct,
)
from ..repositories.user_repo import UserRepository
from ..schemas.order import OrderCreate, ProductIn, GST_INCLUDED
from ..utils.date_utils import utc_now

IFPD = "IFPD"
WARRANTY_BRAND = "Promark"
DEFAULT_WARRANTY = "1 Year"
TENDER_WARRANTY = "As Per Tender"
BRAND_WARRANTY = "3 Years"
DEFAULT_GST = "18"
NOT_APPLICABLE = "N/A"

VALID_DISPATCH_LOCATIONS = {location.value for location in DispatchLocation}
CENTS = Decimal("0.01")


@dataclass
class PreparedOrder:
    """Column values for a new order and its product lines."""
    values: Dict[str, Any]
    products: List[Dict[str, Any]] = field(default_factory=list)


def validation_messages(exc: PydanticValidationError) -> List[str]:
    """Flatten pydantic errors into ``field: problem`` strings."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        message = err.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def parse_payload(model: Type[BaseModel], data: Mapping[str, Any]) -> BaseModel:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_messages(validation_messages(exc))


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def gst_rate(gst: Optional[str]) -> Decimal:
    """'including' means the unit price already carries tax."""
    if gst is None or str(gst).strip().lower() == GST_INCLUDED:
        return Decimal("0")
    return to_decimal(gst)


def line_amount(qty: Any, unit_price: Any, gst: Optional[str]) -> Decimal:
    return to_decimal(qty) * to_decimal(unit_price) * (1 + gst_rate(gst) / 100)


def compute_total(products: Iterable[Mapping[str, Any]], freight: Any = None, installation: Any = None) -> Decimal:
    """Σ qty × unitPrice × (1 + gst/100) + freight + installation, rounded to cents."""
    subtotal = sum(
        (line_amount(p.get("qty"), p.get("unit_price"), p.get("gst")) for p in products),
        Decimal("0"),
    )
    total = subtotal + to_decimal(freight) + to_decimal(installation)
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_payment_due(total: Any, collected: Any) -> Decimal:
    return (to_decimal(total) - to_decimal(collected)).quantize(CENTS, rounding=ROUND_HALF_UP)


def default_warranty(order_type: Optional[str], product_type: Optional[str], brand: Optional[str]) -> str:
    if order_type == OrderType.B2G.value:
        return TENDER_WARRANTY
    if product_type == IFPD and brand == WARRANTY_BRAND:
        return BRAND_WARRANTY
    return DEFAULT_WARRANTY


def default_fulfilling_status(order_type: Optional[str], dispatch_from: Optional[str]) -> str:
    """Demo units and depot dispatches ship from stock; factory orders wait for production."""
    if order_type == OrderType.DEMO.value or dispatch_from != FACTORY_LOCATION:
        return FulfillingStatus.FULFILLED.value
    return FulfillingStatus.NOT_FULFILLED.value


def product_errors(product: Mapping[str, Any], label: str) -> List[str]:
    errors = []
    if not product.get("product_type"):
        errors.append(f"{label}: productType is required")
    qty = product.get("qty")
    if qty is None:
        errors.append(f"{label}: qty is required")
    elif qty <= 0:
        errors.append(f"{label}: qty must be greater than 0")
    unit_price = product.get("unit_price")
    if unit_price is not None and to_decimal(unit_price) < 0:
        errors.append(f"{label}: unitPrice must not be negative")
    if not product.get("gst"):
        errors.append(f"{label}: gst is required")
    if not product.get("warranty"):
        errors.append(f"{label}: warranty is required")
    if product.get("product_type") == IFPD:
        if not product.get("model_nos"):
            errors.append(f"{label}: modelNos are required for IFPD products")
        if not product.get("brand"):
            errors.append(f"{label}: brand is required for IFPD products")
    return errors


def dispatch_errors(dispatch_from: Optional[str]) -> List[str]:
    if dispatch_from is not None and dispatch_from not in VALID_DISPATCH_LOCATIONS:
        return [f"dispatchFrom '{dispatch_from}' is not a valid dispatch location"]
    return []


def order_errors(payload: OrderCreate) -> List[str]:
    errors = []
    order_type = payload.order_type or OrderType.B2C.value
    if order_type == OrderType.B2G.value and not payload.gem_order_number:
        errors.append("gemOrderNumber is required for B2G orders")
    if order_type == OrderType.DEMO.value and not payload.demo_date:
        errors.append("demoDate is required for Demo orders")
    if order_type != OrderType.DEMO.value and not payload.payment_terms:
        errors.append("paymentTerms is required for non-Demo orders")
    errors.extend(dispatch_errors(payload.dispatch_from))
    if not payload.products:
        errors.append("At least one product is required")
    return errors


def normalize_product(product: ProductIn, order_type: Optional[str]) -> Dict[str, Any]:
    """Apply create-time defaults to a submitted line."""
    brand = product.brand or ""
    return {
        "product_type": product.product_type,
        "size": product.size or NOT_APPLICABLE,
        "spec": product.spec or NOT_APPLICABLE,
        "qty": product.qty,
        "unit_price": product.unit_price if product.unit_price is not None else 0,
        "gst": product.gst,
        "brand": brand,
        "warranty": product.warranty or default_warranty(order_type, product.product_type, brand),
        "serial_nos": product.serial_nos or [],
        "model_nos": product.model_nos or [],
        "product_code": product.product_code or [],
    }


def merge_product(incoming: ProductIn, existing: Optional[OrderProduct]) -> Dict[str, Any]:
    """Fill gaps in an edited line from the stored line at the same position."""
    def pick(name: str, fallback: Any) -> Any:
        value = getattr(incoming, name)
        if value is not None:
            return value
        if existing is not None and getattr(existing, name) not in (None, "", []):
            return getattr(existing, name)
        return fallback

    return {
        "product_type": pick("product_type", ""),
        "size": pick("size", NOT_APPLICABLE),
        "spec": pick("spec", NOT_APPLICABLE),
        "qty": pick("qty", 1),
        "unit_price": pick("unit_price", 0),
        "gst": pick("gst", DEFAULT_GST),
        "brand": pick("brand", ""),
        "warranty": pick("warranty", DEFAULT_WARRANTY),
        "serial_nos": pick("serial_nos", []),
        "model_nos": pick("model_nos", []),
        "product_code": pick("product_code", []),
    }


def merge_products(raw_products: Any, existing: List[OrderProduct]) -> List[Dict[str, Any]]:
    """Validate and merge a replacement product list. Raises ValidationError."""
    if not isinstance(raw_products, list):
        raise ValidationError.from_messages(["products must be a list"])
    if not raw_products:
        raise ValidationError.from_messages(["At least one product is required"])

    merged, errors = [], []
    for index, raw in enumerate(raw_products):
        label = f"Product {index + 1}"
        if not isinstance(raw, Mapping):
            errors.append(f"{label}: must be an object")
            continue
        try:
            incoming = ProductIn.model_validate(raw)
        except PydanticValidationError as exc:
            errors.extend(f"{label}: {msg}" for msg in validation_messages(exc))
            continue
        line = merge_product(incoming, existing[index] if index < len(existing) else None)
        errors.extend(product_errors(line, label))
        merged.append(line)

    if errors:
        raise ValidationError.from_messages(errors)
    return merged


def prepare_order(payload: OrderCreate) -> PreparedOrder:
    """Validate a create payload and derive everything the caller did not supply."""
    errors = order_errors(payload)
    order_type = payload.order_type or OrderType.B2C.value

    products = [normalize_product(product, order_type) for product in payload.products]
    for index, product in enumerate(products):
        errors.extend(product_errors(product, f"Product {index + 1}"))
    if errors:
        raise ValidationError.from_messages(errors)

    values = payload.model_dump(exclude={"products", "assigned_to"}, exclude_none=True)
    values["order_type"] = order_type
    values.setdefault("so_date", utc_now())
    values.setdefault("fulfilling_status", default_fulfilling_status(order_type, payload.dispatch_from))
    if payload.assigned_to is not None:
        values["assigned_to_id"] = payload.assigned_to

    computed_total = compute_total(products, payload.freight_charges, payload.installation_charges)
    total = to_decimal(payload.total) if payload.total is not None else computed_total
    values["total"] = total
    if payload.payment_due is None:
        values["payment_due"] = compute_payment_due(total, payload.payment_collected)

    return PreparedOrder(values=values, products=products)


def assignee_errors(db: Session, prepared: PreparedOrder) -> List[str]:
    """An assignee must be an existing user."""
    assignee = prepared.values.get("assigned_to_id")
    if assignee is not None and not UserRepository().exists(db, assignee):
        return ["assignedTo: user not found"]
    return []
