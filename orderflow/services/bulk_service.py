"""
Spreadsheet import and export of orders.

Import maps one sheet row to one order with one product line (JSON arrays
may carry full product lists), validates every row with the single-create
rules, then numbers and inserts the whole batch in one transaction.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config.database import DatabaseTransaction
from ..config.logging import get_logger, log_database_operation, log_performance
from ..config.settings import get_settings
from ..core.events import NEW_ORDER
from ..core.exceptions import BadRequestError, BulkImportError, InternalServerError, ValidationError
from ..models.order import Order, OrderProduct
from ..models.user import User
from ..repositories.counter_repo import CounterRepository
from ..repositories.order_repo import OrderRepository
from ..schemas.order import OrderCreate
from ..utils.date_utils import format_date
from ..utils.file_utils import SpreadsheetReader, SpreadsheetWriter, get_extension
from .notification_service import NotificationService, SideEffects
from .order_rules import PreparedOrder, assignee_errors, parse_payload, prepare_order

logger = get_logger(__name__)
settings = get_settings()

# Sheet header -> order field (wire name)
ORDER_COLUMNS: Dict[str, str] = {
    "Order Type": "orderType",
    "Freight Charges": "freightcs",
    "Installation Charges": "installation",
    "Payment Collected": "paymentCollected",
    "Payment Due": "paymentDue",
    "Total": "total",
    "Dispatch From": "dispatchFrom",
    "SO Date": "soDate",
    "Contact Person Name": "name",
    "City": "city",
    "State": "state",
    "Pin Code": "pinCode",
    "Contact No": "contactNo",
    "Alternate No": "alterno",
    "Customer Email": "customerEmail",
    "Customer Name": "customername",
    "GST No": "gstno",
    "Freight Status": "freightstatus",
    "Installation Charges Status": "installchargesstatus",
    "Reporting Manager": "report",
    "Sales Person": "salesPerson",
    "Company": "company",
    "Shipping Address": "shippingAddress",
    "Billing Address": "billingAddress",
    "Same Address": "sameAddress",
    "Payment Method": "paymentMethod",
    "Payment Terms": "paymentTerms",
    "Credit Days": "creditDays",
    "NEFT Transaction ID": "neftTransactionId",
    "Cheque ID": "chequeId",
    "Remarks": "remarks",
    "GEM Order Number": "gemOrderNumber",
    "Delivery Date": "deliveryDate",
    "Demo Date": "demoDate",
}

# Sheet header -> product field (wire name)
PRODUCT_COLUMNS: Dict[str, str] = {
    "Product Type": "productType",
    "Size": "size",
    "Specification": "spec",
    "Quantity": "qty",
    "Unit Price": "unitPrice",
    "GST": "gst",
    "Serial Nos": "serialNos",
    "Model Nos": "modelNos",
    "Brand": "brand",
    "Warranty": "warranty",
}

# Export layout: (header, value getter). Commercial/status columns appear on an order's first line only.
CUSTOMER_EXPORT_COLUMNS = [
    ("Order ID", lambda o: o.order_id),
    ("SO Date", lambda o: format_date(o.so_date)),
    ("Customer Name", lambda o: o.customer_name),
    ("Contact Person Name", lambda o: o.name),
    ("Contact No", lambda o: o.contact_no),
    ("Alternate No", lambda o: o.alternate_no),
    ("Customer Email", lambda o: o.customer_email),
    ("City", lambda o: o.city),
    ("State", lambda o: o.state),
    ("Pin Code", lambda o: o.pin_code),
    ("GST No", lambda o: o.gst_no),
    ("Shipping Address", lambda o: o.shipping_address),
    ("Billing Address", lambda o: o.billing_address),
    ("Same Address", lambda o: "Yes" if o.same_address else "No"),
    ("Order Type", lambda o: o.order_type),
    ("Company", lambda o: o.company),
    ("Dispatch From", lambda o: o.dispatch_from),
    ("Sales Person", lambda o: o.sales_person),
    ("Reporting Manager", lambda o: o.reporting_manager),
    ("Created By", lambda o: o.created_by.username if o.created_by else ""),
]

PRODUCT_EXPORT_COLUMNS = [
    ("Product Type", lambda p: p.product_type),
    ("Size", lambda p: p.size),
    ("Specification", lambda p: p.spec),
    ("Quantity", lambda p: p.qty),
    ("Unit Price", lambda p: float(p.unit_price) if p.unit_price is not None else None),
    ("GST", lambda p: p.gst),
    ("Brand", lambda p: p.brand),
    ("Warranty", lambda p: p.warranty),
    ("Serial Nos", lambda p: ", ".join(p.serial_nos or [])),
    ("Model Nos", lambda p: ", ".join(p.model_nos or [])),
]

COMMERCIAL_EXPORT_COLUMNS = [
    ("Total", lambda o: _money(o.total)),
    ("Payment Collected", lambda o: _money(o.payment_collected)),
    ("Payment Method", lambda o: o.payment_method),
    ("Payment Due", lambda o: _money(o.payment_due)),
    ("Payment Terms", lambda o: o.payment_terms),
    ("Credit Days", lambda o: o.credit_days),
    ("Freight Charges", lambda o: _money(o.freight_charges)),
    ("Freight Status", lambda o: o.freight_status),
    ("Installation Charges", lambda o: _money(o.installation_charges)),
    ("Installation Charges Status", lambda o: o.install_charges_status),
    ("Actual Freight", lambda o: _money(o.actual_freight)),
    ("NEFT Transaction ID", lambda o: o.neft_transaction_id),
    ("Cheque ID", lambda o: o.cheque_id),
    ("GEM Order Number", lambda o: o.gem_order_number),
    ("Delivery Date", lambda o: format_date(o.delivery_date)),
    ("Demo Date", lambda o: format_date(o.demo_date)),
    ("Dispatch Date", lambda o: format_date(o.dispatch_date)),
    ("Transporter", lambda o: o.transporter),
    ("Transporter Details", lambda o: o.transporter_details),
    ("Docket No", lambda o: o.docket_no),
    ("Receipt Date", lambda o: format_date(o.receipt_date)),
    ("Invoice No", lambda o: o.invoice_no),
    ("Invoice Date", lambda o: format_date(o.invoice_date)),
    ("Bill Number", lambda o: o.bill_number),
    ("PI Number", lambda o: o.pi_number),
    ("Fulfilling Status", lambda o: o.fulfilling_status),
    ("Fulfillment Date", lambda o: format_date(o.fulfillment_date)),
    ("Dispatch Status", lambda o: o.dispatch_status),
    ("Installation Status", lambda o: o.installation_status),
    ("Payment Received", lambda o: o.payment_received),
    ("Bill Status", lambda o: o.bill_status),
    ("Completion Status", lambda o: o.completion_status),
    ("Remarks", lambda o: o.remarks),
    ("SO Status", lambda o: o.sostatus),
]

EXPORT_COLUMNS: List[str] = [
    header for header, _ in CUSTOMER_EXPORT_COLUMNS + PRODUCT_EXPORT_COLUMNS + COMMERCIAL_EXPORT_COLUMNS
]


def _money(value) -> Optional[float]:
    return float(value) if value is not None else None


def sheet_row_to_payload(row: Mapping[str, Any]) -> Dict[str, Any]:
    """One sheet row -> create payload with a single product line."""
    payload = {field: row.get(header) for header, field in ORDER_COLUMNS.items() if row.get(header) is not None}
    product = {field: row.get(header) for header, field in PRODUCT_COLUMNS.items() if row.get(header) is not None}
    payload["products"] = [product]
    return payload


def flatten_order(order: Order) -> List[Dict[str, Any]]:
    """One export row per product line; later lines leave commercial columns blank."""
    customer = {header: getter(order) for header, getter in CUSTOMER_EXPORT_COLUMNS}
    commercial = {header: getter(order) for header, getter in COMMERCIAL_EXPORT_COLUMNS}
    blank_commercial = {header: "" for header, _ in COMMERCIAL_EXPORT_COLUMNS}

    if not order.products:
        missing = {header: "" for header, _ in PRODUCT_EXPORT_COLUMNS}
        missing["Product Type"] = "Not Found"
        return [{**customer, **missing, **commercial}]

    rows = []
    for index, product in enumerate(order.products):
        line = {header: getter(product) for header, getter in PRODUCT_EXPORT_COLUMNS}
        rows.append({**customer, **line, **(commercial if index == 0 else blank_commercial)})
    return rows


class BulkOrderService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepository()
        self.counter = CounterRepository()
        self.notifications = NotificationService(db)

    def read_upload(self, content: bytes, filename: str) -> List[Tuple[int, Dict[str, Any]]]:
        """Parse an uploaded sheet into (sheet line number, payload) pairs."""
        extension = get_extension(filename)
        if extension not in settings.BULK_ALLOWED_EXTENSIONS:
            raise BadRequestError(
                f"Unsupported file type '{extension or filename}'. Allowed: {', '.join(settings.BULK_ALLOWED_EXTENSIONS)}",
                field="file",
            )
        if not content:
            raise BadRequestError("Uploaded file is empty", field="file")
        try:
            rows = SpreadsheetReader.read_rows(content, filename)
        except Exception as e:
            logger.warning(f"Unreadable spreadsheet {filename}: {e}")
            raise BadRequestError(f"Could not read spreadsheet: {e}", field="file")
        # header is line 1
        return [(index + 2, sheet_row_to_payload(row)) for index, row in enumerate(rows)]

    @staticmethod
    def number_json_items(items: Sequence[Any]) -> List[Tuple[int, Any]]:
        return [(index + 1, item) for index, item in enumerate(items)]

    def prepare_rows(self, rows: List[Tuple[int, Any]]) -> List[PreparedOrder]:
        prepared = []
        for row_number, data in rows:
            if not isinstance(data, Mapping):
                raise BulkImportError(row_number, ["must be an object"])
            try:
                item = prepare_order(parse_payload(OrderCreate, data))
            except ValidationError as e:
                raise BulkImportError(row_number, e.messages or [e.detail])
            errors = assignee_errors(self.db, item)
            if errors:
                raise BulkImportError(row_number, errors)
            prepared.append(item)
        return prepared

    @log_performance("orderflow.services")
    def import_orders(self, user: User, rows: List[Tuple[int, Any]]) -> Tuple[List[Order], SideEffects]:
        """All-or-nothing: any bad row rejects the batch before a number is reserved."""
        if not rows:
            raise BadRequestError("No orders to import")

        prepared = self.prepare_rows(rows)

        try:
            with DatabaseTransaction(self.db):
                order_ids = self.counter.reserve_order_ids(self.db, len(prepared))
                orders = []
                for order_id, item in zip(order_ids, prepared):
                    order = Order(**item.values)
                    order.order_id = order_id
                    order.created_by_id = user.id
                    order.products = [
                        OrderProduct(position=index, **line) for index, line in enumerate(item.products)
                    ]
                    orders.append(order)
                self.repo.create_bulk(self.db, objs_in=orders)
                notifications = [
                    self.notifications.record_order_action("New sales order created", order, user)
                    for order in orders
                ]
        except SQLAlchemyError as e:
            logger.error(f"Bulk import of {len(prepared)} orders failed: {e}")
            raise InternalServerError("Bulk import failed; no orders were created")

        log_database_operation("bulk_insert", "orders", row_count=len(orders))
        logger.info(f"Bulk import by user {user.id}: {order_ids[0]}..{order_ids[-1]}")

        effects = SideEffects()
        for order, notification in zip(orders, notifications):
            effects.add_event(NEW_ORDER, NotificationService.order_event_payload(
                order.id, order.order_id, order.customer_name, notification))
        return orders, effects

    def export_orders(self, user: User) -> bytes:
        orders = self.repo.list_scoped(self.db, user)
        rows = [row for order in orders for row in flatten_order(order)]
        logger.info(f"Exporting {len(orders)} orders ({len(rows)} rows) for user {user.id}")
        return SpreadsheetWriter.to_xlsx_bytes(rows, EXPORT_COLUMNS, sheet_name="Orders")
