from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config.logging import get_logger, log_performance
from ..config.settings import get_settings
from ..core.events import NEW_ORDER, UPDATE_ORDER, DELETE_ORDER
from ..core.exceptions import (
    ForbiddenError, InternalServerError, NotFoundError, ValidationError,
)
from ..models.order import Order, OrderProduct
from ..models.user import User, UserRole
from ..repositories.counter_repo import CounterRepository
from ..repositories.order_repo import OrderRepository
from ..schemas.order import EDITABLE_FIELDS, OrderCreate, OrderUpdate
from ..utils.date_utils import parse_date
from ..utils.file_utils import FileManager
from .lifecycle import apply_lifecycle_rules
from .notification_service import NotificationService, SideEffects, order_email
from .order_rules import assignee_errors, dispatch_errors, merge_products, parse_payload, prepare_order

logger = get_logger(__name__)
settings = get_settings()

# Columns an edit may not blank out; a null for these is ignored.
NON_NULLABLE_FIELDS = ("order_type", "sostatus", "same_address")


@dataclass
class Attachment:
    filename: str
    content: bytes


def clean_edit_body(body: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep allow-listed keys; drop date fields whose value cannot be parsed."""
    cleaned = {}
    for key, value in body.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key.endswith("Date") and value not in (None, "") and parse_date(value) is None:
            logger.warning(f"Ignoring unparsable {key}: '{value}'")
            continue
        cleaned[key] = value
    return cleaned


class OrderService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepository()
        self.counter = CounterRepository()
        self.notifications = NotificationService(db)

    def list_orders(self, user: User) -> List[Order]:
        return self.repo.list_scoped(self.db, user)

    def get_order(self, id: int) -> Order:
        order = self.repo.get(self.db, id)
        if not order:
            raise NotFoundError("Order", id)
        return order

    @staticmethod
    def build_products(lines: List[Dict[str, Any]]) -> List[OrderProduct]:
        return [OrderProduct(position=index, **line) for index, line in enumerate(lines)]

    @log_performance("orderflow.services")
    def create_order(self, user: User, data: Mapping[str, Any],
                     attachment: Optional[Attachment] = None) -> Tuple[Order, SideEffects]:
        """Validate, number and persist one order."""
        payload: OrderCreate = parse_payload(OrderCreate, data)
        prepared = prepare_order(payload)
        errors = assignee_errors(self.db, prepared)
        if errors:
            raise ValidationError.from_messages(errors)

        try:
            if attachment is not None:
                manager = FileManager(settings.UPLOAD_DIRECTORY, settings.UPLOAD_URL_PREFIX)
                prepared.values["po_file_path"] = manager.save(attachment.content, attachment.filename)

            order = Order(**prepared.values)
            order.order_id = self.counter.next_order_id(self.db)
            order.created_by_id = user.id
            order.products = self.build_products(prepared.products)
            self.db.add(order)
            self.db.flush()

            notification = self.notifications.record_order_action("New sales order created", order, user)
            self.db.commit()
            self.db.refresh(order)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating order: {e}")
            raise InternalServerError("Failed to create order")

        logger.info(f"Order {order.order_id} created by user {user.id}", extra={"order_id": order.order_id})

        effects = SideEffects()
        effects.add_event(NEW_ORDER, NotificationService.order_event_payload(
            order.id, order.order_id, order.customer_name, notification))
        if settings.NOTIFY_CUSTOMER_ON_CREATE:
            effects.add_email(order_email(order, "order_received"))
        return order, effects

    @log_performance("orderflow.services")
    def update_order(self, user: User, id: int, body: Mapping[str, Any]) -> Tuple[Order, SideEffects]:
        """Partial update over the allow-list, with lifecycle derivations."""
        if not isinstance(body, Mapping):
            raise ValidationError.from_messages(["Request body must be an object"])
        order = self.get_order(id)

        payload: OrderUpdate = parse_payload(OrderUpdate, clean_edit_body(body))
        updates = payload.model_dump(exclude_unset=True)
        raw_products = updates.pop("products", None)
        for key in NON_NULLABLE_FIELDS:
            if key in updates and updates[key] is None:
                updates.pop(key)

        errors = dispatch_errors(updates.get("dispatch_from"))
        if errors:
            raise ValidationError.from_messages(errors)
        new_products = merge_products(raw_products, list(order.products)) if raw_products is not None else None
        # total and paymentDue are stored as sent; an edit without them keeps the old values

        outcome = apply_lifecycle_rules(order, updates)

        try:
            self.repo.update(self.db, db_obj=order, obj_in=outcome.updates)
            if new_products is not None:
                order.products = self.build_products(new_products)
            notification = self.notifications.record_order_action("Order updated", order, user)
            self.db.commit()
            self.db.refresh(order)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating order {id}: {e}")
            raise InternalServerError("Failed to update order")

        logger.info(f"Order {order.order_id} updated by user {user.id}: {sorted(outcome.updates)}")

        effects = SideEffects()
        effects.add_event(UPDATE_ORDER, NotificationService.order_event_payload(
            order.id, order.order_id, order.customer_name, notification))
        for template in outcome.email_templates:
            effects.add_email(order_email(order, template))
        return order, effects

    def delete_order(self, user: User, id: int) -> SideEffects:
        order = self.get_order(id)
        if user.role == UserRole.SALES.value and order.created_by_id != user.id:
            raise ForbiddenError("You can only delete orders you created")

        order_pk, order_id, customer_name = order.id, order.order_id, order.customer_name
        try:
            notification = self.notifications.record_order_action("Order deleted", order, user)
            self.repo.delete(self.db, db_obj=order)
            self.db.commit()
            self.db.refresh(notification)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting order {id}: {e}")
            raise InternalServerError("Failed to delete order")

        logger.info(f"Order {order_id} deleted by user {user.id}")

        effects = SideEffects()
        effects.add_event(DELETE_ORDER, NotificationService.order_event_payload(
            order_pk, order_id, customer_name, notification))
        return effects
