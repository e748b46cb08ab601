"""
Notifications and the post-commit side effects of order mutations.

Services collect events and customer emails into ``SideEffects``; endpoints
hand them to FastAPI background tasks so they run only after the write
committed and never affect the response.
"""
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from ..config.logging import get_logger
from ..config.settings import get_settings
from ..core.events import get_broadcaster
from ..core.security import is_deliverable_address
from ..models.notification import Notification, BROADCAST_ROLE
from ..models.order import Order
from ..models.user import User
from ..repositories.notification_repo import NotificationRepository
from ..utils.date_utils import utc_now, DateUtils
from ..utils.email_utils import EmailConfig, EmailMessage, EmailService

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class SideEffects:
    events: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)
    emails: List[EmailMessage] = field(default_factory=list)

    def add_event(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    def add_email(self, message: Optional[EmailMessage]) -> None:
        if message is not None:
            self.emails.append(message)


@lru_cache()
def get_email_service() -> EmailService:
    return EmailService(EmailConfig(
        smtp_server=settings.SMTP_SERVER,
        smtp_port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        sender=settings.MAIL_FROM,
        use_tls=settings.SMTP_USE_TLS,
    ))


def dispatch_side_effects(background_tasks: BackgroundTasks, effects: SideEffects) -> None:
    broadcaster = get_broadcaster()
    for event, payload in effects.events:
        background_tasks.add_task(broadcaster.broadcast, event, payload)
    if effects.emails:
        background_tasks.add_task(get_email_service().send_all_safely, effects.emails)


def order_email(order: Order, template: str) -> Optional[EmailMessage]:
    """Snapshot the order into an email; None when there is no usable address."""
    if not is_deliverable_address(order.customer_email):
        return None
    event_date = order.receipt_date if template == "order_delivered" else order.dispatch_date
    return EmailMessage(
        recipient=order.customer_email,
        template_name=template,
        template_data={
            "order_id": order.order_id,
            "customer_name": order.customer_name or order.name or "Customer",
            "products": [
                {
                    "product_type": p.product_type,
                    "qty": p.qty,
                    "unit_price": f"{p.unit_price:.2f}" if p.unit_price is not None else "0.00",
                    "brand": p.brand,
                    "size": p.size,
                    "spec": p.spec,
                }
                for p in order.products
            ],
            "total": f"{order.total:.2f}" if order.total is not None else "0.00",
            "event_date": DateUtils.format_for_display(event_date or utc_now()),
            "transporter": order.transporter,
            "docket_no": order.docket_no,
        },
    )


class NotificationService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def record(self, message: str, actor: Optional[User]) -> Notification:
        """Add a broadcast notification to the current transaction."""
        return self.repo.create(self.db, obj_in={
            "message": message,
            "timestamp": utc_now(),
            "is_read": False,
            "role": BROADCAST_ROLE,
            "user_id": actor.id if actor else None,
        })

    def record_order_action(self, action: str, order: Order, actor: User) -> Notification:
        message = f"{action} by {actor.username} for {order.customer_name or order.name or 'N/A'} (Order ID: {order.order_id})"
        return self.record(message, actor)

    def list_recent(self) -> List[Notification]:
        return self.repo.latest(self.db, BROADCAST_ROLE, settings.NOTIFICATION_FETCH_LIMIT)

    def mark_all_read(self) -> int:
        count = self.repo.mark_all_read(self.db, BROADCAST_ROLE)
        self.db.commit()
        logger.info(f"Marked {count} notifications as read")
        return count

    def clear_all(self) -> int:
        count = self.repo.clear(self.db, BROADCAST_ROLE)
        self.db.commit()
        logger.info(f"Cleared {count} notifications")
        return count

    @staticmethod
    def notification_payload(notification: Notification) -> Dict[str, Any]:
        return {
            "id": notification.id,
            "message": notification.message,
            "timestamp": notification.timestamp.isoformat() if notification.timestamp else None,
            "isRead": notification.is_read,
            "role": notification.role,
        }

    @classmethod
    def order_event_payload(cls, order_pk: int, order_id: str, customer_name: Optional[str],
                            notification: Notification) -> Dict[str, Any]:
        return {
            "id": order_pk,
            "orderId": order_id,
            "customername": customer_name,
            "notification": cls.notification_payload(notification),
        }
