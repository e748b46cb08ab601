from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..models.notification import Notification, BROADCAST_ROLE
from .base import CRUDBase


class NotificationRepository(CRUDBase[Notification, Notification, Notification]):
    def __init__(self):
        super().__init__(Notification)

    def latest(self, db: Session, role: str = BROADCAST_ROLE, limit: int = 50) -> List[Notification]:
        return (
            db.query(Notification)
            .filter(Notification.role == role)
            .order_by(desc(Notification.timestamp), desc(Notification.id))
            .limit(limit)
            .all()
        )

    def mark_all_read(self, db: Session, role: str = BROADCAST_ROLE) -> int:
        return (
            db.query(Notification)
            .filter(Notification.role == role, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )

    def clear(self, db: Session, role: str = BROADCAST_ROLE) -> int:
        return db.query(Notification).filter(Notification.role == role).delete(synchronize_session=False)
