# api/v1/endpoints/notifications.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ....config.database import get_db
from ....core.dependencies import get_current_user
from ....models.user import User
from ....schemas.common import envelope
from ....schemas.notification import NotificationResponse
from ....services.notification_service import NotificationService

router = APIRouter()


@router.get("/notifications")
def list_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Most recent shared notifications"""
    notifications = NotificationService(db).list_recent()
    return envelope([
        NotificationResponse.model_validate(n).model_dump(mode="json", by_alias=True)
        for n in notifications
    ])


@router.post("/mark-read")
def mark_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    count = NotificationService(db).mark_all_read()
    return envelope({"count": count}, message="Notifications marked as read")


@router.delete("/clear")
def clear_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    count = NotificationService(db).clear_all()
    return envelope({"count": count}, message="Notifications cleared")
