from datetime import datetime
from typing import Optional

from .common import CamelModel


class NotificationResponse(CamelModel):
    id: int
    message: str
    timestamp: datetime
    is_read: bool
    role: str
    user_id: Optional[int] = None
