from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import BaseModel

BROADCAST_ROLE = "All"


class Notification(BaseModel):
    __tablename__ = "notifications"

    message = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    is_read = Column(Boolean, default=False, nullable=False)
    role = Column(String(32), default=BROADCAST_ROLE, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    user = relationship("User")
