"""
Base SQLAlchemy model with common fields and functionality.
"""
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.sql import func

from ..config.database import Base


class TimestampMixin:
    """Mixin for models that need timestamp tracking."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class BaseModel(Base, TimestampMixin):
    """Abstract base model with an integer primary key and timestamps."""

    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id})>"
