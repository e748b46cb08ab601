from sqlalchemy import Column, String, Integer

from ..config.database import Base


class Counter(Base):
    """Named monotonically increasing sequence. Only the allocator touches it."""

    __tablename__ = "counters"

    name = Column(String(50), primary_key=True)
    sequence = Column(Integer, nullable=False, default=0)
