"""
Order number allocation.

``reserve`` bumps the named counter with a single UPDATE and reads the new
value back in the same transaction. The UPDATE takes the row's write lock, so
concurrent allocators queue behind it until the caller commits or rolls back;
the dependent inserts must therefore run in that same transaction.
"""
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..config.logging import get_logger
from ..config.settings import get_settings
from ..models.counter import Counter

logger = get_logger(__name__)
settings = get_settings()


class CounterRepository:

    def __init__(self, name: str = None, prefix: str = None):
        self.name = name or settings.ORDER_COUNTER_NAME
        self.prefix = prefix or settings.ORDER_ID_PREFIX

    def reserve(self, db: Session, count: int = 1) -> int:
        """Advance the counter by ``count`` and return the new (last reserved) value."""
        if count < 1:
            raise ValueError("count must be at least 1")

        result = db.execute(
            update(Counter)
            .where(Counter.name == self.name)
            .values(sequence=Counter.sequence + count)
        )
        if result.rowcount == 0:
            # first allocation on a fresh database; init_database normally seeds the row
            db.add(Counter(name=self.name, sequence=count))
            db.flush()

        return db.execute(select(Counter.sequence).where(Counter.name == self.name)).scalar_one()

    def format(self, sequence: int) -> str:
        return f"{self.prefix}{sequence}"

    def next_order_id(self, db: Session) -> str:
        return self.format(self.reserve(db, 1))

    def reserve_order_ids(self, db: Session, count: int) -> List[str]:
        """Contiguous block ``last - count + 1 .. last``."""
        last = self.reserve(db, count)
        first = last - count + 1
        logger.debug(f"Reserved {self.name} {first}..{last}")
        return [self.format(seq) for seq in range(first, last + 1)]

    def current(self, db: Session) -> int:
        value = db.execute(select(Counter.sequence).where(Counter.name == self.name)).scalar_one_or_none()
        return value or 0

    def ensure(self, db: Session) -> None:
        """Create the counter row if missing so allocation is always a plain UPDATE."""
        if db.get(Counter, self.name) is None:
            db.add(Counter(name=self.name, sequence=0))
            db.commit()
            logger.info(f"Counter '{self.name}' initialized")
