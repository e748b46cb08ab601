from typing import List, Optional

from sqlalchemy import desc, or_
from sqlalchemy.orm import Session, Query

from ..models.order import Order
from ..models.user import User, UserRole
from ..schemas.order import OrderCreate, OrderUpdate
from .base import CRUDBase


class OrderRepository(CRUDBase[Order, OrderCreate, OrderUpdate]):
    def __init__(self):
        super().__init__(Order)

    def visible_owner_ids(self, db: Session, user: User) -> Optional[List[int]]:
        """Owners whose orders ``user`` may see, or None for no restriction."""
        if user.role != UserRole.SALES.value:
            return None
        team_ids = [
            member_id for (member_id,) in
            db.query(User.id).filter(User.assigned_to_leader_id == user.id).all()
        ]
        return [user.id] + team_ids

    def scoped_query(self, db: Session, user: User) -> Query:
        query = db.query(Order)
        owner_ids = self.visible_owner_ids(db, user)
        if owner_ids is not None:
            query = query.filter(or_(
                Order.created_by_id.in_(owner_ids),
                Order.assigned_to_id.in_(owner_ids),
            ))
        return query

    def list_scoped(self, db: Session, user: User, *criteria) -> List[Order]:
        """Role-scoped orders matching ``criteria``, newest first. No pagination."""
        query = self.scoped_query(db, user)
        if criteria:
            query = query.filter(*criteria)
        return query.order_by(desc(Order.created_at), desc(Order.id)).all()
