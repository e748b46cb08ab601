from typing import List

from sqlalchemy.orm import Session

from ..models.user import User, ASSIGNABLE_ROLES
from .base import CRUDBase


class UserRepository(CRUDBase[User, User, User]):
    def __init__(self):
        super().__init__(User)

    def available_for_team(self, db: Session, leader_id: int) -> List[User]:
        """Unassigned users, other than the leader, in roles that can join a team."""
        return (
            db.query(User)
            .filter(
                User.assigned_to_leader_id.is_(None),
                User.id != leader_id,
                User.role.in_(ASSIGNABLE_ROLES),
            )
            .order_by(User.username)
            .all()
        )

    def team_of(self, db: Session, leader_id: int) -> List[User]:
        return db.query(User).filter(User.assigned_to_leader_id == leader_id).order_by(User.username).all()

    def exists(self, db: Session, id: int) -> bool:
        return db.query(User.id).filter(User.id == id).first() is not None
