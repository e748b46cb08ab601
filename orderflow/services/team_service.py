from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Session

from ..config.logging import get_logger
from ..core.events import TEAM_UPDATE
from ..core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from ..models.user import User
from ..repositories.user_repo import UserRepository

logger = get_logger(__name__)

ASSIGN = "assign"
UNASSIGN = "unassign"


def team_event_payload(user: User, leader_id: int, action: str) -> Dict[str, Any]:
    return {"userId": user.id, "leaderId": leader_id, "action": action}


class TeamService:
    """Leader/member links that drive the Sales visibility scope."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def available_users(self, leader: User) -> List[User]:
        return self.repo.available_for_team(self.db, leader.id)

    def my_team(self, leader: User) -> List[User]:
        return self.repo.team_of(self.db, leader.id)

    def _get_user(self, user_id: int) -> User:
        user = self.repo.get(self.db, user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def assign(self, leader: User, user_id: int) -> Tuple[User, Dict[str, Any]]:
        member = self._get_user(user_id)
        if member.id == leader.id:
            raise BadRequestError("You cannot assign yourself to your own team", field="userId")
        if member.assigned_to_leader_id is not None:
            raise BadRequestError("User is already assigned to a team", field="userId")

        member.assigned_to_leader_id = leader.id
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"User {member.id} assigned to leader {leader.id}")
        return member, team_event_payload(member, leader.id, ASSIGN)

    def unassign(self, leader: User, user_id: int) -> Tuple[User, Dict[str, Any]]:
        member = self._get_user(user_id)
        if member.assigned_to_leader_id != leader.id:
            raise ForbiddenError("You can only remove members of your own team")

        member.assigned_to_leader_id = None
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"User {member.id} removed from leader {leader.id}")
        return member, team_event_payload(member, leader.id, UNASSIGN)
