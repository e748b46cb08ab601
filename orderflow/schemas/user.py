from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class UserSummary(CamelModel):
    id: int
    username: str
    email: str


class UserResponse(CamelModel):
    id: int
    username: str
    email: str
    role: str
    is_active: bool
    assigned_to_leader_id: Optional[int] = Field(default=None, alias="assignedToLeader")
    created_at: Optional[datetime] = None


class TeamAssignment(CamelModel):
    user_id: int
