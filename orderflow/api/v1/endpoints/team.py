# api/v1/endpoints/team.py
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ....config.database import get_db
from ....core.dependencies import get_current_user
from ....core.events import TEAM_UPDATE, get_broadcaster
from ....models.user import User
from ....schemas.common import envelope
from ....schemas.user import TeamAssignment, UserResponse
from ....services.team_service import TeamService

router = APIRouter()


def serialize_user(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json", by_alias=True)


@router.get("/current-user")
def get_current_user_info(current_user: User = Depends(get_current_user)):
    return envelope(serialize_user(current_user))


@router.get("/fetch-available-users")
def fetch_available_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Users that can still be added to the requester's team"""
    users = TeamService(db).available_users(current_user)
    return envelope([serialize_user(user) for user in users])


@router.get("/fetch-my-team")
def fetch_my_team(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    users = TeamService(db).my_team(current_user)
    return envelope([serialize_user(user) for user in users])


@router.post("/assign-user")
def assign_user(
    assignment: TeamAssignment,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    member, payload = TeamService(db).assign(current_user, assignment.user_id)
    background_tasks.add_task(get_broadcaster().broadcast, TEAM_UPDATE, payload)
    return envelope(serialize_user(member), message="User assigned to team")


@router.post("/unassign-user")
def unassign_user(
    assignment: TeamAssignment,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    member, payload = TeamService(db).unassign(current_user, assignment.user_id)
    background_tasks.add_task(get_broadcaster().broadcast, TEAM_UPDATE, payload)
    return envelope(serialize_user(member), message="User removed from team")
