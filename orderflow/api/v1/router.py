# api/v1/router.py
from fastapi import APIRouter

from ...schemas.common import ErrorResponse
from .endpoints import notifications, orders, stages, team

# error envelope documented for every route
api_router = APIRouter(responses={
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
})

api_router.include_router(orders.router, tags=["Orders"])
api_router.include_router(stages.router, tags=["Stages"])
api_router.include_router(notifications.router, tags=["Notifications"])
api_router.include_router(team.router, tags=["Team"])
