# api/v1/endpoints/stages.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ....config.database import get_db
from ....core.dependencies import get_current_user
from ....models.user import User
from ....schemas.common import envelope
from ....services.projections import ProjectionService
from .orders import serialize_orders

router = APIRouter()

# route path -> projection name
STAGE_ROUTES = {
    "/production-orders": "production",
    "/finished-goods": "finished_goods",
    "/installation-orders": "installation",
    "/accounts-orders": "accounts",
    "/get-verification-orders": "verification",
    "/get-bill-orders": "billing",
    "/production-approval-orders": "production_approval",
}


def stage_endpoint(name: str):
    def list_stage_orders(
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        orders = ProjectionService(db).list_stage(current_user, name)
        return envelope(serialize_orders(orders))

    list_stage_orders.__name__ = f"list_{name}_orders"
    list_stage_orders.__doc__ = f"Orders currently in the {name.replace('_', ' ')} stage"
    return list_stage_orders


for path, projection_name in STAGE_ROUTES.items():
    router.add_api_route(path, stage_endpoint(projection_name), methods=["GET"])
