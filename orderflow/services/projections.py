"""
Pipeline stage views: named read-only filters over orders.

"Not equal" and "not in" also match NULL, so an order that never had a
status value set still lands in the bucket its other fields put it in.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ..config.logging import get_logger
from ..core.exceptions import NotFoundError
from ..models.order import (
    Order, SOStatus, FulfillingStatus, DispatchStatus, InstallationStatus,
    PaymentReceived, BillStatus, PaymentTerms, DEPOT_FULFILLMENT_LOCATIONS,
)
from ..models.user import User
from ..repositories.order_repo import OrderRepository

logger = get_logger(__name__)


def not_equal(column, value) -> ColumnElement:
    return or_(column.is_(None), column != value)


def not_in(column, values) -> ColumnElement:
    return or_(column.is_(None), column.notin_(values))


@dataclass(frozen=True)
class StageProjection:
    name: str
    label: str
    criteria: Callable[[], ColumnElement]


PROJECTIONS: Dict[str, StageProjection] = {
    projection.name: projection for projection in (
        StageProjection(
            "production", "Production",
            lambda: and_(
                Order.sostatus == SOStatus.APPROVED.value,
                not_in(Order.dispatch_from, DEPOT_FULFILLMENT_LOCATIONS),
                not_equal(Order.fulfilling_status, FulfillingStatus.FULFILLED.value),
            ),
        ),
        StageProjection(
            "finished_goods", "Finished Goods",
            lambda: and_(
                Order.fulfilling_status == FulfillingStatus.FULFILLED.value,
                not_equal(Order.dispatch_status, DispatchStatus.DELIVERED.value),
            ),
        ),
        StageProjection(
            "installation", "Installation",
            lambda: and_(
                Order.dispatch_status == DispatchStatus.DELIVERED.value,
                Order.installation_status.in_([
                    InstallationStatus.PENDING.value,
                    InstallationStatus.IN_PROGRESS.value,
                    InstallationStatus.HOLD.value,
                    InstallationStatus.SITE_NOT_READY.value,
                ]),
            ),
        ),
        StageProjection(
            "accounts", "Accounts",
            lambda: and_(
                Order.installation_status == InstallationStatus.COMPLETED.value,
                not_equal(Order.payment_received, PaymentReceived.RECEIVED.value),
            ),
        ),
        StageProjection(
            "verification", "Verification",
            lambda: and_(
                Order.payment_terms.in_([
                    PaymentTerms.FULL_ADVANCE.value,
                    PaymentTerms.PARTIAL_ADVANCE.value,
                ]),
                Order.sostatus.notin_([
                    SOStatus.ACCOUNTS_APPROVED.value,
                    SOStatus.APPROVED.value,
                ]),
            ),
        ),
        StageProjection(
            "billing", "Billing",
            lambda: and_(
                Order.sostatus == SOStatus.APPROVED.value,
                not_equal(Order.bill_status, BillStatus.BILLING_COMPLETE.value),
            ),
        ),
        StageProjection(
            "production_approval", "Production Approval",
            lambda: or_(
                Order.sostatus == SOStatus.ACCOUNTS_APPROVED.value,
                and_(
                    Order.sostatus == SOStatus.PENDING_FOR_APPROVAL.value,
                    Order.payment_terms == PaymentTerms.CREDIT.value,
                ),
            ),
        ),
    )
}


class ProjectionService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepository()

    def list_stage(self, user: User, name: str) -> List[Order]:
        projection = PROJECTIONS.get(name)
        if projection is None:
            raise NotFoundError("Stage", name)
        orders = self.repo.list_scoped(self.db, user, projection.criteria())
        logger.debug(f"{projection.label} view for user {user.id}: {len(orders)} orders")
        return orders
