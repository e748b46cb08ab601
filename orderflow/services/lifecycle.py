"""
Cross-field derivation rules applied to an order edit.

Each status field is its own axis. The rules below only nudge forward: they
never revert a status, and a caller may still move an axis backward by direct
edit (logged as a flagged transition, not blocked).
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..config.logging import get_logger
from ..models.order import (
    Order, SOStatus, FulfillingStatus, DispatchStatus, InstallationStatus,
    PaymentReceived, BillStatus, CompletionStatus,
)
from ..utils.date_utils import utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class DerivationRule:
    """When ``trigger`` is set to one of ``values``, force ``sets`` and stamp a date unless supplied."""
    trigger: str
    values: Tuple[str, ...]
    sets: Tuple[Tuple[str, str], ...] = ()
    stamp: Optional[str] = None


@dataclass(frozen=True)
class EmailTrigger:
    """Customer email sent when ``trigger`` moves to one of ``values``."""
    trigger: str
    values: Tuple[str, ...]
    template: str


DERIVATION_RULES: Tuple[DerivationRule, ...] = (
    DerivationRule(
        trigger="fulfilling_status",
        values=(FulfillingStatus.FULFILLED.value,),
        sets=(("completion_status", CompletionStatus.COMPLETE.value),),
        stamp="fulfillment_date",
    ),
    DerivationRule(
        trigger="dispatch_status",
        values=(DispatchStatus.DELIVERED.value,),
        stamp="receipt_date",
    ),
)

EMAIL_TRIGGERS: Tuple[EmailTrigger, ...] = (
    EmailTrigger("sostatus", (SOStatus.APPROVED.value,), "order_confirmation"),
    EmailTrigger("dispatch_status", (DispatchStatus.DISPATCHED.value,), "order_dispatched"),
    EmailTrigger("dispatch_status", (DispatchStatus.DELIVERED.value,), "order_delivered"),
)

# Forward order of each axis; values sharing a rank are alternatives at the same step.
STATUS_RANKS: Dict[str, Dict[str, int]] = {
    "sostatus": {
        SOStatus.PENDING_FOR_APPROVAL.value: 0,
        SOStatus.ACCOUNTS_APPROVED.value: 1,
        SOStatus.APPROVED.value: 2,
    },
    "dispatch_status": {
        DispatchStatus.NOT_DISPATCHED.value: 0,
        DispatchStatus.DISPATCHED.value: 1,
        DispatchStatus.DOCKET_AWAITED.value: 1,
        DispatchStatus.DELIVERED.value: 2,
    },
    "installation_status": {
        InstallationStatus.PENDING.value: 0,
        InstallationStatus.IN_PROGRESS.value: 1,
        InstallationStatus.COMPLETED.value: 2,
    },
    "payment_received": {
        PaymentReceived.NOT_RECEIVED.value: 0,
        PaymentReceived.RECEIVED.value: 1,
    },
    "bill_status": {
        BillStatus.PENDING.value: 0,
        BillStatus.UNDER_BILLING.value: 1,
        BillStatus.BILLING_COMPLETE.value: 2,
    },
    "completion_status": {
        CompletionStatus.IN_PROGRESS.value: 0,
        CompletionStatus.COMPLETE.value: 1,
    },
}


@dataclass
class LifecycleOutcome:
    updates: Dict[str, Any]
    email_templates: List[str] = field(default_factory=list)
    backward_transitions: List[Tuple[str, Any, Any]] = field(default_factory=list)


def find_backward_transitions(order: Order, updates: Dict[str, Any]) -> List[Tuple[str, Any, Any]]:
    flagged = []
    for axis, ranks in STATUS_RANKS.items():
        if axis not in updates:
            continue
        old, new = getattr(order, axis), updates[axis]
        if old in ranks and new in ranks and ranks[new] < ranks[old]:
            flagged.append((axis, old, new))
    return flagged


def apply_lifecycle_rules(order: Order, updates: Dict[str, Any], now: datetime = None) -> LifecycleOutcome:
    """
    Derive dependent fields for an allow-listed update set.

    ``order`` holds the stored state; ``updates`` (attribute names) is not
    mutated. Email triggers fire only when the status actually changes and a
    customer email is on file after the update.
    """
    now = now or utc_now()
    derived = dict(updates)

    for rule in DERIVATION_RULES:
        if derived.get(rule.trigger) not in rule.values:
            continue
        for target, value in rule.sets:
            derived[target] = value
        if rule.stamp and derived.get(rule.stamp) is None:
            derived[rule.stamp] = now

    customer_email = derived.get("customer_email", order.customer_email)
    templates = []
    if customer_email:
        for trigger in EMAIL_TRIGGERS:
            new_value = derived.get(trigger.trigger)
            if new_value in trigger.values and getattr(order, trigger.trigger) != new_value:
                templates.append(trigger.template)

    backward = find_backward_transitions(order, derived)
    for axis, old, new in backward:
        logger.warning(f"Order {order.order_id}: {axis} moved backward from '{old}' to '{new}'")

    return LifecycleOutcome(updates=derived, email_templates=templates, backward_transitions=backward)
