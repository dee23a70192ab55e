"""Order status state machine.

pending -> confirmed -> in_progress -> completed, with cancelled reachable from
any non-terminal status. Administrators may move an order backwards among the
non-terminal statuses to correct mistakes; only terminality is enforced.
"""
from __future__ import annotations

from datetime import datetime, timezone

from bakery.domain.errors import InvalidTransitionError, ValidationError
from bakery.domain.orders.aggregates import ORDER_STATUSES, TERMINAL_STATUSES, Order


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, requested: str) -> bool:
    if requested == current:
        return True
    return not is_terminal(current)


def allowed_targets(current: str) -> list[str]:
    return [status for status in ORDER_STATUSES if can_transition(current, status)]


def transition(order: Order, new_status: str, at: datetime | None = None) -> Order:
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"unknown order status: {new_status}")
    if not can_transition(order.status, new_status):
        raise InvalidTransitionError(order.id, order.status, new_status)
    if new_status == order.status:
        return order
    return order.model_copy(
        update={"status": new_status, "updated_at": at or datetime.now(timezone.utc)},
    )
