from __future__ import annotations

import pytest

from bakery.domain.errors import InvalidTransitionError, ValidationError
from bakery.domain.orders.aggregates import ORDER_STATUSES
from bakery.domain.orders.lifecycle import allowed_targets, can_transition, is_terminal, transition

from conftest import make_order


def test_completed_order_rejects_further_transitions():
    order = make_order("o-1", status="completed")
    with pytest.raises(InvalidTransitionError):
        transition(order, "in_progress")
    assert order.status == "completed"


def test_cancelled_order_is_terminal():
    order = make_order("o-1", status="cancelled")
    assert is_terminal(order.status)
    assert not is_terminal("in_progress")
    for target in ("pending", "confirmed", "in_progress", "completed"):
        assert not can_transition(order.status, target)
    assert allowed_targets("cancelled") == ["cancelled"]


@pytest.mark.parametrize("current", ["pending", "confirmed", "in_progress"])
def test_non_terminal_orders_move_freely(current):
    for target in ORDER_STATUSES:
        moved = transition(make_order("o-1", status=current), target)
        assert moved.status == target


def test_transition_stamps_updated_at_and_keeps_original():
    order = make_order("o-1")
    moved = transition(order, "confirmed")
    assert order.status == "pending"
    assert moved.updated_at >= order.updated_at


def test_same_status_is_a_no_op():
    order = make_order("o-1", status="completed")
    assert transition(order, "completed") is order


def test_unknown_status_is_rejected():
    with pytest.raises(ValidationError):
        transition(make_order("o-1"), "shipped")
