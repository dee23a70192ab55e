from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from bakery.domain.errors import (
    DownstreamError,
    InvalidTransitionError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from bakery.domain.orders.aggregates import OrderRequest
from bakery.persistence.models import OrderItemModel
from bakery.persistence.store import OrderQuery

from conftest import make_order

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _submit(service, email="jane@x.com", quantity=12):
    return service.create_order(
        OrderRequest(customer_name="Jane", customer_email=email, quantity=quantity, description="Round cookies")
    )


def test_create_assigns_display_id_and_prices_items(service, store):
    order = _submit(service, quantity="24")
    assert order.status == "pending"
    assert order.display_id.startswith("QU")
    assert order.total_amount == Decimal("67.20")

    loaded = store.get_order(order.id)
    assert loaded.display_id == order.display_id
    assert loaded.total_amount == Decimal("67.20")
    assert [(item.quantity, item.unit_price) for item in loaded.items] == [(24, Decimal("2.80"))]


def test_junk_quantity_is_clamped_on_submission(service):
    order = _submit(service, quantity="abc")
    assert order.quantity == 1
    assert order.total_amount == Decimal("3.50")


def test_price_is_fixed_at_creation(service, store):
    order = _submit(service)
    store.save_config(store.get_config().model_copy(update={"base_price": Decimal("9.00")}))
    assert store.get_order(order.id).total_amount == Decimal("37.80")


def test_status_change_is_persisted_and_terminal_is_final(service, store):
    order = _submit(service)
    service.change_status(order.id, "completed")
    with pytest.raises(InvalidTransitionError):
        service.change_status(order.id, "in_progress")
    assert store.get_order(order.id).status == "completed"


def test_update_validates_fields(service):
    order = _submit(service)
    with pytest.raises(ValidationError):
        service.update_order(order.id, {"quantity": 0})
    with pytest.raises(ValidationError):
        service.update_order(order.id, {"quantity": 10**9})
    with pytest.raises(ValidationError):
        service.update_order(order.id, {"total_amount": "-1"})
    with pytest.raises(ValidationError):
        service.update_order(order.id, {"customer_name": "  "})
    with pytest.raises(ValidationError):
        service.update_order(order.id, {"id": "other"})

    updated = service.update_order(order.id, {"quantity": 30, "customer_phone": " ", "status": "confirmed"})
    assert updated.quantity == 30
    assert updated.customer_phone is None
    assert updated.status == "confirmed"
    # total_amount is not re-derived from quantity.
    assert updated.total_amount == Decimal("37.80")


def test_missing_order_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.get_order("nope")
    with pytest.raises(NotFoundError):
        service.delete_order("nope")
    with pytest.raises(NotFoundError):
        service.change_status("nope", "confirmed")


def test_delete_removes_items_then_order(service, store, session):
    order = _submit(service)
    service.delete_order(order.id)
    assert store.get_order(order.id) is None
    assert session.scalar(select(func.count()).select_from(OrderItemModel)) == 0


def test_partial_delete_is_reported(service, store, monkeypatch):
    order = _submit(service)

    def failing_delete(order_id: str) -> bool:
        raise DownstreamError("connection reset")

    monkeypatch.setattr(store, "delete_order", failing_delete)
    with pytest.raises(PartialFailureError) as excinfo:
        service.delete_order(order.id)
    assert "inconsistent" in str(excinfo.value)

    survivor = store.get_order(order.id)
    assert survivor is not None
    assert survivor.items == []


def test_query_filters_sorting_and_paging(store):
    store.create_order(make_order("a", "a@x.com", status="completed", total="10.00", created_at=T0))
    store.create_order(make_order("b", "b@y.com", status="pending", total="25.00", created_at=T0 + timedelta(days=1)))
    store.create_order(make_order("c", "c@x.com", status="pending", total="5.00", created_at=T0 + timedelta(days=2)))

    assert [o.id for o in store.query_orders()] == ["c", "b", "a"]
    assert [o.id for o in store.query_orders(OrderQuery(statuses=["pending"]))] == ["c", "b"]
    assert [o.id for o in store.query_orders(OrderQuery(email_contains="X.COM"))] == ["c", "a"]
    # created_to is exclusive: "b" sits exactly on the bound.
    assert [o.id for o in store.query_orders(OrderQuery(created_to=T0 + timedelta(days=1)))] == ["a"]
    assert [o.id for o in store.query_orders(OrderQuery(created_from=T0 + timedelta(days=1)))] == ["c", "b"]
    assert [o.id for o in store.query_orders(OrderQuery(min_total=Decimal("6"), max_total=Decimal("20")))] == ["a"]
    assert [o.id for o in store.query_orders(OrderQuery(sort="total_amount", direction="asc"))] == ["c", "a", "b"]
    assert [o.id for o in store.query_orders(OrderQuery(limit=1, offset=1))] == ["b"]


def test_pending_reminders_only_cover_stale_pending_orders(service, store, outbox):
    now = T0 + timedelta(days=3)
    store.create_order(make_order("old", status="pending", created_at=T0))
    store.create_order(make_order("fresh", status="pending", created_at=now - timedelta(hours=1)))
    store.create_order(make_order("done", status="completed", created_at=T0))

    outcomes = service.send_pending_reminders(timedelta(hours=24), now=now)
    assert [item["order_id"] for item in outcomes] == ["old"]
    assert all(item["sent"] for item in outcomes)
    assert [email.template_name for email in outbox.sent] == ["admin_reminder"]


def test_pricing_config_round_trips_through_store(store):
    default = store.get_config()
    assert default.base_price == Decimal("3.50")
    assert [tier.min_quantity for tier in default.discount_tiers] == [12, 24, 50]

    store.save_config(default.model_copy(update={"base_price": Decimal("4.00")}))
    assert store.get_config().base_price == Decimal("4.00")


def test_templates_blank_means_default(store):
    assert store.get_template("order_confirmation") is None
    store.save_template("order_confirmation", "<p>{{customer_name}}</p>")
    assert store.get_template("order_confirmation") == "<p>{{customer_name}}</p>"
    store.save_template("order_confirmation", "   ")
    assert store.get_template("order_confirmation") is None
