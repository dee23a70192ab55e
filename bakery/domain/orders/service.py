from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from bakery.core.config import Settings, get_settings
from bakery.domain.errors import DownstreamError, NotFoundError, PartialFailureError, ValidationError
from bakery.domain.orders.aggregates import INITIAL_STATUS, Order, OrderItem, OrderRequest
from bakery.domain.orders.lifecycle import transition
from bakery.domain.pricing import MAX_QUANTITY, PricingConfiguration, Quote, clamp_quantity, quote
from bakery.notifications.dispatcher import NotificationDispatcher, NotificationResult
from bakery.notifications.payloads import build_payload
from bakery.notifications.scheduler import NotificationScheduler
from bakery.persistence.store import OrderQuery, OrderRecordStore

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = frozenset({"customer_name", "customer_email", "description"})
TEXT_FIELDS = frozenset({"category", "shape", "special_fonts", "special_instructions"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    def __init__(
        self,
        store: OrderRecordStore,
        dispatcher: NotificationDispatcher,
        scheduler: NotificationScheduler,
        settings: Settings | None = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.scheduler = scheduler
        self.settings = settings or get_settings()

    def pricing(self) -> PricingConfiguration:
        return self.store.get_config()

    def quote(self, raw_quantity: Any, config: PricingConfiguration | None = None) -> Quote:
        return quote(clamp_quantity(raw_quantity), config or self.pricing())

    def create_order(self, request: OrderRequest, config: PricingConfiguration | None = None) -> Order:
        priced = self.quote(request.quantity, config)
        now = _now()
        order = Order(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            status=INITIAL_STATUS,
            customer_name=request.customer_name.strip(),
            customer_email=request.customer_email.strip(),
            customer_phone=request.customer_phone,
            quantity=priced.quantity,
            description=request.description,
            category=request.category,
            shape=request.shape,
            special_fonts=request.special_fonts,
            special_instructions=request.special_instructions,
            total_amount=priced.total,
            items=[OrderItem(quantity=priced.quantity, unit_price=priced.unit_price, description=request.description)],
        )
        created = self.store.create_order(order)
        logger.info(
            "order %s (%s) created: quantity=%s total=%s",
            created.id,
            created.order_number,
            created.quantity,
            created.total_amount,
        )
        self._announce(created)
        return created

    def _announce(self, order: Order) -> None:
        payload = build_payload(order)
        sends = (
            ("admin_order_alert", self.settings.operator_email),
            ("order_confirmation", order.customer_email),
        )
        for template_name, recipient in sends:
            try:
                self.scheduler.schedule(template_name, recipient, payload)
            except Exception:
                logger.exception("could not schedule %s for order %s", template_name, order.id)

    def get_order(self, order_id: str) -> Order:
        order = self.store.get_order(order_id)
        if order is None:
            raise NotFoundError(f"order not found: {order_id}")
        return order

    def list_orders(self, query: OrderQuery | None = None) -> list[Order]:
        return self.store.query_orders(query)

    def change_status(self, order_id: str, new_status: str) -> Order:
        current = self.get_order(order_id)
        moved = transition(current, new_status)
        if moved is current:
            return current
        updated = self.store.update_order(order_id, {"status": moved.status, "updated_at": moved.updated_at})
        logger.info("order %s status %s -> %s", order_id, current.status, updated.status)
        return updated

    def _clean_fields(self, fields: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "quantity":
                if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                    raise ValidationError("quantity must be a positive integer")
                if value > MAX_QUANTITY:
                    raise ValidationError(f"quantity must be at most {MAX_QUANTITY}")
                cleaned[name] = value
            elif name == "total_amount":
                try:
                    amount = Decimal(str(value))
                except InvalidOperation as exc:
                    raise ValidationError(f"total_amount is not a number: {value!r}") from exc
                if not amount.is_finite() or amount < 0:
                    raise ValidationError("total_amount must be zero or more")
                cleaned[name] = amount
            elif name in REQUIRED_TEXT_FIELDS:
                text = str(value or "").strip()
                if not text:
                    raise ValidationError(f"{name} must not be empty")
                cleaned[name] = text
            elif name == "customer_phone":
                text = str(value or "").strip()
                cleaned[name] = text or None
            elif name in TEXT_FIELDS:
                cleaned[name] = str(value or "")
            else:
                raise ValidationError(f"field is not editable: {name}")
        return cleaned

    def update_order(self, order_id: str, fields: dict[str, Any]) -> Order:
        """Administrative edit. total_amount may be overridden freely; it is
        not re-derived from quantity after creation."""
        fields = dict(fields)
        new_status = fields.pop("status", None)
        cleaned = self._clean_fields(fields)

        current = self.get_order(order_id)
        if new_status is not None:
            transition(current, new_status)
            if new_status != current.status:
                cleaned["status"] = new_status
        if not cleaned:
            return current
        updated = self.store.update_order(order_id, cleaned)
        logger.info("order %s updated: %s", order_id, ", ".join(sorted(cleaned)))
        return updated

    def resend_confirmation(self, order_id: str) -> NotificationResult:
        order = self.get_order(order_id)
        result = self._send_now("order_confirmation", order.customer_email, order)
        logger.info("order %s confirmation re-sent to %s", order.id, order.customer_email)
        return result

    def send_admin_reminder(self, order_id: str) -> NotificationResult:
        order = self.get_order(order_id)
        return self._send_now("admin_reminder", self.settings.operator_email, order)

    def _send_now(self, template_name: str, recipient: str, order: Order) -> NotificationResult:
        try:
            return self.dispatcher.send(template_name, recipient, build_payload(order))
        except DownstreamError:
            raise
        except Exception as exc:
            raise DownstreamError(f"{template_name} for order {order.id} failed: {exc}") from exc

    def send_pending_reminders(self, older_than: timedelta, now: datetime | None = None) -> list[dict[str, Any]]:
        cutoff = (now or _now()) - older_than
        stale = self.store.query_orders(
            OrderQuery(statuses=["pending"], created_to=cutoff, sort="created_at", direction="asc")
        )
        outcomes: list[dict[str, Any]] = []
        for order in stale:
            try:
                self._send_now("admin_reminder", self.settings.operator_email, order)
                outcomes.append({"order_id": order.id, "order_number": order.order_number, "sent": True})
            except DownstreamError as exc:
                logger.warning("reminder for order %s failed: %s", order.id, exc)
                outcomes.append(
                    {"order_id": order.id, "order_number": order.order_number, "sent": False, "error": str(exc)}
                )
        return outcomes

    def delete_order(self, order_id: str) -> None:
        self.get_order(order_id)
        removed = self.store.delete_order_items(order_id)
        try:
            deleted = self.store.delete_order(order_id)
        except DownstreamError as exc:
            logger.error("order %s: %s item(s) deleted but the order row was not: %s", order_id, removed, exc)
            raise PartialFailureError(
                f"deleted {removed} item(s) of order {order_id} but could not delete the order itself; "
                "the order may be in an inconsistent state"
            ) from exc
        if not deleted:
            logger.warning("order %s disappeared before it could be deleted", order_id)
        logger.info("order %s deleted with %s item(s)", order_id, removed)
