from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from bakery.domain.orders.aggregates import Order


class NotificationItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class NotificationPayload(BaseModel):
    """Snapshot of an order handed to the dispatcher.

    Built eagerly so later edits to the order never leak into a queued send.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str
    order_number: str
    status: str
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    created_at: datetime
    total_amount: Decimal
    notes: str = ""
    items: tuple[NotificationItem, ...] = ()


def build_payload(order: Order) -> NotificationPayload:
    return NotificationPayload(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        created_at=order.created_at,
        total_amount=order.total_amount,
        notes=order.special_instructions,
        items=tuple(
            NotificationItem(
                product_name=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.line_total,
            )
            for item in order.items
        ),
    )
