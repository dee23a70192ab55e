from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Depends
from sqlalchemy.orm import Session

from bakery.domain.orders.aggregates import Order
from bakery.domain.orders.service import OrderService
from bakery.notifications.dispatcher import get_dispatcher
from bakery.notifications.scheduler import get_notification_scheduler
from bakery.persistence.pg import get_session
from bakery.persistence.store import SqlOrderStore


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(text: str) -> datetime:
    value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(
        store=SqlOrderStore(session),
        dispatcher=get_dispatcher(),
        scheduler=get_notification_scheduler(),
    )


def order_summary(order: Order) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "created_at": iso(order.created_at),
        "status": order.status,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "quantity": order.quantity,
        "total_amount": str(order.total_amount),
    }


def order_detail(order: Order) -> dict:
    return {
        **order_summary(order),
        "display_id": order.display_id,
        "updated_at": iso(order.updated_at),
        "customer_phone": order.customer_phone,
        "description": order.description,
        "category": order.category,
        "shape": order.shape,
        "special_fonts": order.special_fonts,
        "special_instructions": order.special_instructions,
        "items": [
            {
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
                "description": item.description,
            }
            for item in order.items
        ],
    }
