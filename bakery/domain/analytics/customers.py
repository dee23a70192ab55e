from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from bakery.domain.orders.aggregates import Order


@dataclass
class CustomerSummary:
    email: str
    name: str
    phone: str
    total_orders: int
    total_spent: Decimal
    last_order_date: datetime
    orders: list[Order] = field(default_factory=list)

    def to_dict(self, include_orders: bool = True) -> dict:
        out = {
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "total_orders": self.total_orders,
            "total_spent": str(self.total_spent),
            "last_order_date": self.last_order_date.isoformat().replace("+00:00", "Z"),
        }
        if include_orders:
            out["orders"] = [
                {
                    "id": order.id,
                    "order_number": order.order_number,
                    "created_at": order.created_at.isoformat().replace("+00:00", "Z"),
                    "status": order.status,
                    "total_amount": str(order.total_amount),
                    "description": order.description,
                }
                for order in self.orders
            ]
        return out


def customer_key(email: str | None) -> str:
    return (email or "").lower().strip()


def aggregate(orders: Iterable[Order]) -> dict[str, CustomerSummary]:
    summaries: dict[str, CustomerSummary] = {}
    for order in orders:
        key = customer_key(order.customer_email)
        if not key:
            continue

        existing = summaries.get(key)
        if existing is None:
            summaries[key] = CustomerSummary(
                email=key,
                name=order.customer_name or "",
                phone=order.customer_phone or "",
                total_orders=1,
                total_spent=order.total_amount,
                last_order_date=order.created_at,
                orders=[order],
            )
            continue

        existing.total_orders += 1
        # Cancelled orders are included on purpose; see DESIGN.md.
        existing.total_spent += order.total_amount
        if order.created_at > existing.last_order_date:
            existing.last_order_date = order.created_at
            existing.name = order.customer_name or existing.name
            existing.phone = order.customer_phone or existing.phone
        existing.orders.append(order)

    ordered = sorted(summaries.values(), key=lambda s: s.last_order_date, reverse=True)
    return {summary.email: summary for summary in ordered}


def search_customers(summaries: Iterable[CustomerSummary], query: str | None) -> list[CustomerSummary]:
    items = list(summaries)
    needle = (query or "").strip().lower()
    if not needle:
        return items
    return [
        summary
        for summary in items
        if needle in summary.name.lower() or needle in summary.email.lower() or needle in summary.phone.lower()
    ]
