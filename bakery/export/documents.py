from __future__ import annotations

import io
from datetime import tzinfo
from typing import Any, Iterable

import pandas as pd

from bakery.core.config import get_settings
from bakery.domain.analytics.revenue import load_timezone
from bakery.domain.orders.aggregates import Order

CSV_COLUMNS = [
    "Order Number",
    "Order ID",
    "Date",
    "Customer",
    "Email",
    "Phone",
    "Status",
    "Quantity",
    "Category",
    "Shape",
    "Total",
    "Items",
]


def order_document(order: Order) -> dict[str, Any]:
    """Order plus items exactly as stored, for PDF/CSV formatters.

    Formatting and derived values (line totals, currency strings) are the
    formatter's job.
    """
    data = order.model_dump(mode="json")
    data["order_number"] = order.order_number
    return data


def _items_cell(order: Order) -> str:
    return ", ".join(f"{item.quantity}x {item.description}" for item in order.items)


def orders_frame(orders: Iterable[Order], tz: tzinfo | None = None) -> pd.DataFrame:
    tz = tz or load_timezone(get_settings().display_timezone)
    rows = [
        {
            "Order Number": order.order_number,
            "Order ID": order.id,
            "Date": order.created_at.astimezone(tz).date().isoformat(),
            "Customer": order.customer_name,
            "Email": order.customer_email,
            "Phone": order.customer_phone or "",
            "Status": order.status,
            "Quantity": order.quantity,
            "Category": order.category,
            "Shape": order.shape,
            "Total": f"{order.total_amount:.2f}",
            "Items": _items_cell(order),
        }
        for order in orders
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def orders_to_csv(orders: Iterable[Order], tz: tzinfo | None = None) -> str:
    buffer = io.StringIO()
    orders_frame(orders, tz).to_csv(buffer, index=False)
    return buffer.getvalue()
