"""Dashboard KPIs over a time window.

Revenue counts money actually earned (completed orders only) while order counts
reflect pipeline workload (every status). Keep the two apart.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal
from typing import Iterable, Literal, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from bakery.domain.analytics.customers import customer_key
from bakery.domain.errors import ValidationError
from bakery.domain.orders.aggregates import ORDER_STATUSES, Order
from bakery.domain.pricing import ZERO, round2


@dataclass(frozen=True)
class RevenueWindow:
    start: datetime
    end: datetime | None = None

    def __post_init__(self) -> None:
        # Naive bounds are read as UTC so they compare with order timestamps.
        object.__setattr__(self, "start", _as_utc(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", _as_utc(self.end))

    def contains(self, moment: datetime) -> bool:
        if moment < self.start:
            return False
        return self.end is None or moment < self.end

    def to_dict(self) -> dict:
        return {
            "start": _iso(self.start),
            "end": _iso(self.end) if self.end is not None else None,
        }


ALL_TIME = "all"
Window = Union[RevenueWindow, Literal["all"]]


@dataclass
class RevenueWindowSummary:
    total_revenue: Decimal
    total_orders: int
    completed_orders: int
    average_order_value: Decimal
    pending_count: int
    unique_customers: int
    status_breakdown: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_revenue": str(self.total_revenue),
            "total_orders": self.total_orders,
            "completed_orders": self.completed_orders,
            "average_order_value": str(self.average_order_value),
            "pending_count": self.pending_count,
            "unique_customers": self.unique_customers,
            "status_breakdown": dict(self.status_breakdown),
        }


@dataclass(frozen=True)
class DailyRevenue:
    day: date
    revenue: Decimal
    orders: int

    def to_dict(self) -> dict:
        return {"day": self.day.isoformat(), "revenue": str(self.revenue), "orders": self.orders}


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def in_window(orders: Iterable[Order], window: Window) -> list[Order]:
    if window == ALL_TIME:
        return list(orders)
    if not isinstance(window, RevenueWindow):
        raise ValidationError(f"unsupported revenue window: {window!r}")
    return [order for order in orders if window.contains(_as_utc(order.created_at))]


def summarize(orders: Iterable[Order], window: Window = ALL_TIME) -> RevenueWindowSummary:
    selected = in_window(orders, window)
    completed = [order for order in selected if order.status == "completed"]

    breakdown = {status: 0 for status in ORDER_STATUSES}
    for order in selected:
        breakdown[order.status] = breakdown.get(order.status, 0) + 1

    total_revenue = sum((order.total_amount for order in completed), ZERO)
    average = round2(total_revenue / len(completed)) if completed else ZERO
    customers = {customer_key(order.customer_email) for order in completed}
    customers.discard("")

    return RevenueWindowSummary(
        total_revenue=total_revenue,
        total_orders=len(selected),
        completed_orders=len(completed),
        average_order_value=average,
        pending_count=breakdown["pending"],
        unique_customers=len(customers),
        status_breakdown=breakdown,
    )


def daily_revenue(orders: Iterable[Order], window: Window, tz: tzinfo) -> list[DailyRevenue]:
    buckets: dict[date, list[Decimal]] = {}
    for order in in_window(orders, window):
        if order.status != "completed":
            continue
        day = _as_utc(order.created_at).astimezone(tz).date()
        buckets.setdefault(day, []).append(order.total_amount)
    return [
        DailyRevenue(day=day, revenue=sum(amounts, ZERO), orders=len(amounts))
        for day, amounts in sorted(buckets.items())
    ]


def load_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"unknown timezone: {name}") from exc


def _local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(0, 0), tzinfo=tz).astimezone(timezone.utc)


def _parse_instant(text: str) -> datetime:
    return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))


def resolve_window(selector: str | None, now: datetime, tz: tzinfo) -> Window:
    """Turn a dashboard window selector into a window.

    Accepts ``all``, ``today``, ``7d``/``30d``/``90d`` (trailing days including
    today), ``mtd`` and an explicit ISO ``start/end`` period.
    """
    text = (selector or ALL_TIME).strip().lower()
    if text == ALL_TIME:
        return ALL_TIME

    today = _as_utc(now).astimezone(tz).date()
    if text == "today":
        return RevenueWindow(start=_local_midnight(today, tz))
    if text == "mtd":
        return RevenueWindow(start=_local_midnight(today.replace(day=1), tz))
    if text.endswith("d") and text[:-1].isdigit():
        days = int(text[:-1])
        if days < 1:
            raise ValidationError("window must cover at least one day")
        return RevenueWindow(start=_local_midnight(today - timedelta(days=days - 1), tz))

    if "/" in text:
        start_text, end_text = (selector or "").strip().split("/", 1)
        try:
            start = _parse_instant(start_text)
            end = _parse_instant(end_text) if end_text else None
        except ValueError as exc:
            raise ValidationError(f"invalid window period: {selector}") from exc
        if end is not None and not end > start:
            raise ValidationError("window end must be greater than start")
        return RevenueWindow(start=start, end=end)

    raise ValidationError(f"unsupported window: {selector}")
