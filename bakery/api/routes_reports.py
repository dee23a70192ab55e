from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from bakery.api.utils import get_order_service, now_utc
from bakery.core.config import get_settings
from bakery.core.security import Actor, require_admin
from bakery.domain.analytics.customers import aggregate, search_customers
from bakery.domain.analytics.revenue import ALL_TIME, daily_revenue, load_timezone, resolve_window, summarize
from bakery.domain.orders.service import OrderService

router = APIRouter(prefix="/admin/reports", tags=["reports"])


def _window_payload(window) -> dict | str:
    return ALL_TIME if window == ALL_TIME else window.to_dict()


@router.get("/customers")
def get_customers(
    q: str | None = Query(default=None, description="search name, email or phone"),
    include_orders: bool = Query(default=True),
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    summaries = aggregate(service.list_orders())
    matched = search_customers(summaries.values(), q)
    return {
        "total_customers": len(summaries),
        "count": len(matched),
        "customers": [summary.to_dict(include_orders=include_orders) for summary in matched],
    }


@router.get("/revenue")
def get_revenue(
    window: str = Query(default=ALL_TIME, description="all | today | 7d | 30d | 90d | mtd | start/end"),
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    tz = load_timezone(get_settings().display_timezone)
    resolved = resolve_window(window, now_utc(), tz)
    summary = summarize(service.list_orders(), resolved)
    return {"window": _window_payload(resolved), "summary": summary.to_dict()}


@router.get("/revenue/daily")
def get_daily_revenue(
    window: str = Query(default="30d"),
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    settings = get_settings()
    tz = load_timezone(settings.display_timezone)
    resolved = resolve_window(window, now_utc(), tz)
    series = daily_revenue(service.list_orders(), resolved, tz)
    return {
        "window": _window_payload(resolved),
        "timezone": settings.display_timezone,
        "series": [point.to_dict() for point in series],
    }
