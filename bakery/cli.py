from __future__ import annotations

import argparse
import json
from datetime import timedelta

from bakery.api.utils import now_utc
from bakery.core.config import get_settings
from bakery.core.logging import configure_logging
from bakery.domain.analytics.customers import aggregate, search_customers
from bakery.domain.analytics.revenue import daily_revenue, load_timezone, resolve_window, summarize
from bakery.domain.orders.service import OrderService
from bakery.notifications.dispatcher import get_dispatcher
from bakery.notifications.scheduler import get_notification_scheduler, shutdown_notification_scheduler
from bakery.persistence.pg import init_db, session_scope
from bakery.persistence.store import SqlOrderStore


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cookie order pipeline CLI")
    top = parser.add_subparsers(dest="command", required=True)

    quote = top.add_parser("quote", help="Price a quantity with the stored pricing configuration")
    quote.add_argument("--quantity", required=True, help="Cookie count; clamped to at least 1")

    customers = top.add_parser("customers", help="Per-customer order summaries")
    customers.add_argument("--query", default=None, help="Filter by name, email or phone")

    revenue = top.add_parser("revenue", help="Revenue KPIs for a window")
    revenue.add_argument("--window", default="all", help="all | today | 7d | 30d | 90d | mtd | start/end")
    revenue.add_argument("--daily", action="store_true", help="Include the daily revenue series")

    remind = top.add_parser("remind-pending", help="Email the operator about stale pending orders")
    remind.add_argument("--older-than-hours", type=float, default=24.0)

    return parser


def _print(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _run(args: argparse.Namespace) -> int:
    init_db()
    settings = get_settings()
    with session_scope() as session:
        service = OrderService(
            store=SqlOrderStore(session),
            dispatcher=get_dispatcher(),
            scheduler=get_notification_scheduler(),
        )

        if args.command == "quote":
            config = service.pricing()
            _print({"quote": service.quote(args.quantity, config).to_dict(), "base_price": str(config.base_price)})
            return 0

        if args.command == "customers":
            summaries = aggregate(service.list_orders())
            matched = search_customers(summaries.values(), args.query)
            _print({"count": len(matched), "customers": [s.to_dict(include_orders=False) for s in matched]})
            return 0

        if args.command == "revenue":
            tz = load_timezone(settings.display_timezone)
            window = resolve_window(args.window, now_utc(), tz)
            orders = service.list_orders()
            out: dict = {"summary": summarize(orders, window).to_dict()}
            if args.daily:
                out["daily"] = [point.to_dict() for point in daily_revenue(orders, window, tz)]
            _print(out)
            return 0

        if args.command == "remind-pending":
            outcomes = service.send_pending_reminders(timedelta(hours=args.older_than_hours))
            _print({"reminders": outcomes})
            return 0 if all(item["sent"] for item in outcomes) else 1

    return 2


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return _run(args)
    finally:
        shutdown_notification_scheduler()


if __name__ == "__main__":
    raise SystemExit(main())
