from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict

from bakery.api.utils import get_order_service, now_utc, order_detail, order_summary, parse_instant
from bakery.core.security import Actor, require_admin
from bakery.domain.orders.aggregates import OrderStatus
from bakery.domain.orders.lifecycle import allowed_targets
from bakery.domain.orders.service import OrderService
from bakery.export.documents import order_document, orders_to_csv
from bakery.persistence.store import OrderQuery

router = APIRouter(prefix="/admin/orders", tags=["orders"])


class StatusChangeRequest(BaseModel):
    status: OrderStatus


class OrderPatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: OrderStatus | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    quantity: int | None = None
    description: str | None = None
    category: str | None = None
    shape: str | None = None
    special_fonts: str | None = None
    special_instructions: str | None = None
    total_amount: Decimal | None = None


def _build_query(
    status: list[str] | None,
    q: str | None,
    start: str | None,
    end: str | None,
    min_total: Decimal | None,
    max_total: Decimal | None,
    sort: str,
    direction: str,
    limit: int | None,
    offset: int,
) -> OrderQuery:
    try:
        created_from = parse_instant(start) if start else None
        created_to = parse_instant(end) if end else None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"invalid date filter: {exc}") from exc
    return OrderQuery(
        statuses=status or [],
        email_contains=q or None,
        created_from=created_from,
        created_to=created_to,
        min_total=min_total,
        max_total=max_total,
        sort=sort,
        direction=direction,
        limit=limit,
        offset=offset,
    )


@router.get("")
def list_orders(
    status: list[str] | None = Query(default=None),
    q: str | None = Query(default=None, description="customer email contains"),
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    min_total: Decimal | None = Query(default=None, ge=0),
    max_total: Decimal | None = Query(default=None, ge=0),
    sort: Literal["created_at", "total_amount", "status"] = Query(default="created_at"),
    direction: Literal["asc", "desc"] = Query(default="desc"),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    query = _build_query(status, q, start, end, min_total, max_total, sort, direction, limit, offset)
    orders = service.list_orders(query)
    return {"count": len(orders), "orders": [order_summary(order) for order in orders]}


@router.get("/export.csv")
def export_orders_csv(
    status: list[str] | None = Query(default=None),
    q: str | None = Query(default=None),
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    query = _build_query(status, q, start, end, None, None, "created_at", "desc", None, 0)
    orders = service.list_orders(query)
    filename = f"orders-{now_utc().date().isoformat()}.csv"
    return Response(
        content=orders_to_csv(orders),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{order_id}")
def get_order(
    order_id: str,
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_order(order_id)
    return {"order": order_detail(order), "allowed_statuses": allowed_targets(order.status)}


@router.get("/{order_id}/document")
def get_order_document(
    order_id: str,
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return order_document(service.get_order(order_id))


@router.patch("/{order_id}")
def patch_order(
    order_id: str,
    request: OrderPatchRequest,
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    fields: dict[str, Any] = request.model_dump(exclude_unset=True)
    order = service.update_order(order_id, fields)
    return {"order": order_detail(order)}


@router.post("/{order_id}/status")
def change_status(
    order_id: str,
    request: StatusChangeRequest,
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    order = service.change_status(order_id, request.status)
    return {"order": order_detail(order), "allowed_statuses": allowed_targets(order.status)}


@router.post("/{order_id}/resend-confirmation")
def resend_confirmation(
    order_id: str,
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return {"notification": service.resend_confirmation(order_id).to_dict()}


@router.post("/{order_id}/reminder")
def send_reminder(
    order_id: str,
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return {"notification": service.send_admin_reminder(order_id).to_dict()}


@router.delete("/{order_id}")
def delete_order(
    order_id: str,
    _: Actor = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    service.delete_order(order_id)
    return {"deleted": order_id}
