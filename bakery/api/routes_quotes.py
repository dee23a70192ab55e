from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from bakery.api.utils import get_order_service, order_detail
from bakery.domain.orders.aggregates import OrderRequest
from bakery.domain.orders.service import OrderService

router = APIRouter(tags=["quotes"])


class QuoteRequest(BaseModel):
    quantity: Any = 1


@router.post("/quotes")
def create_quote(request: QuoteRequest, service: OrderService = Depends(get_order_service)):
    config = service.pricing()
    priced = service.quote(request.quantity, config)
    return {
        "quote": priced.to_dict(),
        "base_price": str(config.base_price),
    }


@router.post("/orders", status_code=201)
def submit_order(request: OrderRequest, service: OrderService = Depends(get_order_service)):
    order = service.create_order(request)
    return {"order": order_detail(order)}
