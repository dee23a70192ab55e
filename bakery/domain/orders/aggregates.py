from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

OrderStatus = Literal["pending", "confirmed", "in_progress", "completed", "cancelled"]

ORDER_STATUSES: tuple[str, ...] = ("pending", "confirmed", "in_progress", "completed", "cancelled")
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "cancelled"})
INITIAL_STATUS: OrderStatus = "pending"


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OrderItem(BaseModel):
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    description: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


class Order(BaseModel):
    id: str
    display_id: str | None = None
    created_at: datetime
    updated_at: datetime
    status: OrderStatus = INITIAL_STATUS
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    quantity: int = Field(ge=1)
    description: str
    category: str = ""
    shape: str = ""
    special_fonts: str = ""
    special_instructions: str = ""
    total_amount: Decimal = Field(ge=0)
    items: list[OrderItem] = Field(default_factory=list)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _to_utc(value)

    @property
    def order_number(self) -> str:
        return self.display_id or self.id[:8]


class OrderRequest(BaseModel):
    """What the quote wizard submits; pricing fills in the rest."""

    customer_name: str = Field(min_length=1)
    customer_email: str = Field(min_length=3)
    customer_phone: str | None = None
    # Raw wizard input; the service clamps it before quoting.
    quantity: int | float | str | None = 1
    description: str
    category: str = ""
    shape: str = ""
    special_fonts: str = ""
    special_instructions: str = ""

    @field_validator("description")
    @classmethod
    def _description_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("description must not be empty")
        return value.strip()

    @field_validator("customer_phone")
    @classmethod
    def _blank_phone_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()
