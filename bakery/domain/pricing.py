"""Quote pricing for cookie orders.

Prices are point-in-time: an order stores the total quoted at creation and is
never repriced when the configuration changes.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from bakery.domain.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
# Largest single order the bakery accepts; keeps quantities and totals within column ranges.
MAX_QUANTITY = 100_000


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class DiscountTier(BaseModel):
    min_quantity: int = Field(ge=1)
    discount_fraction: Decimal = Field(ge=0, lt=1)


class PricingConfiguration(BaseModel):
    base_price: Decimal = Field(ge=0, decimal_places=2)
    discount_tiers: list[DiscountTier] = Field(default_factory=list)

    @field_validator("discount_tiers")
    @classmethod
    def _sorted_by_threshold(cls, value: list[DiscountTier]) -> list[DiscountTier]:
        return sorted(value, key=lambda tier: tier.min_quantity)

    @model_validator(mode="after")
    def _monotonic_tiers(self) -> "PricingConfiguration":
        seen: set[int] = set()
        previous = ZERO
        for tier in self.discount_tiers:
            if tier.min_quantity in seen:
                raise ValueError(f"duplicate discount tier threshold: {tier.min_quantity}")
            seen.add(tier.min_quantity)
            if tier.discount_fraction < previous:
                raise ValueError("discount tiers must not decrease as the quantity threshold grows")
            previous = tier.discount_fraction
        return self


@dataclass(frozen=True)
class Quote:
    quantity: int
    unit_price: Decimal
    total: Decimal
    discount_fraction: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "total": str(self.total),
            "discount_fraction": str(self.discount_fraction),
        }


def clamp_quantity(raw: Any) -> int:
    """Floor-clamp raw form input the way the quote wizard does: junk and
    anything below one becomes one."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        try:
            value = int(Decimal(str(raw)))
        except (InvalidOperation, ValueError, OverflowError):
            return 1
    return max(1, value)


def select_discount(quantity: int, config: PricingConfiguration) -> Decimal:
    for tier in sorted(config.discount_tiers, key=lambda t: t.min_quantity, reverse=True):
        if quantity >= tier.min_quantity:
            return tier.discount_fraction
    return ZERO


def quote(quantity: int, config: PricingConfiguration) -> Quote:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError(f"quantity must be a positive integer, got {quantity!r}; clamp before quoting")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity {quantity} is above the maximum of {MAX_QUANTITY}")

    discount = select_discount(quantity, config)
    # Unit price is rounded before multiplying; rounding only the total can differ by a cent.
    unit_price = round2(config.base_price * (Decimal("1") - discount))
    total = round2(unit_price * quantity)
    return Quote(quantity=quantity, unit_price=unit_price, total=total, discount_fraction=discount)


def build_configuration(base_price: Any, discount_tiers: list[dict]) -> PricingConfiguration:
    try:
        return PricingConfiguration.model_validate(
            {"base_price": base_price, "discount_tiers": discount_tiers}
        )
    except ValueError as exc:
        raise ValidationError(f"invalid pricing configuration: {exc}") from exc
