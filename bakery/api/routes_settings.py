from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from bakery.core.security import Actor, require_admin
from bakery.domain.pricing import PricingConfiguration, build_configuration
from bakery.notifications.templates import DEFAULT_TEMPLATES, ensure_template_name
from bakery.persistence.pg import get_session
from bakery.persistence.store import SqlOrderStore

router = APIRouter(prefix="/admin", tags=["settings"])


class DiscountTierIn(BaseModel):
    min_quantity: int
    discount_fraction: Decimal


class PricingUpdateRequest(BaseModel):
    base_price: Decimal
    discount_tiers: list[DiscountTierIn] = Field(default_factory=list)


class TemplateUpdateRequest(BaseModel):
    html_content: str


def _pricing_payload(config: PricingConfiguration) -> dict:
    return {
        "base_price": str(config.base_price),
        "discount_tiers": [
            {"min_quantity": tier.min_quantity, "discount_fraction": str(tier.discount_fraction)}
            for tier in config.discount_tiers
        ],
    }


@router.get("/pricing")
def get_pricing(_: Actor = Depends(require_admin), session: Session = Depends(get_session)):
    return {"pricing": _pricing_payload(SqlOrderStore(session).get_config())}


@router.put("/pricing")
def save_pricing(
    request: PricingUpdateRequest,
    _: Actor = Depends(require_admin),
    session: Session = Depends(get_session),
):
    config = build_configuration(
        request.base_price,
        [tier.model_dump() for tier in request.discount_tiers],
    )
    saved = SqlOrderStore(session).save_config(config)
    return {"pricing": _pricing_payload(saved)}


@router.get("/email-templates/{name}")
def get_email_template(name: str, _: Actor = Depends(require_admin), session: Session = Depends(get_session)):
    ensure_template_name(name)
    stored = SqlOrderStore(session).get_template(name)
    return {
        "name": name,
        "html_content": stored or DEFAULT_TEMPLATES[name],
        "is_default": stored is None,
    }


@router.put("/email-templates/{name}")
def save_email_template(
    name: str,
    request: TemplateUpdateRequest,
    _: Actor = Depends(require_admin),
    session: Session = Depends(get_session),
):
    ensure_template_name(name)
    SqlOrderStore(session).save_template(name, request.html_content)
    return {"name": name, "saved": True}
