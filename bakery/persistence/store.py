from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterator, Literal, Protocol

from pydantic import BaseModel, Field
from sqlalchemy import Select, asc, delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bakery.core.config import get_settings
from bakery.domain.errors import DownstreamError, NotFoundError, ValidationError
from bakery.domain.orders.aggregates import Order, OrderItem
from bakery.domain.pricing import CENT, PricingConfiguration, build_configuration
from bakery.persistence.models import EmailTemplateModel, OrderItemModel, OrderModel, PricingSettingsModel

PRICING_SETTINGS_ID = 1

EDITABLE_FIELDS = frozenset(
    {
        "status",
        "customer_name",
        "customer_email",
        "customer_phone",
        "quantity",
        "description",
        "category",
        "shape",
        "special_fonts",
        "special_instructions",
        "total_amount",
        "updated_at",
    }
)

SortField = Literal["created_at", "total_amount", "status"]


def to_cents(value: Decimal) -> int:
    return int((Decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(CENT)


class OrderQuery(BaseModel):
    statuses: list[str] = Field(default_factory=list)
    email_contains: str | None = None
    # created_from is inclusive, created_to exclusive, like revenue windows.
    created_from: datetime | None = None
    created_to: datetime | None = None
    min_total: Decimal | None = None
    max_total: Decimal | None = None
    sort: SortField = "created_at"
    direction: Literal["asc", "desc"] = "desc"
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)


class OrderRecordStore(Protocol):
    """Generic record interface the order engine is written against.

    Every mutating call is one physical operation that is durable on return.
    """

    def create_order(self, order: Order) -> Order:
        ...

    def get_order(self, order_id: str) -> Order | None:
        ...

    def update_order(self, order_id: str, fields: dict[str, Any]) -> Order:
        ...

    def delete_order_items(self, order_id: str) -> int:
        ...

    def delete_order(self, order_id: str) -> bool:
        ...

    def query_orders(self, query: OrderQuery | None = None) -> list[Order]:
        ...

    def get_config(self) -> PricingConfiguration:
        ...

    def save_config(self, config: PricingConfiguration) -> PricingConfiguration:
        ...

    def get_template(self, name: str) -> str | None:
        ...

    def save_template(self, name: str, html_content: str) -> None:
        ...


class SqlOrderStore:
    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise DownstreamError(f"record store {action} failed: {exc}") from exc

    def _commit(self) -> None:
        self.session.flush()
        self.session.commit()

    def _order_row(self, order_id: str) -> OrderModel | None:
        return self.session.scalar(select(OrderModel).where(OrderModel.order_id == order_id))

    def _items_by_order(self, order_ids: list[str]) -> dict[str, list[OrderItem]]:
        if not order_ids:
            return {}
        rows = self.session.scalars(
            select(OrderItemModel)
            .where(OrderItemModel.order_id.in_(order_ids))
            .order_by(OrderItemModel.order_id.asc(), OrderItemModel.position.asc(), OrderItemModel.id.asc())
        ).all()
        grouped: dict[str, list[OrderItem]] = {}
        for row in rows:
            grouped.setdefault(row.order_id, []).append(
                OrderItem(
                    quantity=row.quantity,
                    unit_price=from_cents(row.unit_price_cents),
                    description=row.description,
                )
            )
        return grouped

    @staticmethod
    def _to_domain(row: OrderModel, items: list[OrderItem]) -> Order:
        return Order(
            id=row.order_id,
            display_id=row.display_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            status=row.status,
            customer_name=row.customer_name,
            customer_email=row.customer_email,
            customer_phone=row.customer_phone,
            quantity=row.quantity,
            description=row.description,
            category=row.category,
            shape=row.shape,
            special_fonts=row.special_fonts,
            special_instructions=row.special_instructions,
            total_amount=from_cents(row.total_amount_cents),
            items=items,
        )

    def create_order(self, order: Order) -> Order:
        settings = get_settings()
        with self._guard("create"):
            row = OrderModel(
                order_id=order.id,
                created_at=order.created_at,
                updated_at=order.updated_at,
                status=order.status,
                customer_name=order.customer_name,
                customer_email=order.customer_email,
                customer_phone=order.customer_phone,
                quantity=order.quantity,
                description=order.description,
                category=order.category,
                shape=order.shape,
                special_fonts=order.special_fonts,
                special_instructions=order.special_instructions,
                total_amount_cents=to_cents(order.total_amount),
            )
            self.session.add(row)
            self.session.flush()
            row.display_id = order.display_id or f"{settings.order_number_prefix}{row.seq_id:03d}"
            for position, item in enumerate(order.items):
                self.session.add(
                    OrderItemModel(
                        order_id=order.id,
                        position=position,
                        quantity=item.quantity,
                        unit_price_cents=to_cents(item.unit_price),
                        description=item.description,
                    )
                )
            self._commit()
        return order.model_copy(update={"display_id": row.display_id})

    def get_order(self, order_id: str) -> Order | None:
        with self._guard("read"):
            row = self._order_row(order_id)
            if row is None:
                return None
            items = self._items_by_order([order_id]).get(order_id, [])
        return self._to_domain(row, items)

    def update_order(self, order_id: str, fields: dict[str, Any]) -> Order:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"fields are not editable: {', '.join(sorted(unknown))}")

        with self._guard("update"):
            row = self._order_row(order_id)
            if row is None:
                raise NotFoundError(f"order not found: {order_id}")
            for name, value in fields.items():
                if name == "total_amount":
                    row.total_amount_cents = to_cents(value)
                else:
                    setattr(row, name, value)
            if "updated_at" not in fields:
                row.updated_at = datetime.now(timezone.utc)
            self._commit()
        updated = self.get_order(order_id)
        if updated is None:  # pragma: no cover - deleted concurrently
            raise NotFoundError(f"order not found: {order_id}")
        return updated

    def delete_order_items(self, order_id: str) -> int:
        with self._guard("delete items"):
            result = self.session.execute(delete(OrderItemModel).where(OrderItemModel.order_id == order_id))
            self._commit()
        return int(result.rowcount or 0)

    def delete_order(self, order_id: str) -> bool:
        with self._guard("delete"):
            result = self.session.execute(delete(OrderModel).where(OrderModel.order_id == order_id))
            self._commit()
        return bool(result.rowcount)

    def _apply_filters(self, stmt: Select, query: OrderQuery) -> Select:
        if query.statuses:
            stmt = stmt.where(OrderModel.status.in_(query.statuses))
        if query.email_contains:
            stmt = stmt.where(func.lower(OrderModel.customer_email).contains(query.email_contains.strip().lower()))
        if query.created_from is not None:
            stmt = stmt.where(OrderModel.created_at >= query.created_from)
        if query.created_to is not None:
            stmt = stmt.where(OrderModel.created_at < query.created_to)
        if query.min_total is not None:
            stmt = stmt.where(OrderModel.total_amount_cents >= to_cents(query.min_total))
        if query.max_total is not None:
            stmt = stmt.where(OrderModel.total_amount_cents <= to_cents(query.max_total))
        return stmt

    def query_orders(self, query: OrderQuery | None = None) -> list[Order]:
        query = query or OrderQuery()
        sort_column = {
            "created_at": OrderModel.created_at,
            "total_amount": OrderModel.total_amount_cents,
            "status": OrderModel.status,
        }[query.sort]
        order_fn = desc if query.direction == "desc" else asc

        stmt = self._apply_filters(select(OrderModel), query)
        stmt = stmt.order_by(order_fn(sort_column), order_fn(OrderModel.seq_id)).offset(query.offset)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        with self._guard("query"):
            rows = list(self.session.scalars(stmt).all())
            items = self._items_by_order([row.order_id for row in rows])
        return [self._to_domain(row, items.get(row.order_id, [])) for row in rows]

    def get_config(self) -> PricingConfiguration:
        with self._guard("read config"):
            row = self.session.get(PricingSettingsModel, PRICING_SETTINGS_ID)
        if row is None:
            settings = get_settings()
            default = build_configuration(settings.default_base_price, settings.default_discount_tiers)
            return self.save_config(default)
        return build_configuration(from_cents(row.base_price_cents), row.discount_tiers)

    def save_config(self, config: PricingConfiguration) -> PricingConfiguration:
        tiers = [
            {"min_quantity": tier.min_quantity, "discount_fraction": str(tier.discount_fraction)}
            for tier in config.discount_tiers
        ]
        with self._guard("save config"):
            row = self.session.get(PricingSettingsModel, PRICING_SETTINGS_ID)
            if row is None:
                row = PricingSettingsModel(id=PRICING_SETTINGS_ID, base_price_cents=0, discount_tiers=[])
                self.session.add(row)
            row.base_price_cents = to_cents(config.base_price)
            row.discount_tiers = tiers
            row.updated_at = datetime.now(timezone.utc)
            self._commit()
        return config

    def get_template(self, name: str) -> str | None:
        with self._guard("read template"):
            row = self.session.get(EmailTemplateModel, name)
        if row is None or not row.html_content.strip():
            return None
        return row.html_content

    def save_template(self, name: str, html_content: str) -> None:
        with self._guard("save template"):
            row = self.session.get(EmailTemplateModel, name)
            if row is None:
                row = EmailTemplateModel(name=name, html_content=html_content, updated_at=datetime.now(timezone.utc))
                self.session.add(row)
            else:
                row.html_content = html_content
                row.updated_at = datetime.now(timezone.utc)
            self._commit()
