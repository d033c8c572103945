from __future__ import annotations

import base64
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import Engine, and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from walkin.application.ports.repositories import (
    DuplicatePlatformFeeError,
    GeoTokenConsumedError,
    InvalidCursorError,
    OptimisticConcurrencyError,
    OrderRepository,
)
from walkin.domain.common.ids import LocationId, MenuItemId, OrderId, OrderItemId
from walkin.domain.common.money import Money
from walkin.domain.order.entities import (
    Order,
    OrderItem,
    OrderItemModifier,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from walkin.domain.payment.fees import PlatformFee
from walkin.infrastructure.db.models.order import (
    OrderItemModel,
    OrderItemModifierModel,
    OrderModel,
)
from walkin.infrastructure.db.repositories.geo_token_repo import consume_geo_token
from walkin.infrastructure.db.repositories.platform_fee_repo import to_platform_fee_model
from walkin.infrastructure.db.repositories.sequence_repo import allocate_order_number
from walkin.infrastructure.db.session import get_engine


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAlchemyOrderRepository(OrderRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def _select(self):
        return select(OrderModel).options(
            selectinload(OrderModel.items).selectinload(OrderItemModel.modifiers)
        )

    def add_placed(
        self,
        order: Order,
        business_date: date,
        geo_token: str,
        platform_fee: PlatformFee | None = None,
    ) -> Order:
        """Number, persist and consume the geo token for a new order in one transaction."""
        with Session(self._engine) as session:
            number = allocate_order_number(session, order.location_id, business_date)
            numbered = replace(order, order_number=number, version=1)
            session.add(self._to_model(numbered, business_date, geo_token))
            session.flush()
            if platform_fee is not None:
                session.add(to_platform_fee_model(platform_fee))
                session.flush()

            if not consume_geo_token(session, geo_token, now=order.placed_at):
                session.rollback()
                raise GeoTokenConsumedError(f"geo token already used for order {order.order_id}")
            session.commit()
        return numbered

    def get(self, order_id: OrderId) -> Order | None:
        statement = self._select().where(OrderModel.id == str(order_id)).limit(1)
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
            return self._to_domain(model) if model is not None else None

    def get_by_payment_intent(self, payment_intent_id: str) -> Order | None:
        statement = (
            self._select().where(OrderModel.payment_intent_id == payment_intent_id).limit(1)
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
            return self._to_domain(model) if model is not None else None

    def save_with_version(self, order: Order, expected_version: int) -> Order:
        with Session(self._engine) as session:
            self._update_with_version(session, order, expected_version)
            session.commit()
        return replace(order, version=expected_version + 1)

    def record_capture(
        self,
        order: Order,
        expected_version: int,
        platform_fee: PlatformFee,
    ) -> Order:
        with Session(self._engine) as session:
            self._update_with_version(session, order, expected_version)
            session.add(to_platform_fee_model(platform_fee))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicatePlatformFeeError(
                    f"platform fee already recorded for order {order.order_id}"
                ) from exc
        return replace(order, version=expected_version + 1)

    def list_for_location(
        self,
        location_id: LocationId,
        statuses: frozenset[OrderStatus] | None,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]:
        statement = self._select().where(OrderModel.location_id == str(location_id))
        if statuses is not None:
            statement = statement.where(
                OrderModel.status.in_(sorted(status.value for status in statuses))
            )

        cursor_parts = _decode_cursor(cursor) if cursor else None
        if cursor_parts is not None:
            cursor_placed_at, cursor_order_id = cursor_parts
            statement = statement.where(
                or_(
                    OrderModel.placed_at < cursor_placed_at,
                    and_(
                        OrderModel.placed_at == cursor_placed_at,
                        OrderModel.id < cursor_order_id,
                    ),
                )
            )

        statement = statement.order_by(OrderModel.placed_at.desc(), OrderModel.id.desc()).limit(
            limit + 1
        )

        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
            has_more = len(models) > limit
            page_models = models[:limit]
            orders = [self._to_domain(model) for model in page_models]

        next_cursor: str | None = None
        if has_more and orders:
            last = orders[-1]
            next_cursor = _encode_cursor(last.placed_at, str(last.order_id))
        return orders, next_cursor

    def _update_with_version(self, session: Session, order: Order, expected_version: int) -> None:
        statement = (
            update(OrderModel)
            .where(
                OrderModel.id == str(order.order_id),
                OrderModel.version == expected_version,
            )
            .values(**self._mutable_values(order), version=OrderModel.version + 1)
        )
        result = session.execute(statement)
        if result.rowcount != 1:
            session.rollback()
            raise OptimisticConcurrencyError(f"order {order.order_id} version conflict")

    def _mutable_values(self, order: Order) -> dict[str, Any]:
        return {
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "payment_intent_id": order.payment_intent_id,
            "accepted_at": order.accepted_at,
            "completed_at": order.completed_at,
            "cancelled_at": order.cancelled_at,
            "cancelled_reason": order.cancelled_reason,
        }

    def _to_model(self, order: Order, business_date: date, geo_token: str) -> OrderModel:
        order_model = OrderModel(
            id=str(order.order_id),
            location_id=str(order.location_id),
            order_number=order.order_number,
            business_date=business_date,
            payment_method=order.payment_method.value,
            subtotal_cents=order.subtotal.amount_cents,
            tax_cents=order.tax.amount_cents,
            tip_cents=order.tip.amount_cents,
            total_cents=order.total.amount_cents,
            currency=order.currency,
            table_number=order.table_number,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            special_instructions=order.special_instructions,
            geo_token=geo_token,
            placed_at=order.placed_at,
            version=order.version,
            **self._mutable_values(order),
        )
        order_model.items = [
            OrderItemModel(
                id=str(item.item_id),
                order_id=str(order.order_id),
                position=position,
                menu_item_id=str(item.menu_item_id),
                name=item.name,
                quantity=item.quantity,
                unit_price_cents=item.unit_price.amount_cents,
                currency=item.unit_price.currency,
                line_total_cents=item.line_total.amount_cents,
                special_instructions=item.special_instructions,
                modifiers=[
                    OrderItemModifierModel(
                        option_name=modifier.option_name,
                        value_name=modifier.value_name,
                        price_delta_cents=modifier.price_delta_cents,
                    )
                    for modifier in item.modifiers
                ],
            )
            for position, item in enumerate(order.items)
        ]
        return order_model

    def _to_domain(self, model: OrderModel) -> Order:
        currency = model.currency
        items = [
            OrderItem(
                item_id=OrderItemId(item.id),
                menu_item_id=MenuItemId(item.menu_item_id),
                name=item.name,
                quantity=item.quantity,
                unit_price=Money(amount_cents=item.unit_price_cents, currency=item.currency),
                line_total=Money(amount_cents=item.line_total_cents, currency=item.currency),
                modifiers=tuple(
                    OrderItemModifier(
                        option_name=modifier.option_name,
                        value_name=modifier.value_name,
                        price_delta_cents=modifier.price_delta_cents,
                    )
                    for modifier in item.modifiers
                ),
                special_instructions=item.special_instructions,
            )
            for item in model.items
        ]
        return Order(
            order_id=OrderId(model.id),
            location_id=LocationId(model.location_id),
            order_number=model.order_number,
            status=OrderStatus(model.status),
            payment_status=PaymentStatus(model.payment_status),
            payment_method=PaymentMethod(model.payment_method),
            items=items,
            subtotal=Money(amount_cents=model.subtotal_cents, currency=currency),
            tax=Money(amount_cents=model.tax_cents, currency=currency),
            tip=Money(amount_cents=model.tip_cents, currency=currency),
            total=Money(amount_cents=model.total_cents, currency=currency),
            placed_at=_as_utc(model.placed_at),
            table_number=model.table_number,
            customer_name=model.customer_name,
            customer_phone=model.customer_phone,
            special_instructions=model.special_instructions,
            payment_intent_id=model.payment_intent_id,
            accepted_at=_as_utc(model.accepted_at),
            completed_at=_as_utc(model.completed_at),
            cancelled_at=_as_utc(model.cancelled_at),
            cancelled_reason=model.cancelled_reason,
            version=model.version,
        )


def _encode_cursor(placed_at: datetime, order_id: str) -> str:
    payload = f"{placed_at.isoformat()}|{order_id}"
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def _decode_cursor(cursor: str) -> tuple[datetime, str]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        placed_at_raw, order_id = raw.split("|", 1)
        placed_at = datetime.fromisoformat(placed_at_raw)
        if placed_at.tzinfo is None:
            placed_at = placed_at.replace(tzinfo=timezone.utc)
        return placed_at, order_id
    except Exception as exc:
        raise InvalidCursorError("invalid cursor") from exc
