from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable
from uuid import uuid4

from walkin.application.dto.requests import OrderItemRequest, PlaceOrderRequest
from walkin.application.dto.responses import OrderResponse
from walkin.application.mappers.order_mapper import to_order_response
from walkin.application.metrics.order_lifecycle import record_order_placed
from walkin.application.ports.publisher import EventPublisher
from walkin.application.ports.repositories import (
    GeoTokenConsumedError,
    GeoTokenRepository,
    LocationRepository,
    MenuRepository,
    OrderRepository,
)
from walkin.application.use_cases.context import TraceContext, utc_now
from walkin.application.use_cases.lookup import require_location
from walkin.application.use_cases.notify import publish_order_event
from walkin.domain.common.ids import MenuItemId, OrderId, OrderItemId
from walkin.domain.common.money import Money
from walkin.domain.menu.entities import MenuItem
from walkin.domain.order.entities import (
    OrderItem,
    OrderItemModifier,
    PaymentMethod,
    create_placed_order,
)
from walkin.domain.payment.fees import compute_fee_split
from walkin.domain.pricing.engine import compute_line_total

logger = logging.getLogger(__name__)


class InvalidGeoTokenError(Exception):
    pass


class GeoTokenAlreadyUsedError(Exception):
    pass


class MenuItemNotFoundError(Exception):
    pass


class MenuItemUnavailableError(Exception):
    pass


class InvalidOrderLineError(Exception):
    pass


class PlaceOrder:
    def __init__(
        self,
        location_repository: LocationRepository,
        menu_repository: MenuRepository,
        geo_token_repository: GeoTokenRepository,
        order_repository: OrderRepository,
        publisher: EventPublisher,
        platform_fee_percentage: Decimal = Decimal("3"),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._location_repository = location_repository
        self._menu_repository = menu_repository
        self._geo_token_repository = geo_token_repository
        self._order_repository = order_repository
        self._publisher = publisher
        self._platform_fee_percentage = platform_fee_percentage
        self._clock = clock

    def execute(
        self,
        public_code: str,
        request_dto: PlaceOrderRequest,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        location = require_location(self._location_repository, public_code)
        now = self._clock()

        token = self._geo_token_repository.find_valid(
            request_dto.geo_token, location.location_id, now
        )
        if token is None:
            raise InvalidGeoTokenError("location verification expired or invalid")

        menu_items = self._menu_repository.get_items(
            location.location_id,
            [MenuItemId(item.menu_item_id) for item in request_dto.items],
        )
        order_items = [
            _build_order_item(request_item, menu_items) for request_item in request_dto.items
        ]

        try:
            order = create_placed_order(
                order_id=OrderId(f"ord_{uuid4().hex[:12]}"),
                location_id=location.location_id,
                items=order_items,
                payment_method=request_dto.payment_method,
                tax_rate=location.tax_rate,
                tip_cents=request_dto.tip_minor_units,
                now=now,
                table_number=request_dto.table_number,
                customer_name=request_dto.customer_name,
                customer_phone=request_dto.customer_phone,
                special_instructions=request_dto.special_instructions,
            )
        except ValueError as exc:
            raise InvalidOrderLineError(str(exc)) from exc

        # Cash has no gateway fee, so its split is known at placement.
        platform_fee = None
        if order.payment_method == PaymentMethod.CASH:
            platform_fee = compute_fee_split(
                order,
                gateway_fee_cents=0,
                platform_fee_percentage=self._platform_fee_percentage,
                now=now,
            )

        try:
            persisted_order = self._order_repository.add_placed(
                order=order,
                business_date=location.local_date(now),
                geo_token=token.token,
                platform_fee=platform_fee,
            )
        except GeoTokenConsumedError as exc:
            raise GeoTokenAlreadyUsedError("location verification was already used") from exc

        logger.info(
            "order_placed",
            extra={
                "order_id": str(persisted_order.order_id),
                "location_id": str(persisted_order.location_id),
                "order_number": persisted_order.order_number,
            },
        )
        record_order_placed(persisted_order)
        publish_order_event(self._publisher, "order.placed", persisted_order, now, trace_ctx)
        return to_order_response(persisted_order)


def _build_order_item(
    request_item: OrderItemRequest,
    menu_items: dict[str, MenuItem],
) -> OrderItem:
    menu_item = menu_items.get(request_item.menu_item_id)
    if menu_item is None:
        raise MenuItemNotFoundError(f"menu item {request_item.menu_item_id} does not exist")
    if not menu_item.is_available:
        raise MenuItemUnavailableError(f"menu item {request_item.menu_item_id} is unavailable")

    unit_price = menu_item.price_money
    try:
        modifiers = tuple(
            OrderItemModifier(
                option_name=modifier.option_name,
                value_name=modifier.value_name,
                price_delta_cents=modifier.price_delta_minor_units,
            )
            for modifier in request_item.modifiers
        )
        line_total_cents = compute_line_total(
            unit_price.amount_cents,
            (modifier.price_delta_cents for modifier in modifiers),
            request_item.quantity,
        )
    except ValueError as exc:
        raise InvalidOrderLineError(str(exc)) from exc

    return OrderItem(
        item_id=OrderItemId(f"oit_{uuid4().hex[:12]}"),
        menu_item_id=menu_item.item_id,
        name=menu_item.name,
        quantity=request_item.quantity,
        unit_price=unit_price,
        line_total=Money(amount_cents=line_total_cents, currency=unit_price.currency),
        modifiers=modifiers,
        special_instructions=request_item.special_instructions,
    )
