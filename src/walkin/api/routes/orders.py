from __future__ import annotations

from fastapi import APIRouter, status

from walkin.api.dependencies import location_repository, payment_gateway
from walkin.api.middleware.request_id import get_request_id
from walkin.application.dto.requests import PlaceOrderRequest
from walkin.application.dto.responses import (
    OrderResponse,
    OrderStatusResponse,
    PaymentIntentResponse,
)
from walkin.application.use_cases.context import TraceContext
from walkin.application.use_cases.create_payment_intent import CreatePaymentIntent
from walkin.application.use_cases.get_order import GetCustomerOrder
from walkin.application.use_cases.place_order import PlaceOrder
from walkin.domain.common.ids import OrderId
from walkin.infrastructure.db.repositories.geo_token_repo import SqlAlchemyGeoTokenRepository
from walkin.infrastructure.db.repositories.menu_repo import SqlAlchemyMenuRepository
from walkin.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from walkin.infrastructure.messaging.redis_publisher import RedisEventPublisher
from walkin.infrastructure.observability.otel import current_trace_id
from walkin.infrastructure.settings import load_settings

router = APIRouter()


def _place_order_use_case() -> PlaceOrder:
    return PlaceOrder(
        location_repository=location_repository(),
        menu_repository=SqlAlchemyMenuRepository(),
        geo_token_repository=SqlAlchemyGeoTokenRepository(),
        order_repository=SqlAlchemyOrderRepository(),
        publisher=RedisEventPublisher(),
        platform_fee_percentage=load_settings().platform_fee_percentage,
    )


def _get_customer_order_use_case() -> GetCustomerOrder:
    return GetCustomerOrder(
        location_repository=location_repository(),
        order_repository=SqlAlchemyOrderRepository(),
    )


def _create_payment_intent_use_case() -> CreatePaymentIntent:
    return CreatePaymentIntent(
        location_repository=location_repository(),
        order_repository=SqlAlchemyOrderRepository(),
        gateway=payment_gateway(),
        platform_fee_percentage=load_settings().platform_fee_percentage,
    )


@router.post(
    "/v1/locations/{public_code}/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def place_order(public_code: str, request_dto: PlaceOrderRequest) -> OrderResponse:
    return _place_order_use_case().execute(
        public_code=public_code,
        request_dto=request_dto,
        trace_ctx=TraceContext(trace_id=current_trace_id(), request_id=get_request_id()),
    )


@router.get("/v1/locations/{public_code}/orders/{order_id}", response_model=OrderResponse)
def get_order(public_code: str, order_id: str) -> OrderResponse:
    return _get_customer_order_use_case().execute(public_code, OrderId(order_id))


@router.get(
    "/v1/locations/{public_code}/orders/{order_id}/status",
    response_model=OrderStatusResponse,
)
def get_order_status(public_code: str, order_id: str) -> OrderStatusResponse:
    return _get_customer_order_use_case().status(public_code, OrderId(order_id))


@router.post(
    "/v1/locations/{public_code}/orders/{order_id}/payment-intent",
    response_model=PaymentIntentResponse,
)
def create_payment_intent(public_code: str, order_id: str) -> PaymentIntentResponse:
    return _create_payment_intent_use_case().execute(public_code, OrderId(order_id))
