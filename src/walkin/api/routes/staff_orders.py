from __future__ import annotations

from fastapi import APIRouter, Query

from walkin.api.middleware.request_id import get_request_id
from walkin.application.dto.requests import UpdateOrderStatusRequest
from walkin.application.dto.responses import OrderResponse, StaffOrderQueueResponse
from walkin.application.use_cases.context import TraceContext
from walkin.application.use_cases.get_order import GetOrder
from walkin.application.use_cases.mark_order_paid import MarkOrderPaid
from walkin.application.use_cases.staff_queue import StaffOrderQueue
from walkin.application.use_cases.update_order_status import UpdateOrderStatus
from walkin.domain.common.ids import LocationId, OrderId
from walkin.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from walkin.infrastructure.messaging.redis_publisher import RedisEventPublisher
from walkin.infrastructure.observability.otel import current_trace_id

router = APIRouter()


def _staff_queue_use_case() -> StaffOrderQueue:
    return StaffOrderQueue(order_repository=SqlAlchemyOrderRepository())


def _get_order_use_case() -> GetOrder:
    return GetOrder(order_repository=SqlAlchemyOrderRepository())


def _update_order_status_use_case() -> UpdateOrderStatus:
    return UpdateOrderStatus(
        order_repository=SqlAlchemyOrderRepository(),
        publisher=RedisEventPublisher(),
    )


def _mark_order_paid_use_case() -> MarkOrderPaid:
    return MarkOrderPaid(
        order_repository=SqlAlchemyOrderRepository(),
        publisher=RedisEventPublisher(),
    )


def _trace_ctx() -> TraceContext:
    return TraceContext(trace_id=current_trace_id(), request_id=get_request_id())


@router.get("/v1/staff/locations/{location_id}/orders", response_model=StaffOrderQueueResponse)
def list_orders(
    location_id: str,
    status: str = Query(default="ACTIVE"),
    limit: int = Query(default=50),
    cursor: str | None = Query(default=None),
) -> StaffOrderQueueResponse:
    return _staff_queue_use_case().execute(
        location_id=LocationId(location_id),
        status=status,
        limit=limit,
        cursor=cursor,
    )


@router.get("/v1/staff/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    return _get_order_use_case().execute(OrderId(order_id))


@router.patch("/v1/staff/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(order_id: str, request_dto: UpdateOrderStatusRequest) -> OrderResponse:
    return _update_order_status_use_case().execute(
        order_id=OrderId(order_id),
        request_dto=request_dto,
        trace_ctx=_trace_ctx(),
    )


@router.patch("/v1/staff/orders/{order_id}/mark-paid", response_model=OrderResponse)
def mark_order_paid(order_id: str) -> OrderResponse:
    return _mark_order_paid_use_case().execute(order_id=OrderId(order_id), trace_ctx=_trace_ctx())
