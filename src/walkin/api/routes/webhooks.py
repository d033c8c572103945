from __future__ import annotations

from fastapi import APIRouter, Header, Request
from starlette.concurrency import run_in_threadpool

from walkin.api.middleware.request_id import get_request_id
from walkin.api.dependencies import payment_gateway
from walkin.application.dto.responses import WebhookAckResponse
from walkin.application.use_cases.context import TraceContext
from walkin.application.use_cases.reconcile_payment import ReconcilePaymentEvent
from walkin.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from walkin.infrastructure.messaging.redis_publisher import RedisEventPublisher
from walkin.infrastructure.observability.otel import current_trace_id
from walkin.infrastructure.settings import load_settings

router = APIRouter()


def _reconcile_payment_use_case() -> ReconcilePaymentEvent:
    return ReconcilePaymentEvent(
        order_repository=SqlAlchemyOrderRepository(),
        gateway=payment_gateway(),
        publisher=RedisEventPublisher(),
        platform_fee_percentage=load_settings().platform_fee_percentage,
    )


@router.post("/v1/payments/webhook", response_model=WebhookAckResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
) -> WebhookAckResponse:
    payload = await request.body()
    return await run_in_threadpool(
        _reconcile_payment_use_case().execute,
        payload=payload,
        signature=stripe_signature,
        trace_ctx=TraceContext(trace_id=current_trace_id(), request_id=get_request_id()),
    )
