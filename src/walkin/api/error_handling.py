from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from walkin.api.middleware.request_id import get_request_id
from walkin.application.ports.payment_gateway import (
    PaymentGatewayError,
    PaymentGatewayUnavailableError,
    WebhookSignatureError,
)
from walkin.application.use_cases.create_payment_intent import CardPaymentNotAllowedError
from walkin.application.use_cases.estimate_totals import InvalidEstimateError
from walkin.application.use_cases.get_menu import MenuNotFoundError
from walkin.application.use_cases.lookup import LocationNotFoundError, OrderNotFoundError
from walkin.application.use_cases.mark_order_paid import (
    AlreadyPaidError,
    InvalidPaymentTransitionError,
    ManualPaymentNotAllowedError,
)
from walkin.application.use_cases.place_order import (
    GeoTokenAlreadyUsedError,
    InvalidGeoTokenError,
    InvalidOrderLineError,
    MenuItemNotFoundError,
    MenuItemUnavailableError,
)
from walkin.application.use_cases.staff_queue import (
    InvalidQueueCursorError,
    InvalidQueueFilterError,
)
from walkin.application.use_cases.update_order_status import (
    CancelReasonRequiredError,
    InvalidOrderTransitionError,
    OrderConflictError,
)
from walkin.application.use_cases.verify_location import GeofenceOutOfRangeError
from walkin.domain.geo.geofence import InvalidCoordinatesError

logger = logging.getLogger(__name__)


def _error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
            "requestId": get_request_id(),
        },
    )


def _exception_handler(status_code: int, code: str):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500 or status_code == 401:
            logger.warning(
                "request_rejected",
                extra={"path": request.url.path, "status_code": status_code, "code": code},
            )
        details = getattr(exc, "details", None)
        return _error_response(
            status_code=status_code,
            code=code,
            message=str(exc),
            details=details if isinstance(details, dict) else None,
        )

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message = str(http_exc.detail) if http_exc.detail else "request failed"
    code = "HTTP_ERROR"
    if http_exc.status_code == 404:
        code = "NOT_FOUND"
    elif http_exc.status_code == 400:
        code = "BAD_REQUEST"
    elif http_exc.status_code == 405:
        code = "METHOD_NOT_ALLOWED"
    elif http_exc.status_code == 409:
        code = "CONFLICT"
    return _error_response(
        status_code=http_exc.status_code,
        code=code,
        message=message,
    )


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return _error_response(
        status_code=400,
        code="INVALID_REQUEST",
        message="request validation failed",
        details={"errors": validation_exc.errors()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    mappings: list[tuple[type[Exception], int, str]] = [
        (LocationNotFoundError, 404, "LOCATION_NOT_FOUND"),
        (OrderNotFoundError, 404, "ORDER_NOT_FOUND"),
        (MenuNotFoundError, 404, "MENU_NOT_FOUND"),
        (InvalidCoordinatesError, 400, "INVALID_REQUEST"),
        (GeofenceOutOfRangeError, 400, "GEOFENCE_OUT_OF_RANGE"),
        (InvalidGeoTokenError, 400, "INVALID_GEO_TOKEN"),
        (MenuItemNotFoundError, 400, "MENU_ITEM_NOT_FOUND"),
        (MenuItemUnavailableError, 400, "MENU_ITEM_UNAVAILABLE"),
        (InvalidOrderLineError, 400, "INVALID_ORDER_LINE"),
        (InvalidEstimateError, 400, "INVALID_ORDER_LINE"),
        (CancelReasonRequiredError, 400, "CANCEL_REASON_REQUIRED"),
        (InvalidQueueFilterError, 400, "INVALID_QUEUE_FILTER"),
        (InvalidQueueCursorError, 400, "INVALID_QUEUE_CURSOR"),
        (WebhookSignatureError, 401, "WEBHOOK_SIGNATURE_INVALID"),
        (GeoTokenAlreadyUsedError, 409, "GEO_TOKEN_ALREADY_USED"),
        (InvalidOrderTransitionError, 409, "INVALID_ORDER_TRANSITION"),
        (InvalidPaymentTransitionError, 409, "INVALID_PAYMENT_TRANSITION"),
        (AlreadyPaidError, 409, "ORDER_ALREADY_PAID"),
        (ManualPaymentNotAllowedError, 409, "PAYMENT_METHOD_NOT_ALLOWED"),
        (CardPaymentNotAllowedError, 409, "PAYMENT_METHOD_NOT_ALLOWED"),
        (OrderConflictError, 409, "CONFLICT"),
        (PaymentGatewayError, 502, "PAYMENT_GATEWAY_ERROR"),
        (PaymentGatewayUnavailableError, 503, "PAYMENT_GATEWAY_UNAVAILABLE"),
    ]

    for exc_cls, status_code, code in mappings:
        app.add_exception_handler(exc_cls, _exception_handler(status_code, code))

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
