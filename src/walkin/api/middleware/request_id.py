from __future__ import annotations

import re
from contextvars import ContextVar
from uuid import uuid4

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-Id"
request_id_context: ContextVar[str | None] = ContextVar("request_id", default=None)

# Inbound ids are echoed into logs and error bodies; anything else is replaced.
_ACCEPTED_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def get_request_id() -> str | None:
    return request_id_context.get()


def resolve_request_id(header_value: str | None) -> str:
    if header_value and _ACCEPTED_REQUEST_ID.match(header_value):
        return header_value
    return f"req_{uuid4().hex}"


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_context.set(request_id)
        request.state.request_id = request_id
        trace.get_current_span().set_attribute("walkin.request_id", request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_context.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
