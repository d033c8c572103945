from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from walkin.api.error_handling import register_exception_handlers
from walkin.api.middleware.access_log import AccessLogMiddleware
from walkin.api.middleware.request_id import RequestIDMiddleware
from walkin.api.routes.health import router as health_router
from walkin.api.routes.locations import router as locations_router
from walkin.api.routes.metrics import router as metrics_router
from walkin.api.routes.orders import router as orders_router
from walkin.api.routes.staff_orders import router as staff_orders_router
from walkin.api.routes.webhooks import router as webhooks_router
from walkin.api.ws.manager import ConnectionManager
from walkin.api.ws.routes import router as ws_router
from walkin.infrastructure.messaging.redis_event_listener import start_redis_fanout
from walkin.infrastructure.observability.logging_config import configure_logging
from walkin.infrastructure.observability.otel import configure_otel


def _cors_allow_origins() -> list[str]:
    env = os.getenv("APP_ENV", "dev").lower()
    if env in {"dev", "test"}:
        return ["*"]

    raw_value = os.getenv("CORS_ALLOW_ORIGINS", "")
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.ws_manager = ConnectionManager()
    fanout_task = asyncio.create_task(start_redis_fanout(app.state))
    app.state.redis_fanout_task = fanout_task
    try:
        yield
    finally:
        fanout_task.cancel()
        with suppress(asyncio.CancelledError):
            await fanout_task


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Walk-in Ordering Backend", version="0.1.0", lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(locations_router)
    app.include_router(orders_router)
    app.include_router(staff_orders_router)
    app.include_router(webhooks_router)
    app.include_router(ws_router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag", "X-Request-Id"],
    )

    configure_otel(app)
    return app


app = create_app()
