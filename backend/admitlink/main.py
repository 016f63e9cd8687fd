# backend/admitlink/main.py
"""
FastAPI application for the admissions messaging core.

REST endpoints live under ``/api``; the realtime gateway is the ``/ws``
socket. The room fan-out is built in the lifespan and injected everywhere
through ``app.state.room_fanout``.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .core.broadcast import connect_broadcast, disconnect_broadcast
from .core.config import is_running_tests, settings
from .database import init_schema
from .errors import register_error_handlers
from .middleware.rate_limiter import RateLimiter
from .middleware.rate_limiter_asgi import RateLimitMiddlewareASGI
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import chat as chat_v1, notifications as notifications_v1, realtime as realtime_v1
from .services.realtime.fanout import BroadcastRoomTransport, RoomFanOut, null_fanout

API_TITLE = "AdmitLink Messaging API"
API_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info("%s starting up (environment=%s)", API_TITLE, settings.environment)
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    if settings.create_schema:
        if settings.is_production:
            logger.warning("[DATABASE] create_schema is enabled in production")
        init_schema()

    broadcast = None
    if settings.realtime_enabled:
        broadcast = await connect_broadcast(settings.broadcast_url)
        app.state.room_fanout = RoomFanOut(BroadcastRoomTransport(broadcast))
    else:
        logger.warning("[BROADCAST] No broadcast_url configured; realtime events are dropped")
        app.state.room_fanout = null_fanout()

    try:
        yield
    finally:
        await disconnect_broadcast(broadcast)
        await app.state.rate_limiter.close()
        app.state.room_fanout = null_fanout()
        logger.info("%s shut down", API_TITLE)


def create_app() -> FastAPI:
    app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=app_lifespan)
    register_error_handlers(app)

    # Added before CORS so 429 responses still carry the CORS headers
    app.state.rate_limiter = RateLimiter()
    app.add_middleware(RateLimitMiddlewareASGI, rate_limiter=app.state.rate_limiter)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials="*" not in settings.cors_origin_list,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    api = APIRouter(prefix="/api")
    api.include_router(chat_v1.router, prefix="/chat")
    api.include_router(notifications_v1.router, prefix="/notifications")
    app.include_router(api)
    app.include_router(realtime_v1.router)

    @app.get("/health", tags=["health"])
    def health(request: Request) -> dict:
        fanout = getattr(request.app.state, "room_fanout", None)
        return {"status": "ok", "realtime": bool(fanout is not None and fanout.is_enabled)}

    @app.get("/metrics", tags=["monitoring"], include_in_schema=False)
    def metrics() -> Response:
        return Response(
            content=prometheus_metrics.get_metrics(),
            media_type=prometheus_metrics.get_content_type(),
        )

    return app


app = create_app()
