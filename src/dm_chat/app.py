from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dm_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from dm_chat.api.v1.routers import health, messages, rooms, ws
from dm_chat.api.v1.schemas.common import ErrorResponse
from dm_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from dm_chat.config import settings
from dm_chat.infrastructure.bus.local import InProcessPublisher
from dm_chat.infrastructure.bus.redis_pubsub import RedisFanoutPublisher, RedisFanoutSubscriber
from dm_chat.infrastructure.ws.relay import dispatch_fanout

logger = logging.getLogger(__name__)


async def _on_fanout_event(event_type: str, data: dict[str, Any]) -> None:
    """Deliver a fan-out event to this instance's WS connections."""
    await dispatch_fanout(ws.get_manager(), event_type, data)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if settings.FANOUT_BACKEND != "redis":
        logger.info("Using in-process fan-out")
        yield
        return

    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    subscriber = RedisFanoutSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        _on_fanout_event,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber
    app.state.publisher = RedisFanoutPublisher(app.state.redis)

    yield

    await subscriber.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="DM Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    if settings.FANOUT_BACKEND == "local":
        app.state.publisher = InProcessPublisher(_on_fanout_event)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(rooms.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=detail).model_dump())


def _register_exception_handlers(app: FastAPI) -> None:
    """Every error body is ``{"message": ...}`` so clients can toast it as-is."""

    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc.detail)

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return _error(403, exc.detail)

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return _error(422, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(_req: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:])
        detail = f"{field}: {first.get('msg', 'invalid')}" if field else first.get("msg", "Invalid request")
        return _error(422, detail)

    @app.exception_handler(StarletteHTTPException)
    async def _http(_req: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(message=str(exc.detail)).model_dump(),
            headers=getattr(exc, "headers", None),
        )
