"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response

from kbnb.observability.context import (
    CORRELATION_ID_HEADER,
    bind_correlation_id,
    new_correlation_id,
    unbind_correlation_id,
)
from kbnb.observability.logging import configure_logging, get_logger
from kbnb.payments.gateway import get_payment_gateway

from .routers import public
from .routes import reservations, users

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Validate configuration before serving.

    Building the payment gateway here makes missing gateway credentials
    stop the process at startup instead of failing the first booking.
    """
    configure_logging()
    gateway = get_payment_gateway()
    logger.info(
        "application started",
        extra={"extra_fields": {"payment_gateway": type(gateway).__name__}},
    )
    yield


def create_app() -> FastAPI:
    """Create the FastAPI app with correlation-id middleware and all routes."""
    app = FastAPI(
        title="kbnb",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or new_correlation_id()
        token = bind_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            unbind_correlation_id(token)

    app.include_router(public.router)
    app.include_router(reservations.router)
    app.include_router(users.router)

    return app
