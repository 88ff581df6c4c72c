"""FastAPI backend for the HC Register shared document."""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from hcregister import __version__
from hcregister.core.logging import configure_logging
from hcregister.db.connection import close_db, init_db
from hcregister.exceptions import ExportError, HCRegisterError, RecordNotFound
from hcregister.web.routes import export, health, state

logger = structlog.get_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        structlog.contextvars.clear_contextvars()

        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("request_failed", error=str(exc))
            raise

        logger.info("request_completed", status_code=response.status_code)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("backend_started")
    yield
    await close_db()


async def register_error_handler(request: Request, exc: HCRegisterError):
    if isinstance(exc, RecordNotFound):
        status_code = 404
    elif isinstance(exc, ExportError):
        status_code = 400
    else:
        status_code = 500
    logger.warning("request_error", error=str(exc), status_code=status_code)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="HC Register Backend",
        description="Shared state and exports for the house connection register",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(HCRegisterError, register_error_handler)

    app.include_router(health.router)
    app.include_router(state.router)
    app.include_router(export.router)
    return app


app = create_app()
