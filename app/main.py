from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config.startup_log import log_startup_config
from app.core.errors import dashboard_error
from app.core.request_logs.retention_scheduler import build_retention_scheduler
from app.core.utils.request_id import get_request_id, reset_request_id, set_request_id
from app.db.session import close_db, init_db
from app.modules.metrics import api as metrics_api
from app.modules.request_logs import api as request_logs_api
from app.modules.token_stats import api as token_stats_api

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    log_startup_config()
    await init_db()
    retention = build_retention_scheduler()
    await retention.start()

    try:
        yield
    finally:
        try:
            await retention.stop()
        finally:
            await close_db()


def create_app() -> FastAPI:
    app = FastAPI(title="token-stats", version="0.1.0", lifespan=lifespan)

    @app.middleware("http")
    async def api_unhandled_error_middleware(request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception:
            if request.url.path.startswith("/api/"):
                logger.exception(
                    "Unhandled API error request_id=%s",
                    get_request_id(),
                )
                return JSONResponse(
                    status_code=500,
                    content=dashboard_error("internal_error", "Unexpected error"),
                )
            raise

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        inbound_request_id = request.headers.get("x-request-id") or request.headers.get("request-id")
        request_id = inbound_request_id or str(uuid4())
        token = set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)
        response.headers.setdefault("x-request-id", request_id)
        return response

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> Response:
        if request.url.path.startswith("/api/"):
            return JSONResponse(
                status_code=422,
                content=dashboard_error("validation_error", "Invalid request payload"),
            )
        return await request_validation_exception_handler(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> Response:
        if request.url.path.startswith("/api/"):
            detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
            return JSONResponse(
                status_code=exc.status_code,
                content=dashboard_error(f"http_{exc.status_code}", detail),
            )
        return await http_exception_handler(request, exc)

    @app.exception_handler(ValueError)
    async def _value_error_handler(request: Request, exc: ValueError) -> Response:
        if not request.url.path.startswith("/api/"):
            raise exc
        return JSONResponse(
            status_code=422,
            content=dashboard_error("validation_error", str(exc) or "Invalid request"),
        )

    app.include_router(token_stats_api.router)
    app.include_router(request_logs_api.router)
    app.include_router(metrics_api.router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
