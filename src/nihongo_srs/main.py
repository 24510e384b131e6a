from __future__ import annotations

import time
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from .config import settings
from .logging import configure_logging, logger
from .metrics import registry
from .middleware import RequestIDMiddleware
from .routers import config as cfg
from .routers import data, health, review, vocabulary


class AccessLogAndMetricsMiddleware(BaseHTTPMiddleware):
    """Emit structured request logs and capture latency/metrics for each call.

    全リクエストに `request_id` を付与した構造化ログを出力し、
    メトリクスへ遅延・ステータス・エラー有無を記録する。
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:  # type: ignore[override]
        start = time.time()
        path = request.url.path
        method = request.method
        request_id = getattr(request.state, "request_id", None)
        if not request_id:
            request_id = uuid4().hex
            request.state.request_id = request_id
        client_ip = request.client.host if request.client else "unknown"
        is_error = False
        status_code: int | None = None
        error_type: str | None = None
        error_message: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            is_error = status_code >= 500
            return response
        except Exception as exc:
            is_error = True
            status_code = 500
            error_type = exc.__class__.__name__
            raw_error_message = str(exc)
            error_message = (
                raw_error_message
                if len(raw_error_message) <= 200
                else f"{raw_error_message[:197]}..."
            )
            raise
        finally:
            latency_ms = (time.time() - start) * 1000
            registry.record(path, latency_ms, status_code=status_code, is_error=is_error)
            log_method = logger.error if is_error else logger.info
            log_method(
                "request_complete",
                path=path,
                method=method,
                latency_ms=latency_ms,
                is_error=is_error,
                status_code=status_code,
                error_type=error_type,
                error_message=error_message,
                request_id=request_id,
                client_ip=client_ip,
            )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    configure_logging()
    app = FastAPI(title="Nihongo SRS API", version="0.1.0")

    configured_origins = list(settings.allowed_cors_origins)
    allow_credentials = bool(configured_origins)
    if not configured_origins:
        configured_origins = ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Starlette では後から追加したミドルウェアが外側で実行される:
    #   CORS → AccessLog → RequestID（最外周で採番し、AccessLog が同じ ID を記録）
    app.add_middleware(AccessLogAndMetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(review.router, prefix="/api/review")
    app.include_router(vocabulary.router, prefix="/api/vocabulary")
    app.include_router(data.router, prefix="/api")
    app.include_router(cfg.router, prefix="/api")
    app.include_router(health.router)

    logger.info(
        "app_created",
        environment=settings.environment,
        srs_db_path=settings.srs_db_path,
        unlimited_reviews=settings.unlimited_reviews,
        random_order=settings.random_order,
    )
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("nihongo_srs.main:app", host="0.0.0.0", port=8000)
