"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException

from procwatch.api.routes import monitors, processes
from procwatch.core.config import get_settings
from procwatch.core.errors import ProcWatchError
from procwatch.core.logging import get_logger, setup_logging
from procwatch.execution.runner import get_execution_runner
from procwatch.observability.tracing import TRACE_HEADER, TraceContext
from procwatch.schemas.common import ErrorResponse
from procwatch.storage.redis_client import close_redis_pool, init_redis_pool

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    setup_logging()
    logger.info("Starting application", app_name=settings.app_name, version=settings.app_version)

    await init_redis_pool()
    logger.info("Redis connection pool initialized")

    yield

    # Shutdown
    logger.info("Shutting down application")
    await get_execution_runner().shutdown()
    await close_redis_pool()
    logger.info("Redis connection pool closed")


def _error(status_code: int, error: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Automated process execution, monitoring and alerting",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        with TraceContext(request.headers.get(TRACE_HEADER)) as trace_id:
            response = await call_next(request)
            response.headers[TRACE_HEADER] = trace_id
            return response

    # Include routers
    app.include_router(processes.router, prefix="/api/v1")
    app.include_router(monitors.router, prefix="/api/v1")

    # Error response handlers
    @app.exception_handler(ProcWatchError)
    async def domain_exception_handler(request: Request, exc: ProcWatchError) -> JSONResponse:
        logger.info(
            "Request rejected",
            error_type=type(exc).__name__,
            error=exc.message,
            path=request.url.path,
        )
        return _error(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, str):
            return _error(exc.status_code, detail)
        return _error(exc.status_code, "HTTP error", detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = exc.errors()
        messages = [str(err.get("msg", "")) for err in errors]
        return _error(400, ", ".join(m for m in messages if m) or "Validation error", _jsonable(errors))

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )
        return _error(500, "Server Error", str(exc) if settings.debug else None)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "ok", "version": settings.app_version}

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus exposition."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


def _jsonable(errors: list[dict]) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": err.get("type")}
        for err in errors
    ]


# Application instance for uvicorn
app = create_app()
