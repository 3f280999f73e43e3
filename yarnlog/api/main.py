"""yarnlog API - FastAPI with SQLAlchemy."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from .. import __version__
from ..errors import YarnlogError
from ..logging_config import current_correlation_id, request_context, setup_logging
from . import routers
from .database import engine


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()
    yield
    await engine.dispose()


app = FastAPI(
    title="yarnlog API",
    description="Knitting and crochet pattern and project tracker",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def correlation_middleware(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", f"req_{uuid.uuid4().hex[:8]}")
    logger = structlog.get_logger()

    with request_context(correlation_id, request.method, request.url.path):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "http_request_exception",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.time() - start) * 1000, 2),
                exc_info=True,
            )
            raise

        duration_ms = round((time.time() - start) * 1000, 2)
        if response.status_code >= 500:  # noqa: PLR2004
            logger.error(
                "http_request_failed", status_code=response.status_code, duration_ms=duration_ms
            )
        else:
            logger.info("http_request", status_code=response.status_code, duration_ms=duration_ms)

        response.headers["X-Correlation-ID"] = current_correlation_id()
        return response


# === Error rendering: every error body is {"error": message} ===


@app.exception_handler(YarnlogError)
async def yarnlog_error_handler(request: Request, exc: YarnlogError) -> JSONResponse:
    logger = structlog.get_logger()
    if exc.status_code >= 500:  # noqa: PLR2004
        logger.error("request_error", error=exc.message, error_type=type(exc).__name__)
    else:
        logger.info(
            "request_rejected",
            status_code=exc.status_code,
            error=exc.message,
            error_type=type(exc).__name__,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc) or "request"
    message = f"{field}: {first.get('msg', 'invalid value')}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    structlog.get_logger().error("unhandled_error", error_type=type(exc).__name__, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "something went wrong"},
    )


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "yarnlog API",
        "version": __version__,
        "description": "Knitting and crochet pattern and project tracker",
    }


app.include_router(routers.health.router)
app.include_router(routers.analytics.router, prefix="/api")
app.include_router(routers.projects.router, prefix="/api")
app.include_router(routers.patterns.router, prefix="/api")
