"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from compressor.core.config import settings
from compressor.core.logging import setup_logging, log_info, log_warning
from compressor.core.tracing import setup_tracing, shutdown_tracing
from compressor.core.metrics import get_metrics, get_content_type, set_app_info
from compressor.core.middleware import CorrelationIdMiddleware, ObservabilityMiddleware
from compressor.modules.compression.errors import FailureKind, caller_message
from compressor.modules.compression.router import router as compression_router
from compressor.modules.compression.schemas import ErrorResponse

logger = logging.getLogger(__name__)

setup_logging(
    level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    json_format=settings.LOG_JSON,
    include_stack_trace=True,
)

setup_tracing(
    service_name=settings.PROJECT_NAME,
    service_version=settings.VERSION,
    environment="development" if settings.DEBUG else "production",
    console_export=settings.DEBUG,
)

set_app_info(
    version=settings.VERSION,
    environment="development" if settings.DEBUG else "production",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_info(
        logger,
        "FFmpeg compression service started",
        port=settings.PORT,
        minio_endpoint=f"{settings.MINIO_ENDPOINT}:{settings.MINIO_PORT}",
        minio_ssl=settings.MINIO_USE_SSL,
        max_concurrent_jobs=settings.MAX_CONCURRENT_JOBS or "unlimited",
        endpoints=["GET /health", "POST /compress", "GET /metrics"],
    )
    yield
    shutdown_tracing()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Compresses videos stored in MinIO buckets with FFmpeg.",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "compression",
            "description": "Health probe and video compression",
        },
        {
            "name": "monitoring",
            "description": "Prometheus metrics",
        },
    ],
)

# Added last, so it runs first and the ID is bound before the request is logged.
app.add_middleware(ObservabilityMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies in the same envelope as missing fields."""
    log_warning(logger, "Invalid request body", path=request.url.path, errors=str(exc.errors()))
    body = ErrorResponse(error=caller_message(FailureKind.VALIDATION_FAILED))
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


@app.get("/metrics", tags=["monitoring"], include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type=get_content_type())


app.include_router(compression_router)


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
