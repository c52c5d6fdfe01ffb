"""API Router for the compression service.

Exposes the store health probe and the compression endpoint.
"""

import asyncio
import logging
import time
from functools import lru_cache

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from compressor.core.config import settings
from compressor.core.logging import log_error, log_warning
from compressor.core.metrics import OBJECT_STORE_UP
from compressor.core.storage import ObjectStore, get_object_store
from compressor.modules.compression.errors import CompressionError, ValidationFailed
from compressor.modules.compression.ffmpeg import FFmpegRunner
from compressor.modules.compression.schemas import (
    CompressRequest,
    CompressResponse,
    CompressionData,
    ErrorResponse,
    HealthResponse,
)
from compressor.modules.compression.service import CompressionService
from compressor.modules.compression.tempfiles import TransientFileManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["compression"])


@lru_cache(maxsize=1)
def get_compression_service() -> CompressionService:
    """Dependency to get the shared CompressionService.

    One instance per process, so the concurrency limit applies to all requests.
    """
    return CompressionService(
        store=get_object_store(),
        runner=FFmpegRunner(settings.FFMPEG_PATH),
        files=TransientFileManager(settings.TEMP_DIR),
        max_concurrent_jobs=settings.MAX_CONCURRENT_JOBS,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(store: ObjectStore = Depends(get_object_store)) -> JSONResponse:
    """Health check endpoint.

    Lists buckets to verify that MinIO is reachable with the configured
    credentials. Returns 503 when the probe fails.
    """
    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, store.list_buckets)
    except Exception as e:
        OBJECT_STORE_UP.set(0)
        log_error(logger, "Health check failed", exception=e)
        body = HealthResponse(
            status="error",
            message="Service unavailable",
            minio="disconnected",
            error=str(e),
        )
        return JSONResponse(status_code=503, content=body.model_dump(exclude_none=True))

    OBJECT_STORE_UP.set(1)
    body = HealthResponse(
        status="ok",
        message="Server is running and healthy.",
        minio="connected",
    )
    return JSONResponse(status_code=200, content=body.model_dump(exclude_none=True))


@router.post(
    "/compress",
    response_model=CompressResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def compress(
    request: CompressRequest,
    service: CompressionService = Depends(get_compression_service),
) -> JSONResponse:
    """Compress a video stored in MinIO.

    Downloads ``objectName`` from ``bucketName``, re-encodes it with FFmpeg
    and uploads the result as ``<name>_compressed.mp4`` in the same bucket.
    """
    started_at = time.perf_counter()

    try:
        result = await service.compress(request, started_at=started_at)
    except ValidationFailed as e:
        log_warning(logger, e.message, missing_fields=e.missing_fields)
        body = ErrorResponse(error=e.caller_message)
        return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))
    except CompressionError as e:
        body = ErrorResponse(error=e.caller_message, details=e.message)
        return JSONResponse(status_code=500, content=body.model_dump())

    body = CompressResponse(data=CompressionData.from_result(result))
    return JSONResponse(status_code=200, content=body.model_dump(by_alias=True))
