"""Compression job orchestration.

A job runs download -> transcode -> upload, then always cleans up its local
files before reaching a terminal state. Every failure surfaces as a
CompressionError tagged with its FailureKind.
"""

import asyncio
import logging
import os
import time
from functools import partial
from typing import BinaryIO, Optional

from compressor.core.logging import bind_job_id, log_error, log_info, log_warning
from compressor.core.metrics import (
    COMPRESSION_BYTES_TOTAL,
    COMPRESSION_JOB_DURATION_SECONDS,
    COMPRESSION_JOBS_IN_PROGRESS,
    COMPRESSION_JOBS_TOTAL,
    COMPRESSION_JOBS_WAITING,
)
from compressor.core.storage import ObjectStore
from compressor.core.tracing import mark_span_failed, set_span_attributes, span
from compressor.modules.compression.errors import (
    CompressionError,
    DownloadFailed,
    TranscodeFailed,
    UploadFailed,
    ValidationFailed,
)
from compressor.modules.compression.ffmpeg import TranscodeRunner
from compressor.modules.compression.models import (
    CompressionResult,
    JobContext,
    JobState,
    compression_ratio,
)
from compressor.modules.compression.schemas import CompressRequest
from compressor.modules.compression.tempfiles import TransientFileManager

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1024 * 1024
OUTPUT_CONTENT_TYPE = "video/mp4"


class CompressionService:
    """Runs compression jobs against an object store.

    Holds no per-job state; every call to ``compress`` owns its JobContext.
    ``max_concurrent_jobs`` caps simultaneous jobs, 0 means unlimited.
    """

    def __init__(
        self,
        store: ObjectStore,
        runner: TranscodeRunner,
        files: TransientFileManager,
        max_concurrent_jobs: int = 0,
    ):
        self.store = store
        self.runner = runner
        self.files = files
        self.max_concurrent_jobs = max_concurrent_jobs
        self._limiter = asyncio.Semaphore(max_concurrent_jobs) if max_concurrent_jobs > 0 else None

    async def compress(
        self,
        request: CompressRequest,
        started_at: Optional[float] = None,
    ) -> CompressionResult:
        """Compress one object and store the result next to it.

        Args:
            request: Bucket and object to compress
            started_at: ``time.perf_counter()`` at request receipt

        Raises:
            ValidationFailed: Request is missing fields; nothing was started
            CompressionError: The job failed; local files are already removed

        Returns:
            CompressionResult with sizes, ratio and processing time
        """
        if started_at is None:
            started_at = time.perf_counter()

        missing = request.missing_fields()
        if missing:
            raise ValidationFailed(missing)

        if self._limiter is None:
            return await self._run_job(request, started_at)

        COMPRESSION_JOBS_WAITING.inc()
        try:
            await self._limiter.acquire()
        finally:
            COMPRESSION_JOBS_WAITING.dec()
        try:
            return await self._run_job(request, started_at)
        finally:
            self._limiter.release()

    async def _run_job(self, request: CompressRequest, started_at: float) -> CompressionResult:
        job = self.files.allocate(request.bucket_name, request.object_name, started_at)
        bind_job_id(job.job_id)
        COMPRESSION_JOBS_IN_PROGRESS.inc()

        log_info(
            logger,
            "Compression job started",
            bucket=job.bucket_name,
            object_name=job.object_name,
            output_object_name=job.output_object_name,
        )

        try:
            with span(
                "compression.job",
                attributes={
                    "compression.job_id": job.job_id,
                    "compression.bucket": job.bucket_name,
                    "compression.object": job.object_name,
                },
            ):
                try:
                    result = await self._execute(job)
                except CompressionError as e:
                    self._fail(job, e)
                    raise
                except Exception as e:
                    error = CompressionError(str(e) or e.__class__.__name__)
                    self._fail(job, error, cause=e)
                    raise error from e
        finally:
            COMPRESSION_JOBS_IN_PROGRESS.dec()
            bind_job_id(None)

        return result

    async def _execute(self, job: JobContext) -> CompressionResult:
        try:
            await self._download(job)
            await self._transcode(job)
            original_size, compressed_size = await self._upload(job)
        except BaseException:
            job.failed_in = job.state
            raise
        finally:
            self._cleanup(job)

        job.transition(JobState.SUCCEEDED)
        processing_time_ms = int((time.perf_counter() - job.started_at) * 1000)
        result = CompressionResult(
            original_file=job.object_name,
            compressed_file=job.output_object_name,
            bucket_name=job.bucket_name,
            processing_time_ms=processing_time_ms,
            original_size_bytes=original_size,
            compressed_size_bytes=compressed_size,
            compression_ratio_percent=compression_ratio(original_size, compressed_size),
        )

        COMPRESSION_JOBS_TOTAL.labels(status="succeeded", kind="none").inc()
        COMPRESSION_JOB_DURATION_SECONDS.labels(status="succeeded").observe(processing_time_ms / 1000)
        COMPRESSION_BYTES_TOTAL.labels(direction="original").inc(original_size)
        COMPRESSION_BYTES_TOTAL.labels(direction="compressed").inc(compressed_size)
        set_span_attributes({"compression.ratio_percent": result.compression_ratio_percent})

        log_info(
            logger,
            "Compression job succeeded",
            processing_time_ms=processing_time_ms,
            original_size=original_size,
            compressed_size=compressed_size,
            compression_ratio=result.compression_ratio_percent,
        )
        return result

    async def _download(self, job: JobContext) -> None:
        self._enter(job, JobState.DOWNLOADING)
        loop = asyncio.get_running_loop()

        with span("compression.download"):
            try:
                body = await loop.run_in_executor(
                    None, self.store.get_object, job.bucket_name, job.object_name
                )
            except Exception as e:
                raise DownloadFailed(f"MinIO download error: {e}") from e

            size = await loop.run_in_executor(None, write_stream_to_file, body, job.input_path)

        log_info(logger, "File downloaded", path=job.input_path, size=size)

    async def _transcode(self, job: JobContext) -> None:
        self._enter(job, JobState.TRANSCODING)

        with span("compression.transcode"):
            outcome = await self.runner.run(job.input_path, job.output_path)

        if not outcome.succeeded:
            raise TranscodeFailed(outcome.exit_code, outcome.diagnostic_text)
        if not os.path.exists(job.output_path):
            raise TranscodeFailed(
                outcome.exit_code,
                outcome.diagnostic_text,
                message="FFmpeg finished without producing an output file",
            )

    async def _upload(self, job: JobContext) -> tuple[int, int]:
        self._enter(job, JobState.UPLOADING)
        loop = asyncio.get_running_loop()

        with span("compression.upload", attributes={"compression.output_object": job.output_object_name}):
            try:
                original_size = os.path.getsize(job.input_path)
                compressed_size = os.path.getsize(job.output_path)
                with open(job.output_path, "rb") as output:
                    await loop.run_in_executor(
                        None,
                        partial(
                            self.store.put_object,
                            job.bucket_name,
                            job.output_object_name,
                            output,
                            compressed_size,
                            content_type=OUTPUT_CONTENT_TYPE,
                        ),
                    )
            except Exception as e:
                raise UploadFailed(f"Upload error: {e}") from e

        log_info(logger, "Compressed file uploaded", output_object_name=job.output_object_name)
        return original_size, compressed_size

    def _cleanup(self, job: JobContext) -> None:
        self._enter(job, JobState.CLEANING_UP)
        with span("compression.cleanup"):
            failures = self.files.cleanup(job)
        if failures:
            log_warning(
                logger,
                "Temporary files left behind",
                paths=[failure.path for failure in failures],
            )

    def _enter(self, job: JobContext, state: JobState) -> None:
        if job.finished:
            raise RuntimeError(f"Job {job.job_id} is already {job.state.value}")
        previous = job.transition(state)
        logger.debug("Job state changed", extra={"from_state": previous.value, "to_state": state.value})

    def _fail(self, job: JobContext, error: CompressionError, cause: Optional[BaseException] = None) -> None:
        job.transition(JobState.FAILED)
        processing_time_ms = int((time.perf_counter() - job.started_at) * 1000)

        COMPRESSION_JOBS_TOTAL.labels(status="failed", kind=error.kind.value).inc()
        COMPRESSION_JOB_DURATION_SECONDS.labels(status="failed").observe(processing_time_ms / 1000)
        mark_span_failed(cause or error, kind=error.kind.value)

        log_error(
            logger,
            "Compression job failed",
            exception=cause or error,
            kind=error.kind.value,
            failed_in=job.failed_in.value if job.failed_in else None,
            processing_time_ms=processing_time_ms,
        )


def write_stream_to_file(body: BinaryIO, path: str, chunk_size: int = DOWNLOAD_CHUNK_SIZE) -> int:
    """Copy an object stream into ``path``.

    Raises:
        DownloadFailed: Reading the stream or writing the file failed

    Returns:
        Number of bytes written
    """
    written = 0
    try:
        with open(path, "wb") as f:
            while True:
                try:
                    chunk = body.read(chunk_size)
                except Exception as e:
                    raise DownloadFailed(f"MinIO download error: {e}") from e
                if not chunk:
                    break
                f.write(chunk)
                written += len(chunk)
    except (OSError, ValueError) as e:
        raise DownloadFailed(f"File write error: {e}") from e
    finally:
        close = getattr(body, "close", None)
        if close is not None:
            close()
    return written
