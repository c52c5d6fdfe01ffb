"""Prometheus metrics for the compression service.

Exposes HTTP request metrics and compression job metrics on a dedicated
registry served from ``/metrics``.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

REGISTRY = CollectorRegistry()


# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "minio_compressor_app",
    "Application information",
    registry=REGISTRY,
)


# ============================================
# HTTP Request Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently in progress",
    ["method", "endpoint"],
    registry=REGISTRY,
)


# ============================================
# Compression Job Metrics
# ============================================
COMPRESSION_JOBS_TOTAL = Counter(
    "compression_jobs_total",
    "Total compression jobs by outcome and failure kind",
    ["status", "kind"],
    registry=REGISTRY,
)

COMPRESSION_JOB_DURATION_SECONDS = Histogram(
    "compression_job_duration_seconds",
    "Compression job duration in seconds",
    ["status"],
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0],
    registry=REGISTRY,
)

COMPRESSION_JOBS_IN_PROGRESS = Gauge(
    "compression_jobs_in_progress",
    "Number of compression jobs currently running",
    registry=REGISTRY,
)

COMPRESSION_JOBS_WAITING = Gauge(
    "compression_jobs_waiting",
    "Number of compression requests waiting for a job slot",
    registry=REGISTRY,
)

COMPRESSION_BYTES_TOTAL = Counter(
    "compression_bytes_total",
    "Bytes processed by successful compression jobs",
    ["direction"],  # original | compressed
    registry=REGISTRY,
)

FFMPEG_EXIT_CODES_TOTAL = Counter(
    "ffmpeg_exit_codes_total",
    "FFmpeg process exit codes",
    ["exit_code"],
    registry=REGISTRY,
)

TEMP_FILE_CLEANUP_FAILURES_TOTAL = Counter(
    "temp_file_cleanup_failures_total",
    "Transient files that could not be removed",
    registry=REGISTRY,
)

OBJECT_STORE_UP = Gauge(
    "object_store_up",
    "Object store connectivity from the last health probe (1=connected, 0=disconnected)",
    registry=REGISTRY,
)


def get_metrics() -> bytes:
    """Generate latest metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def set_app_info(version: str, environment: str) -> None:
    """Set application info metrics.
    
    Args:
        version: Application version
        environment: Deployment environment
    """
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })
