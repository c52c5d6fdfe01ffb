"""Compression module: MinIO download, FFmpeg transcode, upload and cleanup."""

from compressor.modules.compression.errors import (
    CompressionError,
    DownloadFailed,
    TranscodeLaunchFailed,
    TranscodeFailed,
    UploadFailed,
    CleanupFailed,
    ValidationFailed,
    FailureKind,
)
from compressor.modules.compression.models import (
    JobContext,
    JobState,
    ProcessOutcome,
    CompressionResult,
    derive_output_object_name,
    compression_ratio,
)
from compressor.modules.compression.ffmpeg import FFmpegRunner, TranscodeRunner
from compressor.modules.compression.tempfiles import TransientFileManager
from compressor.modules.compression.service import CompressionService

__all__ = [
    # Errors
    "CompressionError",
    "DownloadFailed",
    "TranscodeLaunchFailed",
    "TranscodeFailed",
    "UploadFailed",
    "CleanupFailed",
    "ValidationFailed",
    "FailureKind",
    # Models
    "JobContext",
    "JobState",
    "ProcessOutcome",
    "CompressionResult",
    "derive_output_object_name",
    "compression_ratio",
    # Runner, files, service
    "FFmpegRunner",
    "TranscodeRunner",
    "TransientFileManager",
    "CompressionService",
]
