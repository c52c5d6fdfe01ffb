"""Failure taxonomy for compression jobs.

Each failure is raised as a tagged exception at the point where it happens;
the HTTP layer maps the tag to a caller-safe summary and passes the raw
message along as detail.
"""

from enum import Enum
from typing import Any, Optional


class FailureKind(str, Enum):
    """Kinds of compression job failures."""
    DOWNLOAD_FAILED = "download_failed"
    TRANSCODE_LAUNCH_FAILED = "transcode_launch_failed"
    TRANSCODE_FAILED = "transcode_failed"
    UPLOAD_FAILED = "upload_failed"
    CLEANUP_FAILED = "cleanup_failed"
    VALIDATION_FAILED = "validation_failed"
    UNCLASSIFIED = "unclassified"


CALLER_MESSAGES: dict[FailureKind, str] = {
    FailureKind.DOWNLOAD_FAILED: "Unable to download file from bucket",
    FailureKind.TRANSCODE_LAUNCH_FAILED: "Video compression failed",
    FailureKind.TRANSCODE_FAILED: "Video compression failed",
    FailureKind.UPLOAD_FAILED: "Unable to upload compressed file",
    FailureKind.VALIDATION_FAILED: "Missing required parameters: bucketName and objectName",
}

DEFAULT_CALLER_MESSAGE = "File compression failed"


def caller_message(kind: FailureKind) -> str:
    """Short message that is safe to return to API callers."""
    return CALLER_MESSAGES.get(kind, DEFAULT_CALLER_MESSAGE)


class CompressionError(Exception):
    """Base exception for compression job failures."""

    kind: FailureKind = FailureKind.UNCLASSIFIED

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def caller_message(self) -> str:
        return caller_message(self.kind)


class DownloadFailed(CompressionError):
    """Object could not be read from the store or written locally."""
    kind = FailureKind.DOWNLOAD_FAILED


class TranscodeLaunchFailed(CompressionError):
    """FFmpeg could not be started."""
    kind = FailureKind.TRANSCODE_LAUNCH_FAILED


class TranscodeFailed(CompressionError):
    """FFmpeg ran but did not produce a compressed file."""
    kind = FailureKind.TRANSCODE_FAILED

    def __init__(self, exit_code: int, diagnostic_text: str = "", message: Optional[str] = None):
        super().__init__(
            message or f"FFmpeg exit code: {exit_code}",
            exit_code=exit_code,
        )
        self.exit_code = exit_code
        self.diagnostic_text = diagnostic_text


class UploadFailed(CompressionError):
    """Compressed file could not be stored back in the bucket."""
    kind = FailureKind.UPLOAD_FAILED


class CleanupFailed(CompressionError):
    """A transient file could not be removed. Logged, never raised to callers."""
    kind = FailureKind.CLEANUP_FAILED

    def __init__(self, path: str, message: str):
        super().__init__(message, path=path)
        self.path = path


class ValidationFailed(CompressionError):
    """Request is missing required fields; no job is started."""
    kind = FailureKind.VALIDATION_FAILED

    def __init__(self, missing_fields: list[str]):
        super().__init__(
            f"Missing required parameters: {', '.join(missing_fields)}",
            missing_fields=missing_fields,
        )
        self.missing_fields = missing_fields
