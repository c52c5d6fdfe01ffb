"""Pydantic schemas for the compression API.

Field names on the wire are camelCase; Python attributes are snake_case.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

from compressor.modules.compression.models import CompressionResult


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. ``2024-01-01T00:00:00.000Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CompressRequest(BaseModel):
    """Schema for a compression request.

    Both fields are optional at the schema level so that a missing field is
    reported through the service's own validation and error envelope.
    """
    bucket_name: Optional[str] = Field(None, alias="bucketName", description="Bucket holding the video")
    object_name: Optional[str] = Field(None, alias="objectName", description="Object key of the video")

    class Config:
        populate_by_name = True

    def missing_fields(self) -> list[str]:
        missing = []
        if not self.bucket_name:
            missing.append("bucketName")
        if not self.object_name:
            missing.append("objectName")
        return missing


class CompressionData(BaseModel):
    """Metrics of a finished compression job."""
    original_file: str = Field(..., alias="originalFile")
    compressed_file: str = Field(..., alias="compressedFile")
    bucket_name: str = Field(..., alias="bucketName")
    processing_time_ms: int = Field(..., alias="processingTimeMs")
    original_size: int = Field(..., alias="originalSize")
    compressed_size: int = Field(..., alias="compressedSize")
    compression_ratio: float = Field(..., alias="compressionRatio")

    class Config:
        populate_by_name = True

    @classmethod
    def from_result(cls, result: CompressionResult) -> "CompressionData":
        return cls(
            original_file=result.original_file,
            compressed_file=result.compressed_file,
            bucket_name=result.bucket_name,
            processing_time_ms=result.processing_time_ms,
            original_size=result.original_size_bytes,
            compressed_size=result.compressed_size_bytes,
            compression_ratio=result.compression_ratio_percent,
        )


class CompressResponse(BaseModel):
    """Schema for a successful compression response."""
    success: Literal[True] = True
    message: str = "File compressed successfully"
    data: CompressionData
    timestamp: str = Field(default_factory=utc_timestamp)


class ErrorResponse(BaseModel):
    """Error envelope shared by validation and job failures."""
    success: Literal[False] = False
    error: str
    details: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)


class HealthResponse(BaseModel):
    """Schema for health check responses."""
    status: Literal["ok", "error"]
    message: str
    minio: Literal["connected", "disconnected"]
    error: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)
