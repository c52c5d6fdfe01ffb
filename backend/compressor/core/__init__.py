"""Core module for configuration and utilities."""

from compressor.core.config import settings
from compressor.core.storage import ObjectStore, S3ObjectStore, get_object_store

__all__ = [
    "settings",
    "ObjectStore",
    "S3ObjectStore",
    "get_object_store",
]
