"""Object storage client for MinIO and other S3-compatible stores.

The compression jobs only need three operations from the store: stream an
object down, stream an object up and list buckets as a connectivity probe.
``boto3`` is blocking, so async callers run these methods in an executor.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import BinaryIO

import boto3
from botocore.config import Config as BotoConfig

from compressor.core.config import settings


@dataclass
class StorageConfig:
    """Storage configuration."""
    endpoint_url: str
    access_key: str
    secret_key: str
    region: str = "us-east-1"
    use_ssl: bool = False


class ObjectStore(ABC):
    """Abstract base class for bucket-based object stores."""

    @abstractmethod
    def get_object(self, bucket: str, key: str) -> BinaryIO:
        """Open a readable byte stream on an object."""
        pass

    @abstractmethod
    def put_object(
        self,
        bucket: str,
        key: str,
        fileobj: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Upload ``length`` bytes read from ``fileobj``."""
        pass

    @abstractmethod
    def list_buckets(self) -> list[str]:
        """List bucket names; used as a connectivity probe."""
        pass


class S3ObjectStore(ObjectStore):
    """S3/MinIO compatible object store backed by boto3."""

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self._client = client
        self._client_lock = threading.Lock()

    def _get_client(self):
        """Get or create S3 client.

        Called from executor threads, so creation is guarded by a lock.
        """
        with self._client_lock:
            if self._client is None:
                self._client = boto3.client(
                    service_name="s3",
                    endpoint_url=self.config.endpoint_url,
                    region_name=self.config.region,
                    aws_access_key_id=self.config.access_key,
                    aws_secret_access_key=self.config.secret_key,
                    use_ssl=self.config.use_ssl,
                    config=BotoConfig(
                        signature_version="s3v4",
                        s3={"addressing_style": "path"},
                    ),
                )

        return self._client

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        response = self._get_client().get_object(Bucket=bucket, Key=key)
        return response["Body"]

    def put_object(
        self,
        bucket: str,
        key: str,
        fileobj: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
    ) -> None:
        self._get_client().put_object(
            Bucket=bucket,
            Key=key,
            Body=fileobj,
            ContentLength=length,
            ContentType=content_type,
        )

    def list_buckets(self) -> list[str]:
        response = self._get_client().list_buckets()
        return [bucket["Name"] for bucket in response.get("Buckets", [])]


def storage_config_from_settings() -> StorageConfig:
    return StorageConfig(
        endpoint_url=settings.minio_endpoint_url,
        access_key=settings.MINIO_ACCESS,
        secret_key=settings.MINIO_SECRET,
        region=settings.MINIO_REGION,
        use_ssl=settings.MINIO_USE_SSL,
    )


@lru_cache(maxsize=1)
def get_object_store() -> ObjectStore:
    """Get the process-wide object store client.
    
    Returns:
        S3ObjectStore configured from settings
    """
    return S3ObjectStore(storage_config_from_settings())
