"""Shared test configuration.

Settings are loaded at import time and require MinIO credentials, so test
values are placed in the environment before any application module is imported.
"""

import os

os.environ.setdefault("MINIO_ACCESS", "test-access-key")
os.environ.setdefault("MINIO_SECRET", "test-secret-key")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("MAX_CONCURRENT_JOBS", "0")
