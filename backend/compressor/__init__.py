"""MinIO video compression service.

Downloads a video object from a MinIO bucket, re-encodes it with FFmpeg and
stores the compressed result back next to the original.

Modules:
    - core: Configuration, logging, tracing, metrics, object storage
    - modules.compression: Compression job orchestration and HTTP endpoints
"""

__version__ = "0.1.0"
