"""Application modules.

This package contains the feature modules of the compression service:
- compression: MinIO download, FFmpeg transcode, upload and cleanup
"""
