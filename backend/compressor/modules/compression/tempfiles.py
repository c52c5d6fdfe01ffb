"""Transient local files for compression jobs.

Each job gets an input and an output path in the temp directory. Paths embed
a nanosecond job ID, so concurrent jobs never collide and no locking of the
files themselves is needed. Cleanup never raises.
"""

import logging
import os
import posixpath
import tempfile
import threading
import time
from typing import Optional

from compressor.core.logging import log_info, log_warning
from compressor.core.metrics import TEMP_FILE_CLEANUP_FAILURES_TOTAL
from compressor.modules.compression.errors import CleanupFailed
from compressor.modules.compression.models import JobContext, derive_output_object_name

logger = logging.getLogger(__name__)

_job_id_lock = threading.Lock()
_last_job_id = 0

# NUL is rejected by the OS; separators would escape the temp directory.
_UNSAFE_FILENAME_CHARS = frozenset(("\0", "/", os.sep, os.altsep or "/"))


def next_job_id() -> str:
    """Nanosecond timestamp, strictly increasing within the process."""
    global _last_job_id
    with _job_id_lock:
        _last_job_id = max(time.time_ns(), _last_job_id + 1)
        return str(_last_job_id)


def object_basename(object_name: str) -> str:
    """Last segment of an object key, safe to use in a local file name."""
    basename = posixpath.basename(object_name)
    for char in _UNSAFE_FILENAME_CHARS:
        basename = basename.replace(char, "_")
    return basename or "object"


class TransientFileManager:
    """Allocates and removes the local files of compression jobs."""

    def __init__(self, temp_dir: Optional[str] = None):
        self.temp_dir = temp_dir or tempfile.gettempdir()

    def allocate(
        self,
        bucket_name: str,
        object_name: str,
        started_at: Optional[float] = None,
    ) -> JobContext:
        """Create the context of a new job.

        Files are not created here; the download writes the input file and
        FFmpeg writes the output file.

        Args:
            bucket_name: Bucket holding the source object
            object_name: Key of the source object
            started_at: ``time.perf_counter()`` value at request receipt

        Returns:
            JobContext with collision-free local paths
        """
        job_id = next_job_id()
        input_path = os.path.join(
            self.temp_dir, f"input-{job_id}-{object_basename(object_name)}"
        )
        output_path = os.path.join(self.temp_dir, f"output-{job_id}-compressed.mp4")

        return JobContext(
            job_id=job_id,
            bucket_name=bucket_name,
            object_name=object_name,
            input_path=input_path,
            output_path=output_path,
            output_object_name=derive_output_object_name(object_name),
            started_at=started_at if started_at is not None else time.perf_counter(),
        )

    def cleanup(self, job: JobContext) -> list[CleanupFailed]:
        """Remove both local files of a job.

        Missing files are skipped. Safe to call more than once.

        Returns:
            Failures that were logged; empty when everything was removed
        """
        failures = []
        for path in job.local_paths:
            failure = self._remove(path)
            if failure is not None:
                failures.append(failure)

        if not failures:
            log_info(logger, "Temporary files cleaned up", paths=list(job.local_paths))
        return failures

    def _remove(self, path: str) -> Optional[CleanupFailed]:
        try:
            os.remove(path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            failure = CleanupFailed(path, f"Failed to remove temporary file {path}: {e}")
            TEMP_FILE_CLEANUP_FAILURES_TOTAL.inc()
            log_warning(
                logger,
                failure.message,
                kind=failure.kind.value,
                path=path,
            )
            return failure
        return None
