"""Job state and value objects for compression jobs.

Nothing here is persisted: a JobContext lives exactly as long as the
request that created it.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


COMPRESSED_SUFFIX = "_compressed"
COMPRESSED_EXTENSION = ".mp4"

# Last dot-delimited extension of the final key segment
_EXTENSION_RE = re.compile(r"\.[^/.]+\Z")


class JobState(str, Enum):
    """Compression job states."""
    IDLE = "idle"
    DOWNLOADING = "downloading"
    TRANSCODING = "transcoding"
    UPLOADING = "uploading"
    CLEANING_UP = "cleaning_up"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = frozenset((JobState.SUCCEEDED, JobState.FAILED))


@dataclass
class JobContext:
    """Per-request job state: identity, local paths and progress."""
    job_id: str
    bucket_name: str
    object_name: str
    input_path: str
    output_path: str
    output_object_name: str
    started_at: float
    state: JobState = JobState.IDLE
    failed_in: Optional[JobState] = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def local_paths(self) -> tuple[str, str]:
        return self.input_path, self.output_path

    def transition(self, state: JobState) -> JobState:
        """Move to ``state`` and return the previous one."""
        previous = self.state
        self.state = state
        return previous


@dataclass(frozen=True)
class ProcessOutcome:
    """Exit status and collected stderr of one FFmpeg run."""
    exit_code: int
    diagnostic_text: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class CompressionResult:
    """Outcome of a successful compression job."""
    original_file: str
    compressed_file: str
    bucket_name: str
    processing_time_ms: int
    original_size_bytes: int
    compressed_size_bytes: int
    compression_ratio_percent: float


def derive_output_object_name(object_name: str) -> str:
    """Name of the compressed object stored next to ``object_name``.

    >>> derive_output_object_name("video.mov")
    'video_compressed.mp4'
    >>> derive_output_object_name("clip")
    'clip_compressed.mp4'
    """
    return _EXTENSION_RE.sub("", object_name) + COMPRESSED_SUFFIX + COMPRESSED_EXTENSION


def compression_ratio(original_size: int, compressed_size: int) -> float:
    """Size reduction in percent, rounded to one decimal place.

    An empty original yields 0.0.
    """
    if original_size <= 0:
        return 0.0
    return round((original_size - compressed_size) / original_size * 100, 1)
