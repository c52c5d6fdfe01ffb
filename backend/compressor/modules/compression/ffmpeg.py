"""FFmpeg process runner.

Runs one FFmpeg invocation per job with a fixed H.264 profile. The caller
awaits completion; stderr is streamed to the debug log while it is collected
for error reporting.
"""

import asyncio
import codecs
import logging
import re
from typing import Optional, Protocol

from compressor.core.logging import log_error, log_info
from compressor.core.metrics import FFMPEG_EXIT_CODES_TOTAL
from compressor.modules.compression.errors import TranscodeLaunchFailed
from compressor.modules.compression.models import ProcessOutcome

logger = logging.getLogger(__name__)

VIDEO_CODEC = "libx264"
CONSTANT_RATE_FACTOR = 33
FRAME_RATE = 30

STDERR_CHUNK_SIZE = 4096

_PROGRESS_RE = re.compile(r"time=\s*(\S+)")


class TranscodeRunner(Protocol):
    """Anything that can turn an input file into a compressed output file."""

    async def run(self, input_path: str, output_path: str) -> ProcessOutcome:
        ...


class FFmpegRunner:
    """Runs the FFmpeg executable with the service's compression profile."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        """Initialize runner.
        
        Args:
            ffmpeg_path: Path to ffmpeg binary
        """
        self.ffmpeg_path = ffmpeg_path

    def build_command(self, input_path: str, output_path: str) -> list[str]:
        """Build FFmpeg command for compression.
        
        Args:
            input_path: Downloaded source video
            output_path: Where FFmpeg writes the compressed video
            
        Returns:
            FFmpeg command as list of arguments
        """
        return [
            self.ffmpeg_path,
            "-y",  # Overwrite output
            "-i", input_path,
            "-vcodec", VIDEO_CODEC,
            "-crf", str(CONSTANT_RATE_FACTOR),
            "-r", str(FRAME_RATE),
            output_path,
        ]

    async def run(self, input_path: str, output_path: str) -> ProcessOutcome:
        """Run FFmpeg to completion.

        Raises:
            TranscodeLaunchFailed: The executable could not be started

        Returns:
            ProcessOutcome with exit code and full stderr text
        """
        cmd = self.build_command(input_path, output_path)
        log_info(logger, "Running FFmpeg", command=" ".join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log_error(logger, "FFmpeg could not be started", exception=e, ffmpeg_path=self.ffmpeg_path)
            raise TranscodeLaunchFailed(f"FFmpeg execution error: {e}") from e

        diagnostic_text = await self._collect_stderr(process.stderr)
        exit_code = await process.wait()
        FFMPEG_EXIT_CODES_TOTAL.labels(exit_code=str(exit_code)).inc()

        if exit_code == 0:
            log_info(logger, "FFmpeg finished", exit_code=exit_code)
        else:
            log_error(
                logger,
                "FFmpeg failed",
                exit_code=exit_code,
                stderr=diagnostic_text[-4000:],
            )

        return ProcessOutcome(exit_code=exit_code, diagnostic_text=diagnostic_text)

    async def _collect_stderr(self, stream: Optional[asyncio.StreamReader]) -> str:
        if stream is None:
            return ""

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        parts = []
        while True:
            chunk = await stream.read(STDERR_CHUNK_SIZE)
            if not chunk:
                break
            text = decoder.decode(chunk)
            parts.append(text)
            self._log_progress(text)
        parts.append(decoder.decode(b"", final=True))
        return "".join(parts)

    def _log_progress(self, text: str) -> None:
        if "frame=" not in text and "time=" not in text:
            return
        matches = _PROGRESS_RE.findall(text)
        if matches:
            logger.debug("FFmpeg progress", extra={"position": matches[-1]})
