"""
Video transcoder: rescales a master WebM recording into a lower-quality variant via ffmpeg.

transcode() never raises for encoder problems; it returns False and logs, so a
missing tier never fails the route.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from shared.logging import get_logger

logger = get_logger(__name__)

# Keep stderr tail short in logs
_STDERR_TAIL_CHARS = 500


def build_scale_filter(scale: float) -> str:
    """ffmpeg scale filter; dimensions rounded down to even numbers for VP8/VP9."""
    return f"scale=trunc(iw*{scale}/2)*2:trunc(ih*{scale}/2)*2"


class FfmpegTranscoder:
    def __init__(self, executable: str = "ffmpeg"):
        self.executable = executable

    def resolve(self) -> str | None:
        """Absolute path of the ffmpeg binary, or None when it is not installed."""
        return shutil.which(self.executable)

    def build_command(self, binary: str, input_path: Path, output_path: Path, scale: float) -> list[str]:
        return [
            binary,
            "-y",
            "-loglevel",
            "error",
            "-i",
            str(input_path),
            "-vf",
            build_scale_filter(scale),
            "-c:v",
            "libvpx",
            "-b:v",
            "0",
            "-crf",
            "30",
            "-an",
            str(output_path),
        ]

    async def transcode(self, input_path: Path, output_path: Path, scale: float) -> bool:
        """Rescale input_path into output_path. Returns True only if ffmpeg succeeded and wrote the file."""
        binary = self.resolve()
        if not binary:
            logger.warning("transcoder_not_found", executable=self.executable)
            return False

        cmd = self.build_command(binary, input_path, output_path, scale)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await process.communicate()
        except OSError as e:
            logger.warning(
                "transcode_failed",
                input=str(input_path),
                output=str(output_path),
                scale=scale,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if process.returncode != 0 or not output_path.exists():
            logger.warning(
                "transcode_failed",
                input=str(input_path),
                output=str(output_path),
                scale=scale,
                returncode=process.returncode,
                stderr=(stderr or b"").decode("utf-8", errors="replace")[-_STDERR_TAIL_CHARS:],
            )
            return False

        logger.info("transcode_complete", output=str(output_path), scale=scale)
        return True
