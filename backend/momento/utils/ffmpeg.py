"""FFmpeg utilities."""
import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional, Sequence

from momento.config import settings
from momento.pipeline.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Checked in order when no explicit path is configured
DEFAULT_FFMPEG_PATHS = (
    "/usr/bin/ffmpeg",
    "/usr/local/bin/ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
)


class FFmpegError(Exception):
    """FFmpeg related error."""
    pass


def _is_executable(path: str | Path) -> bool:
    path = Path(path)
    return path.is_file() and os.access(path, os.X_OK)


def resolve_ffmpeg_path(
    configured: Optional[str] = None,
    default_paths: Sequence[str] = DEFAULT_FFMPEG_PATHS,
) -> str:
    """
    Resolve the ffmpeg executable to use for the lifetime of the process.

    Resolution order: the configured path (``FFMPEG_PATH``), the default
    install locations, then a ``PATH`` lookup.

    Args:
        configured: Explicit path or command name, usually settings.ffmpeg_path
        default_paths: Install locations to probe

    Returns:
        Absolute path to an executable ffmpeg

    Raises:
        ConfigurationError: If no usable ffmpeg is found
    """
    if configured:
        if _is_executable(configured):
            return str(Path(configured).resolve())
        found = shutil.which(configured)
        if found:
            return found
        logger.warning(f"Configured ffmpeg path is not executable: {configured}")

    for candidate in default_paths:
        if _is_executable(candidate):
            return candidate

    found = shutil.which("ffmpeg")
    if found:
        return found

    raise ConfigurationError("No usable ffmpeg executable found", stage="startup")


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg can be resolved."""
    try:
        resolve_ffmpeg_path(settings.ffmpeg_path)
    except ConfigurationError:
        return False
    return True


def build_ffmpeg_command(
    ffmpeg_path: str,
    input_path: str | Path,
    output_path: str | Path,
    start_time: Optional[float] = None,
    duration: Optional[float] = None,
    output_args: Sequence[str] = (),
) -> List[str]:
    """
    Build an ffmpeg command line.

    Args:
        ffmpeg_path: Resolved ffmpeg executable
        input_path: Source media
        output_path: Destination file, format inferred from its extension
        start_time: Optional input seek offset in seconds
        duration: Optional output duration in seconds
        output_args: Codec/format options placed before the output path

    Returns:
        Argument list suitable for create_subprocess_exec
    """
    cmd = [ffmpeg_path, "-y"]
    if start_time is not None:
        cmd += ["-ss", f"{start_time:.3f}"]
    cmd += ["-i", str(input_path)]
    if duration is not None:
        cmd += ["-t", f"{duration:.3f}"]
    cmd += list(output_args)
    cmd.append(str(output_path))
    return cmd


async def run_ffmpeg(cmd: List[str], timeout: Optional[float] = None) -> None:
    """
    Run an ffmpeg command to completion.

    Raises:
        FFmpegError: If the process cannot start, exits non-zero or times out
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise FFmpegError(f"Failed to start ffmpeg: {e}") from e

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise FFmpegError(f"ffmpeg timed out after {timeout:.0f}s")

    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="ignore").strip()
        # ffmpeg prints its banner first; the error is at the end
        raise FFmpegError(f"ffmpeg exited with code {proc.returncode}: {detail[-2000:]}")


async def extract_audio(
    ffmpeg_path: str,
    source_path: str | Path,
    output_path: str | Path,
) -> Path:
    """
    Extract the audio track of a video into an MP3 file.

    Args:
        ffmpeg_path: Resolved ffmpeg executable
        source_path: Path to source video
        output_path: Path for the .mp3 output

    Returns:
        Path to the extracted audio
    """
    source_path = Path(source_path)
    output_path = Path(output_path)

    if not source_path.exists():
        raise FFmpegError(f"Video file not found: {source_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = build_ffmpeg_command(
        ffmpeg_path,
        source_path,
        output_path,
        output_args=[
            "-vn",
            "-c:a", "libmp3lame",
            "-b:a", settings.audio_bitrate,
        ],
    )
    await run_ffmpeg(cmd, timeout=settings.ffmpeg_timeout_seconds)

    if not output_path.exists() or output_path.stat().st_size == 0:
        raise FFmpegError(f"ffmpeg reported success, but audio output is missing/empty: {output_path}")

    return output_path


async def trim_clip(
    ffmpeg_path: str,
    source_path: str | Path,
    output_path: str | Path,
    start_time: float,
    duration: float,
) -> Path:
    """
    Cut a clip from the source video.

    ffmpeg stops at the end of the input, so a duration running past the
    end of the media yields a shorter clip rather than an error.

    Args:
        ffmpeg_path: Resolved ffmpeg executable
        source_path: Path to source video
        output_path: Path for output file
        start_time: Start time in seconds
        duration: Clip length in seconds

    Returns:
        Path to the clip
    """
    source_path = Path(source_path)
    output_path = Path(output_path)

    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = build_ffmpeg_command(
        ffmpeg_path,
        source_path,
        output_path,
        start_time=start_time,
        duration=duration,
        output_args=[
            "-c:v", settings.export_video_codec,
            "-preset", settings.export_video_preset,
            "-crf", str(settings.export_video_crf),
            "-c:a", settings.export_audio_codec,
            "-b:a", settings.export_audio_bitrate,
            "-movflags", "+faststart",
        ],
    )
    await run_ffmpeg(cmd, timeout=settings.ffmpeg_timeout_seconds)

    if not output_path.exists() or output_path.stat().st_size == 0:
        raise FFmpegError(f"ffmpeg reported success, but clip output is missing/empty: {output_path}")

    return output_path
