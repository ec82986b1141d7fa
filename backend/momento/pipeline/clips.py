"""Clip extraction.

Cuts one clip per window with ffmpeg. Trims run concurrently up to a fixed
limit; a failed trim is recorded and the remaining windows still run.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from momento.config import settings
from momento.services.storage import media_url
from momento.utils import ffmpeg
from momento.utils.ffmpeg import FFmpegError

from .windows import ClipWindow

logger = logging.getLogger(__name__)


@dataclass
class GeneratedClip:
    """A clip written to temp storage."""
    index: int
    filename: str
    path: Path
    source_name: str
    window: ClipWindow

    @property
    def url(self) -> str:
        return media_url(self.filename)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "url": self.url,
            "filename": self.filename,
            "start": self.window.start,
            "duration": self.window.duration,
        }


@dataclass
class ClipFailure:
    """A window that did not produce a clip."""
    index: int
    window: ClipWindow
    reason: str

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "start": self.window.start,
            "duration": self.window.duration,
            "reason": self.reason,
        }


@dataclass
class ClipExtractionReport:
    """Outcome of cutting all windows of one request, in window order."""
    clips: List[GeneratedClip] = field(default_factory=list)
    failures: List[ClipFailure] = field(default_factory=list)


def clip_filename(request_id: str, index: int) -> str:
    """Output name for a clip, unique per request and ordinal."""
    return f"momento_{request_id}_clip_{index}.mp4"


async def extract_clips(
    ffmpeg_path: str,
    media_path: Union[str, Path],
    windows: List[ClipWindow],
    output_dir: Path,
    request_id: str,
    max_concurrency: Optional[int] = None,
) -> ClipExtractionReport:
    """
    Cut a clip for every window.

    Args:
        ffmpeg_path: Resolved ffmpeg executable
        media_path: Source video
        windows: Windows in moment order
        output_dir: Directory for the clips
        request_id: Identifier of the request, used in clip names
        max_concurrency: Concurrent ffmpeg processes (settings default)

    Returns:
        ClipExtractionReport with clips and failures ordered by window index
    """
    media_path = Path(media_path)
    limit = max(1, max_concurrency or settings.clip_max_concurrency)
    semaphore = asyncio.Semaphore(limit)

    async def cut(window: ClipWindow) -> Union[GeneratedClip, ClipFailure]:
        if not window.is_valid:
            logger.warning(
                f"[{request_id}] Skipping clip {window.index}: "
                f"non-positive duration {window.duration:.2f}s"
            )
            return ClipFailure(
                index=window.index,
                window=window,
                reason=f"invalid window: duration {window.duration:.2f}s",
            )

        filename = clip_filename(request_id, window.index)
        async with semaphore:
            try:
                path = await ffmpeg.trim_clip(
                    ffmpeg_path,
                    media_path,
                    output_dir / filename,
                    window.start,
                    window.duration,
                )
            except FFmpegError as e:
                logger.warning(f"[{request_id}] Clip {window.index} extraction failed: {e}")
                return ClipFailure(index=window.index, window=window, reason=str(e))
            except Exception as e:
                logger.exception(f"[{request_id}] Clip {window.index} extraction failed unexpectedly: {e}")
                return ClipFailure(index=window.index, window=window, reason=f"unexpected error: {e}")

        logger.info(
            f"[{request_id}] Clip {window.index} written: {filename} "
            f"({window.start:.2f}s +{window.duration:.2f}s)"
        )
        return GeneratedClip(
            index=window.index,
            filename=filename,
            path=path,
            source_name=media_path.name,
            window=window,
        )

    # gather keeps input order whatever order the trims finish in
    outcomes = await asyncio.gather(*(cut(w) for w in windows))

    report = ClipExtractionReport()
    for outcome in outcomes:
        if isinstance(outcome, GeneratedClip):
            report.clips.append(outcome)
        else:
            report.failures.append(outcome)
    return report
