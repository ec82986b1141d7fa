"""Pipeline runner.

Turns an uploaded video into laughter highlight clips:
receive -> extract audio -> transcribe -> normalize -> window + extract.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

from momento.config import settings
from momento.services.storage import MediaAsset, new_request_id, remove_file
from momento.services.transcription_service import TranscriptionService
from momento.utils import ffmpeg
from momento.utils.ffmpeg import FFmpegError

from .clips import ClipFailure, GeneratedClip, extract_clips
from .errors import InputError, PipelineError, UpstreamError
from .transcript import LaughterMoment, normalize_transcript
from .windows import compute_windows

logger = logging.getLogger(__name__)

STAGE_RECEIVE = "receive"
STAGE_EXTRACT_AUDIO = "extract_audio"
STAGE_TRANSCRIBE = "transcribe"
STAGE_NORMALIZE = "normalize"
STAGE_EXTRACT_CLIPS = "extract_clips"


@dataclass
class ProcessingResult:
    """Result of processing one video."""
    request_id: str
    transcript: Any
    moments: List[LaughterMoment] = field(default_factory=list)
    clips: List[GeneratedClip] = field(default_factory=list)
    failures: List[ClipFailure] = field(default_factory=list)

    @property
    def clip_urls(self) -> List[str]:
        return [clip.url for clip in self.clips]

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "clips": [clip.to_dict() for clip in self.clips],
            "failed_clips": [failure.to_dict() for failure in self.failures],
            "moments": [moment.to_dict() for moment in self.moments],
            "transcript": self.transcript,
        }


def _write_transcript(transcript: Any, path: Path, request_id: str) -> None:
    try:
        with open(path, "w") as f:
            json.dump(transcript, f, indent=2)
    except (OSError, TypeError) as e:
        logger.warning(f"[{request_id}] Could not write transcript artifact {path}: {e}")


async def run_pipeline(
    asset: Optional[MediaAsset],
    ffmpeg_path: str,
    output_dir: Optional[Path] = None,
    transcriber: Optional[TranscriptionService] = None,
    request_id: Optional[str] = None,
    progress_callback: Optional[Callable[[float, str], Awaitable[None]]] = None,
) -> ProcessingResult:
    """
    Run the full laughter clipping pipeline on an uploaded video.

    Args:
        asset: Uploaded video
        ffmpeg_path: ffmpeg executable resolved at startup
        output_dir: Directory for audio, transcript and clips (settings.temp_dir)
        transcriber: Speech-to-text client (built from settings if not provided)
        request_id: Identifier used to prefix every file of this request
        progress_callback: Optional async callback for progress updates

    Returns:
        ProcessingResult with clips in moment order

    Raises:
        InputError: If no video was provided
        ConfigurationError: If transcription is not configured
        UpstreamError: If audio extraction or transcription fails
    """
    request_id = request_id or new_request_id()
    output_dir = Path(output_dir or settings.temp_dir)
    transcriber = transcriber or TranscriptionService()

    async def report_progress(pct: float, msg: str):
        if progress_callback:
            await progress_callback(pct, msg)
        logger.info(f"[{request_id}] [{pct:.0f}%] {msg}")

    audio_path = output_dir / f"{request_id}_audio.mp3"
    stage = STAGE_RECEIVE
    try:
        # Stage 1: Receive
        if asset is None or not Path(asset.path).is_file():
            raise InputError("No file uploaded", stage=stage)
        transcriber.ensure_configured()
        output_dir.mkdir(parents=True, exist_ok=True)
        await report_progress(0, f"Received {asset.storage_name} ({asset.size} bytes)")

        # Stage 2: Audio extraction
        stage = STAGE_EXTRACT_AUDIO
        await report_progress(10, "Extracting audio...")
        try:
            await ffmpeg.extract_audio(ffmpeg_path, asset.path, audio_path)
        except FFmpegError as e:
            raise UpstreamError(f"Audio extraction failed: {e}", stage=stage) from e

        # Stage 3: Transcription
        stage = STAGE_TRANSCRIBE
        await report_progress(25, "Transcribing audio...")
        transcript = await transcriber.transcribe(audio_path, request_id=request_id)
        if settings.write_transcript_json:
            _write_transcript(transcript, output_dir / f"{request_id}_transcript.json", request_id)

        # Stage 4: Laughter detection
        stage = STAGE_NORMALIZE
        moments = normalize_transcript(transcript)
        await report_progress(60, f"Found {len(moments)} laughter moments")
    except PipelineError as e:
        if e.stage is None:
            e.stage = stage
        logger.error(f"[{request_id}] Pipeline failed at stage {e.stage}: {e}")
        raise
    except Exception as e:
        logger.exception(f"[{request_id}] Pipeline failed at stage {stage}: {e}")
        raise PipelineError(f"Unexpected error: {e}", stage=stage) from e
    finally:
        remove_file(audio_path)

    if not moments:
        await report_progress(100, "No funny moments found")
        return ProcessingResult(request_id=request_id, transcript=transcript)

    # Stage 5: Windows + clip extraction
    stage = STAGE_EXTRACT_CLIPS
    windows = compute_windows(moments)
    await report_progress(65, f"Cutting {len(windows)} clips...")
    report = await extract_clips(
        ffmpeg_path,
        asset.path,
        windows,
        output_dir,
        request_id,
    )
    if report.failures:
        failed = ", ".join(str(f.index) for f in report.failures)
        logger.warning(f"[{request_id}] {len(report.failures)} clips failed at stage {stage}: {failed}")

    await report_progress(100, f"Generated {len(report.clips)} of {len(windows)} clips")

    return ProcessingResult(
        request_id=request_id,
        transcript=transcript,
        moments=moments,
        clips=report.clips,
        failures=report.failures,
    )
