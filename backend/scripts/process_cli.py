#!/usr/bin/env python3
"""
CLI tool to cut laughter clips from a local video file.

Usage:
    python scripts/process_cli.py <video_path> [--output-dir <dir>] [--transcript <json>]

Example:
    python scripts/process_cli.py ~/Videos/standup.mp4 --output-dir ./output
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from momento.config import settings
from momento.pipeline.clips import extract_clips
from momento.pipeline.errors import PipelineError
from momento.pipeline.runner import ProcessingResult, run_pipeline
from momento.pipeline.transcript import normalize_transcript
from momento.pipeline.windows import compute_windows
from momento.services.storage import MediaAsset, new_request_id
from momento.utils.ffmpeg import resolve_ffmpeg_path


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)


async def process_video(
    video_path: Path,
    output_dir: Path,
    transcript_path: Optional[Path] = None,
) -> ProcessingResult:
    """
    Cut clips from a video and write a JSON manifest.

    Args:
        video_path: Path to video file
        output_dir: Directory for clips and manifest
        transcript_path: Saved transcript to use instead of calling speech-to-text
    """
    if not video_path.exists():
        raise FileNotFoundError(f"Video not found: {video_path}")

    output_dir.mkdir(parents=True, exist_ok=True)
    ffmpeg_path = resolve_ffmpeg_path(settings.ffmpeg_path)
    logger.info(f"Processing: {video_path} (ffmpeg: {ffmpeg_path})")

    if transcript_path:
        # Reuse a saved transcript: skip audio extraction and speech-to-text
        with open(transcript_path) as f:
            transcript = json.load(f)
        request_id = new_request_id()
        moments = normalize_transcript(transcript)
        report = await extract_clips(
            ffmpeg_path, video_path, compute_windows(moments), output_dir, request_id
        )
        result = ProcessingResult(
            request_id=request_id,
            transcript=transcript,
            moments=moments,
            clips=report.clips,
            failures=report.failures,
        )
    else:
        asset = MediaAsset(
            original_name=video_path.name,
            storage_name=video_path.name,
            size=video_path.stat().st_size,
            path=video_path,
        )

        async def progress_callback(pct, msg):
            logger.info(f"[{pct:.0f}%] {msg}")

        result = await run_pipeline(
            asset,
            ffmpeg_path,
            output_dir=output_dir,
            progress_callback=progress_callback,
        )

    manifest = result.to_dict()
    for entry, clip in zip(manifest["clips"], result.clips):
        entry["path"] = str(clip.path)

    output_file = output_dir / f"momento_{result.request_id}_manifest.json"
    with open(output_file, 'w') as f:
        json.dump(manifest, f, indent=2)

    logger.info(f"Manifest written to: {output_file}")
    logger.info(f"Generated {len(result.clips)} clips from {len(result.moments)} laughter moments")
    for failure in result.failures:
        logger.warning(f"  Clip {failure.index} failed: {failure.reason}")

    return result


def main():
    parser = argparse.ArgumentParser(
        description="Cut laughter highlight clips from a video file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Transcribe and cut (needs ELEVENLABS_API_KEY)
    python scripts/process_cli.py video.mp4

    # Re-cut from a transcript saved by an earlier run
    python scripts/process_cli.py video.mp4 --transcript ./output/<id>_transcript.json

    # Custom output directory
    python scripts/process_cli.py video.mp4 --output-dir /path/to/output
        """
    )

    parser.add_argument(
        "video_path",
        type=Path,
        help="Path to video file to process"
    )

    parser.add_argument(
        "--output-dir", "-o",
        type=Path,
        default=Path("./momento_output"),
        help="Output directory for clips (default: ./momento_output)"
    )

    parser.add_argument(
        "--transcript", "-t",
        type=Path,
        default=None,
        help="Transcript JSON to use instead of calling speech-to-text"
    )

    args = parser.parse_args()

    try:
        asyncio.run(process_video(
            video_path=args.video_path,
            output_dir=args.output_dir,
            transcript_path=args.transcript,
        ))
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except PipelineError as e:
        logger.error(f"Processing failed at stage {e.stage}: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
