"""API routes."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse

from momento.config import settings
from momento.pipeline.errors import ConfigurationError, PipelineError
from momento.pipeline.runner import ProcessingResult, run_pipeline
from momento.services.storage import (
    MediaAsset,
    content_type_for,
    new_request_id,
    remove_file,
    resolve_media_path,
    save_upload,
)
from momento.api.schemas import (
    ClipFailureResponse,
    ClipResponse,
    HealthResponse,
    MomentResponse,
    ProcessVideoResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def get_ffmpeg_path(request: Request) -> Optional[str]:
    """ffmpeg executable resolved during application startup."""
    return getattr(request.app.state, "ffmpeg_path", None)


# =============================================================================
# Health & System
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check(ffmpeg_path: Optional[str] = Depends(get_ffmpeg_path)):
    """Check API health and dependencies."""
    ffmpeg_ok = ffmpeg_path is not None
    stt_ok = bool(settings.elevenlabs_api_key)

    message = None
    if not ffmpeg_ok:
        message = "ffmpeg not found. Install ffmpeg or set FFMPEG_PATH"
    elif not stt_ok:
        message = "Transcription is not configured"

    return HealthResponse(
        status="healthy" if ffmpeg_ok and stt_ok else "degraded",
        ffmpeg_available=ffmpeg_ok,
        ffmpeg_path=ffmpeg_path,
        transcription_configured=stt_ok,
        message=message
    )


# =============================================================================
# Processing
# =============================================================================

@router.post("/process-video", response_model=ProcessVideoResponse)
async def process_video(
    file: Optional[UploadFile] = File(None),
    ffmpeg_path: Optional[str] = Depends(get_ffmpeg_path),
):
    """Upload a video and cut a clip around every laugh."""
    request_id = new_request_id()
    asset: Optional[MediaAsset] = None

    try:
        if ffmpeg_path is None:
            raise ConfigurationError("ffmpeg was not resolved at startup", stage="receive")

        if file is not None and file.filename:
            content = await file.read()
            if content:
                asset = save_upload(file.filename, content, request_id)

        result = await run_pipeline(asset, ffmpeg_path, request_id=request_id)
        return _result_to_response(result)
    except ConfigurationError as e:
        logger.error(f"[{request_id}] Configuration error at stage {e.stage}: {e}")
        raise HTTPException(status_code=e.status_code, detail=ConfigurationError.public_message)
    except PipelineError as e:
        raise HTTPException(status_code=e.status_code, detail=f"Processing failed: {e}")
    finally:
        if asset is not None:
            remove_file(asset.path)


# =============================================================================
# Static Files
# =============================================================================

@router.get("/media/{filename}")
async def get_media(filename: str):
    """Serve a generated clip or other temp artifact by name."""
    path = resolve_media_path(filename)
    if path is None:
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(
        path,
        media_type=content_type_for(path.name),
        headers={"Cache-Control": f"public, max-age={settings.media_cache_seconds}"},
    )


# =============================================================================
# Helpers
# =============================================================================

def _result_to_response(result: ProcessingResult) -> ProcessVideoResponse:
    """Convert a pipeline result to its API response."""
    return ProcessVideoResponse(
        success=True,
        request_id=result.request_id,
        clips=[ClipResponse(**clip.to_dict()) for clip in result.clips],
        failed_clips=[ClipFailureResponse(**failure.to_dict()) for failure in result.failures],
        moments=[MomentResponse(**moment.to_dict()) for moment in result.moments],
        transcript=result.transcript,
    )
