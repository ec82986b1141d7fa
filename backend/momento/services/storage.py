"""Transient media storage.

Everything a request produces (upload, extracted audio, transcript and
clips) lives flat in ``settings.temp_dir`` with the request id as a
filename prefix, so concurrent requests never write the same path.
"""
import logging
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from momento.config import settings

logger = logging.getLogger(__name__)

MEDIA_ROUTE_PREFIX = "/api/media"
UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9.]")

CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".json": "application/json",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class MediaAsset:
    """An uploaded video held in temp storage."""
    original_name: str
    storage_name: str
    size: int
    path: Path


def new_request_id() -> str:
    """Allocate an identifier unique to one processing request."""
    return uuid.uuid4().hex


def sanitize_filename(name: Optional[str]) -> str:
    """Replace every character other than letters, digits and dots with '_'."""
    safe = UNSAFE_FILENAME_CHARS.sub("_", name or "")
    return safe or "upload"


def media_url(filename: str) -> str:
    """Public reference under which a stored file can be fetched."""
    return f"{MEDIA_ROUTE_PREFIX}/{filename}"


def content_type_for(filename: str) -> str:
    """Guess a content type from the file extension."""
    return CONTENT_TYPES.get(Path(filename).suffix.lower(), DEFAULT_CONTENT_TYPE)


def save_upload(
    original_name: Optional[str],
    content: bytes,
    request_id: str,
    temp_dir: Optional[Path] = None,
) -> MediaAsset:
    """
    Write uploaded bytes to temp storage.

    Args:
        original_name: Filename supplied by the client
        content: File bytes
        request_id: Request identifier used as filename prefix
        temp_dir: Storage root (defaults to settings.temp_dir)

    Returns:
        MediaAsset describing the stored file
    """
    temp_dir = Path(temp_dir or settings.temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)

    storage_name = f"{request_id}_{sanitize_filename(original_name)}"
    path = temp_dir / storage_name
    path.write_bytes(content)

    logger.info(f"Stored upload {original_name!r} as {storage_name} ({len(content)} bytes)")
    return MediaAsset(
        original_name=original_name or "",
        storage_name=storage_name,
        size=len(content),
        path=path,
    )


def resolve_media_path(filename: str, root: Optional[Path] = None) -> Optional[Path]:
    """
    Look up a stored file by name.

    Only plain filenames directly inside the storage root resolve; anything
    with directory components or resolving elsewhere returns None.
    """
    if not filename or filename in (".", ".."):
        return None
    if Path(filename).name != filename or "\\" in filename:
        return None

    root = Path(root or settings.temp_dir).resolve()
    candidate = (root / filename).resolve()
    if candidate.parent != root:
        return None
    if not candidate.is_file():
        return None
    return candidate


def remove_file(path: Optional[Path]) -> None:
    """Delete a temp file if it exists."""
    if path is None:
        return
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove temp file {path}: {e}")


def sweep_temp_dir(root: Optional[Path] = None, max_age_hours: Optional[float] = None) -> int:
    """
    Delete files older than the retention period.

    Returns:
        Number of files removed
    """
    root = Path(root or settings.temp_dir)
    if max_age_hours is None:
        max_age_hours = settings.temp_retention_hours
    if not root.exists():
        return 0

    cutoff = time.time() - max_age_hours * 3600
    removed = 0
    for path in root.iterdir():
        if not path.is_file():
            continue
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except OSError as e:
            logger.warning(f"Failed to sweep temp file {path}: {e}")

    if removed:
        logger.info(f"Removed {removed} expired files from {root}")
    return removed
