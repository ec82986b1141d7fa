"""Application configuration."""
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )

    # App settings
    app_name: str = "Momento"
    debug: bool = True

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Data directories
    data_dir: Path = Path("./data")
    temp_dir: Path = Path("./data/temp")

    # Speech-to-text (ElevenLabs Scribe)
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_base_url: str = "https://api.elevenlabs.io"
    stt_model_id: str = "scribe_v2"
    stt_timeout_seconds: float = 300.0

    # FFmpeg settings
    ffmpeg_path: Optional[str] = None  # Explicit override, else default install paths, else PATH
    ffmpeg_timeout_seconds: Optional[float] = 600.0  # Per invocation; None waits forever

    # Audio extraction
    audio_bitrate: str = "128k"

    # Clip export settings
    export_video_codec: str = "libx264"
    export_video_preset: str = "veryfast"
    export_video_crf: int = 18
    export_audio_codec: str = "aac"
    export_audio_bitrate: str = "192k"
    clip_max_concurrency: int = 2  # Concurrent ffmpeg trims per request

    # Temp storage
    write_transcript_json: bool = True  # Debug artifact next to the clips
    temp_retention_hours: float = 24.0
    media_cache_seconds: int = 3600

    # Frontend
    frontend_url: str = "http://localhost:3000"


settings = Settings()

# Ensure directories exist
settings.data_dir.mkdir(parents=True, exist_ok=True)
settings.temp_dir.mkdir(parents=True, exist_ok=True)
