"""Speech-to-text client for ElevenLabs Scribe."""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from momento.config import settings
from momento.pipeline.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

SPEECH_TO_TEXT_PATH = "/v1/speech-to-text"
CONNECT_TIMEOUT_SECONDS = 15.0
# Upstream bodies end up in error messages and logs
MAX_ERROR_BODY_CHARS = 1000


def _response_body(response: httpx.Response) -> str:
    text = (response.text or "").strip()
    return text[:MAX_ERROR_BODY_CHARS] or f"HTTP {response.status_code}"


class TranscriptionService:
    """
    Submits audio to the speech-to-text API with audio event tagging
    and speaker diarization turned on.
    """

    STAGE = "transcribe"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.elevenlabs_api_key
        self.base_url = (base_url or settings.elevenlabs_base_url).rstrip("/")
        self.model_id = model_id or settings.stt_model_id
        self.timeout = timeout or settings.stt_timeout_seconds

    def ensure_configured(self) -> None:
        """Fail fast when the API credential is missing."""
        if not self.api_key:
            raise ConfigurationError("Transcription credential is not configured", stage=self.STAGE)

    def build_form(self) -> Dict[str, str]:
        """Fixed request parameters sent with every file."""
        return {
            "model_id": self.model_id,
            "tag_audio_events": "true",
            "diarize": "true",
        }

    async def transcribe(self, audio_path: Path, request_id: str = "") -> Dict[str, Any]:
        """
        Transcribe an audio file.

        Args:
            audio_path: Path to an MP3 file
            request_id: Request identifier for log context

        Returns:
            The decoded JSON response, unmodified

        Raises:
            ConfigurationError: If no credential is configured
            UpstreamError: On network errors, non-2xx responses or invalid JSON
        """
        self.ensure_configured()
        audio_path = Path(audio_path)

        url = f"{self.base_url}{SPEECH_TO_TEXT_PATH}"
        files = {"file": (audio_path.name, audio_path.read_bytes(), "audio/mpeg")}
        timeout = httpx.Timeout(self.timeout, connect=CONNECT_TIMEOUT_SECONDS)

        logger.info(f"[{request_id}] Sending {audio_path.name} to speech-to-text ({self.model_id})")
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(
                    url,
                    data=self.build_form(),
                    files=files,
                    headers={"xi-api-key": self.api_key},
                )
        except httpx.TimeoutException as exc:
            raise UpstreamError("Transcription request timed out", stage=self.STAGE) from exc
        except httpx.RequestError as exc:
            raise UpstreamError(f"Unable to reach transcription service: {exc}", stage=self.STAGE) from exc

        if not 200 <= response.status_code < 300:
            body = _response_body(response)
            raise UpstreamError(
                f"Transcription failed with status {response.status_code}: {body}",
                stage=self.STAGE,
                upstream_status=response.status_code,
                upstream_body=body,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "Transcription service returned invalid JSON",
                stage=self.STAGE,
                upstream_status=response.status_code,
            ) from exc

        logger.info(f"[{request_id}] Speech-to-text analysis complete")
        return payload
