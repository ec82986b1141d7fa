"""Pipeline error types.

Every request-level failure is a ``PipelineError`` carrying the stage it
happened in and the HTTP status the API layer should answer with.
Per-clip failures are not raised; they are reported in the result.
"""
from typing import Optional


class PipelineError(RuntimeError):
    """Base class for errors that abort a processing request."""

    status_code = 500

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class InputError(PipelineError):
    """Raised when the request carries no usable media file."""

    status_code = 400


class ConfigurationError(PipelineError):
    """Raised when the server is missing a credential or the ffmpeg binary."""

    status_code = 500
    public_message = "Server is not configured to process videos."


class UpstreamError(PipelineError):
    """Raised when ffmpeg or the transcription service fails."""

    status_code = 502

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        upstream_status: Optional[int] = None,
        upstream_body: Optional[str] = None,
    ):
        super().__init__(message, stage)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
