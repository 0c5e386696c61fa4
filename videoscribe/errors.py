"""Exception types raised by VideoScribe components."""

from typing import Optional


class VideoScribeError(Exception):
    """Base class for all VideoScribe errors."""


class StorageUnavailable(VideoScribeError):
    """The persistent store could not be read or written."""


class TransformFailure(VideoScribeError):
    """A media transform job did not produce its output."""

    def __init__(self, kind: str, message: str, stderr: str = ""):
        super().__init__(f"{kind} transform failed: {message}")
        self.kind = kind
        self.stderr = stderr


class InvalidModelError(ValueError):
    """Model identifier is not one the transcription service offers."""


class TranscriptionServiceError(VideoScribeError):
    """Base class for failures talking to the transcription service."""


class NetworkError(TranscriptionServiceError):
    """The service could not be reached or the connection broke."""


class ServerError(TranscriptionServiceError):
    """The service answered with an error status."""

    def __init__(self, status: int, body: str = "", operation: Optional[str] = None):
        where = f" during {operation}" if operation else ""
        super().__init__(f"Server returned HTTP {status}{where}: {body[:200]}")
        self.status = status
        self.body = body


class ParseError(TranscriptionServiceError):
    """The service answered with a body that is not the expected JSON."""
