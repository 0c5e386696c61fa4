"""Wire schemas of the transcription service JSON responses."""

from pydantic import BaseModel


class KeyResponse(BaseModel):
    """Body of ``POST /transcribe``."""
    key: str


class TranscriptionResponse(BaseModel):
    """Body of ``GET /checkTranscription``.
    
    Unfinished jobs may leave out or null the text fields.
    """
    completed: bool
    transcript: str = ""
    summary: str = ""

    @classmethod
    def from_payload(cls, payload: dict) -> "TranscriptionResponse":
        cleaned = {k: v for k, v in payload.items() if v is not None} if isinstance(payload, dict) else payload
        return cls.model_validate(cleaned)
