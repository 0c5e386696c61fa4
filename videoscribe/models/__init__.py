"""Data models for the VideoScribe application."""

from .media import MediaReference
from .state import ViewState, Preferences, Stage
from .transcription import TranscriptionResult, MODELS
from .events import Notice, NoticeLevel

__all__ = [
    "MediaReference",
    "ViewState",
    "Preferences",
    "Stage",
    "TranscriptionResult",
    "MODELS",
    "Notice",
    "NoticeLevel",
]
