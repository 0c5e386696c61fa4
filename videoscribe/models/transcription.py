"""Transcription-related data models."""

from dataclasses import dataclass

# Whisper model sizes the transcription service accepts
MODELS = ("tiny", "base", "small", "medium", "large")


@dataclass(frozen=True)
class TranscriptionResult:
    """One poll response from the transcription service.

    ``transcript`` and ``summary`` are meaningless while ``completed`` is False.
    """
    completed: bool
    transcript: str = ""
    summary: str = ""
