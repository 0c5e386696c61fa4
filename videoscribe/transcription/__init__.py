"""Transcription service client for VideoScribe."""

from .client import TranscriptionClient
from .worker import RequestWorker
from .schemas import KeyResponse, TranscriptionResponse

__all__ = [
    "TranscriptionClient",
    "RequestWorker",
    "KeyResponse",
    "TranscriptionResponse",
]
