"""Media transform jobs (video normalization and audio extraction)."""

from .transformer import MediaTransformer, NORMALIZE_JOB, EXTRACT_AUDIO_JOB

__all__ = [
    "MediaTransformer",
    "NORMALIZE_JOB",
    "EXTRACT_AUDIO_JOB",
]
