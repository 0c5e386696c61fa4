"""Durable key/value storage for VideoScribe."""

from .preference_store import (
    PreferenceStore,
    VIDEO_LOCATION,
    TRANSCRIPT_TEXT,
    SUMMARY_TEXT,
    CREATE_SUMMARY_PREFERENCE,
    PENDING_POLLING_KEY,
    PENDING_SUMMARIZE,
)

__all__ = [
    "PreferenceStore",
    "VIDEO_LOCATION",
    "TRANSCRIPT_TEXT",
    "SUMMARY_TEXT",
    "CREATE_SUMMARY_PREFERENCE",
    "PENDING_POLLING_KEY",
    "PENDING_SUMMARIZE",
]
