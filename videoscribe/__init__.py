"""VideoScribe - video to transcript client for a remote transcription service."""

__version__ = "0.1.0"
