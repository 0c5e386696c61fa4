"""View state data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .media import MediaReference


class Stage(Enum):
    """Position in the client workflow, derived from the view state."""
    NO_VIDEO = "no_video"
    VIDEO_SELECTED = "video_selected"
    AWAITING_RESULT = "awaiting_result"
    HAS_TRANSCRIPT = "has_transcript"
    HAS_SUMMARY = "has_summary"


@dataclass(frozen=True)
class ViewState:
    """Snapshot of everything the presentation layer renders.

    Replaced as a whole on every mutation; never modified in place.
    """
    video: Optional[MediaReference] = None
    transcript: str = ""
    summary: str = ""
    create_summary: bool = True


@dataclass(frozen=True)
class Preferences:
    """User settings read from the persistent store at command entry."""
    create_summary: bool = True
