"""Event models published on the pub/sub topics."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class NoticeLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notice:
    """Transient, one-shot message for the user (never part of the view state)."""
    message: str
    level: NoticeLevel = NoticeLevel.INFO
    timestamp: datetime = field(default_factory=datetime.now)
