"""Services layer for VideoScribe application logic."""

from .state_publisher import StatePublisher
from .state_controller import StateController

__all__ = [
    "StatePublisher",
    "StateController",
]
