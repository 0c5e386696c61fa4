"""Publishes view state snapshots and user notices using pubsub."""

import logging
from pubsub import pub

from ..models.events import Notice, NoticeLevel
from ..models.state import ViewState

logger = logging.getLogger(__name__)

STATE_TOPIC = "view.state"
NOTICE_TOPIC = "view.notice"


def _state_proto_listener(state: ViewState) -> None:
    """Prototype listener defining the message data of the state topic."""


def _notice_proto_listener(notice: Notice) -> None:
    """Prototype listener defining the message data of the notice topic."""


class StatePublisher:
    """Publishes ViewState snapshots and Notices for the presentation layer."""
    
    def __init__(self, state_topic: str = STATE_TOPIC, notice_topic: str = NOTICE_TOPIC):
        """Initialize state publisher.
        
        Args:
            state_topic: Pub/sub topic for view state snapshots
            notice_topic: Pub/sub topic for one-shot notices
        """
        self.state_topic = state_topic
        self.notice_topic = notice_topic
        
        topic_mgr = pub.getDefaultTopicMgr()
        topic_mgr.getOrCreateTopic(state_topic, _state_proto_listener)
        topic_mgr.getOrCreateTopic(notice_topic, _notice_proto_listener)
        logger.info(f"StatePublisher initialized with topics: {state_topic}, {notice_topic}")
    
    def publish_state(self, state: ViewState) -> None:
        """Publish a view state snapshot.
        
        Args:
            state: New ViewState
        """
        pub.sendMessage(self.state_topic, state=state)
    
    def publish_notice(self, message: str, level: NoticeLevel = NoticeLevel.INFO) -> None:
        """Publish a transient user notice.
        
        Args:
            message: Text shown to the user
            level: Severity of the notice
        """
        logger.debug(f"Notice ({level.value}): {message}")
        pub.sendMessage(self.notice_topic, notice=Notice(message=message, level=level))
