"""Console screen rendering view state snapshots and notices with rich."""

import logging
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.events import Notice, NoticeLevel
from ..models.state import Stage, ViewState
from ..services.state_publisher import STATE_TOPIC, NOTICE_TOPIC

logger = logging.getLogger(__name__)

NOTICE_STYLES = {
    NoticeLevel.INFO: "cyan",
    NoticeLevel.SUCCESS: "green",
    NoticeLevel.WARNING: "yellow",
    NoticeLevel.ERROR: "bold red",
}


class ConsoleScreen:
    """Read-only view of the controller state; prints notices as they arrive."""
    
    def __init__(self, console: Optional[Console] = None,
                 state_topic: str = STATE_TOPIC, notice_topic: str = NOTICE_TOPIC):
        self.console = console or Console()
        self.state_topic = state_topic
        self.notice_topic = notice_topic
        self.latest_state = ViewState()
        
        pub.subscribe(self._on_state, state_topic)
        pub.subscribe(self._on_notice, notice_topic)
    
    def _on_state(self, state: ViewState) -> None:
        self.latest_state = state
    
    def _on_notice(self, notice: Notice) -> None:
        style = NOTICE_STYLES.get(notice.level, "white")
        self.console.print(Text(notice.message, style=style))
    
    def render(self, stage: Stage, state: Optional[ViewState] = None) -> None:
        """Print the latest published state as panels.
        
        Args:
            stage: Workflow stage to show in the header
            state: State to render instead of the latest published one
        """
        state = state or self.latest_state
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Stage", stage.value.replace("_", " "))
        table.add_row("Video", state.video.location if state.video else "none selected")
        table.add_row("Create summary", "yes" if state.create_summary else "no")
        self.console.print(Panel(table, title="VideoScribe", border_style="blue"))
        
        if state.transcript:
            self.console.print(Panel(state.transcript, title="Transcript"))
        elif state.video is not None:
            self.console.print(Text("Transcript not available yet", style="dim"))
        
        if state.summary:
            self.console.print(Panel(state.summary, title="Summary", border_style="green"))
    
    def close(self) -> None:
        pub.unsubscribe(self._on_state, self.state_topic)
        pub.unsubscribe(self._on_notice, self.notice_topic)
