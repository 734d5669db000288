"""Mutable state for one in-flight stream.

A StreamSession lives for exactly one request/response cycle and is
mutated only by the StreamSupervisor that owns it.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from streamcanvas.schemas.streaming import SessionState, ToolActivity, ToolStatus


@dataclass
class StreamSession:
    """State of one stream, owned by its supervisor."""

    started_at: float
    prompt: str = ""
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    accumulated_content: str = ""
    accumulated_thinking: str = ""
    last_activity_at: float = 0.0
    state: SessionState = SessionState.IDLE
    finalized: bool = False
    cancelled: bool = False
    tools: list[ToolActivity] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.last_activity_at:
            self.last_activity_at = self.started_at

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.STREAMING and not self.finalized

    def last_running_tool(self) -> ToolActivity | None:
        """The most recent tool activity still waiting for its result."""
        for activity in reversed(self.tools):
            if activity.status == ToolStatus.RUNNING:
                return activity
        return None
