"""Streaming schemas for the assistant protocol handler.

Defines the decoded Frame record, the extracted CodeBlock, the closed
ArtifactLanguage set delivered to the preview surface, tool activity
records, and the session lifecycle enums.
"""

from __future__ import annotations

import uuid
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class FrameKind(StrEnum):
    """Event kinds carried by the inbound stream."""

    THINKING = "thinking"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    CONTENT = "content"
    DONE = "done"
    ERROR = "error"


class Frame(BaseModel):
    """A single decoded event record from the inbound stream."""

    model_config = ConfigDict(frozen=True)

    kind: FrameKind = Field(description="Event discriminator")
    text: str = Field(default="", description="Normalized text payload")


class ArtifactLanguage(StrEnum):
    """Languages the live-preview surface knows how to render."""

    HTML = "html"
    REACT = "react"
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    CSS = "css"
    SVG = "svg"
    MERMAID = "mermaid"


class CodeBlock(BaseModel):
    """A fenced code span found inside accumulated assistant text."""

    language: str = Field(default="", description="Declared fence tag, lower-cased")
    raw_text: str = Field(description="Fence body without markers")
    is_complete: bool = Field(description="False while the closing fence has not arrived")


class Artifact(BaseModel):
    """A classified code block as pushed to the preview surface."""

    code: str = Field(description="Source shown in the preview")
    language: ArtifactLanguage = Field(description="Canonical preview language")
    title: str = Field(description="Human-friendly artifact title")
    is_streaming: bool = Field(default=False, description="True for in-progress previews")


class ToolStatus(StrEnum):
    """Lifecycle of a single tool invocation."""

    RUNNING = "running"
    COMPLETE = "complete"


class ToolActivity(BaseModel):
    """One tool invocation reported by the backend."""

    tool_id: str = Field(default_factory=lambda: f"tool_{uuid.uuid4().hex[:12]}")
    name: str = Field(default="tool_call", description="Tool label shown to the user")
    text: str = Field(default="", description="Call description, result appended on completion")
    status: ToolStatus = Field(default=ToolStatus.RUNNING)
    result: str | None = Field(default=None, description="Raw result text once complete")


class SessionOutcome(StrEnum):
    """Terminal outcome reported when a session ends."""

    COMPLETED = "completed"
    ABORTED = "aborted"
    ERRORED = "errored"
    STALE = "stale"


class SessionState(StrEnum):
    """Supervisor state machine for one stream session."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    ERRORED = "errored"
    STALE_FINALIZED = "stale_finalized"

    @property
    def is_terminal(self) -> bool:
        return self not in (SessionState.IDLE, SessionState.STREAMING)


# Terminal state reached for each outcome
OUTCOME_STATES: dict[SessionOutcome, SessionState] = {
    SessionOutcome.COMPLETED: SessionState.COMPLETED,
    SessionOutcome.ABORTED: SessionState.ABORTED,
    SessionOutcome.ERRORED: SessionState.ERRORED,
    SessionOutcome.STALE: SessionState.STALE_FINALIZED,
}
