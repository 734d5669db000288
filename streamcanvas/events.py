"""Stream event emitter: the boundary between the core and its surfaces.

The supervisor never touches a rendering surface directly. It emits
typed events; the chat surface, the preview surface and any other
consumer register as listeners or subscribe a queue and are free to
batch or coalesce. Events cover text updates, artifact previews,
thinking snapshots, tool activity and session end.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, Field

from streamcanvas.schemas.streaming import ArtifactLanguage, SessionOutcome, ToolStatus

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Types of events emitted while a session streams."""

    SESSION_STARTED = "session_started"
    TEXT_UPDATE = "text_update"
    ARTIFACT = "artifact"
    THINKING = "thinking"
    TOOL_ACTIVITY = "tool_activity"
    SESSION_END = "session_end"


class StreamEvent(BaseModel):
    """A single event for surface consumption."""

    type: EventType = Field(description="Event type")
    session_id: str = Field(default="", description="Session that produced the event")
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp when the event occurred",
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Event payload: varies by event type",
    )


# Type alias for event listener callbacks
EventListener = Callable[[StreamEvent], Any]


class StreamEventEmitter:
    """Broadcasts stream events to registered listeners and queues.

    Emission is synchronous so that finalization can flush from any
    point, including a synchronous cancel. Listener exceptions are logged
    but never propagate into the stream loop. Queue subscribers receive
    every event via ``put_nowait``.
    """

    def __init__(self, keep_history: bool = True) -> None:
        self._listeners: list[EventListener] = []
        self._queues: list[asyncio.Queue[StreamEvent]] = []
        self._history: list[StreamEvent] = []
        self._keep_history = keep_history

    @property
    def history(self) -> list[StreamEvent]:
        """All events emitted so far (for late consumers)."""
        return list(self._history)

    def add_listener(self, listener: EventListener) -> None:
        """Register a listener to receive stream events."""
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        """Remove a previously registered listener."""
        self._listeners = [ln for ln in self._listeners if ln is not listener]

    def subscribe(self) -> asyncio.Queue[StreamEvent]:
        """Return an unbounded queue that receives every future event."""
        queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[StreamEvent]) -> None:
        self._queues = [q for q in self._queues if q is not queue]

    def emit(self, event_type: EventType, session_id: str = "", **data: Any) -> StreamEvent:
        """Emit an event to every listener and subscribed queue."""
        event = StreamEvent(type=event_type, session_id=session_id, data=data)
        if self._keep_history:
            self._history.append(event)

        for listener in self._listeners:
            try:
                result = listener(event)
                if asyncio.iscoroutine(result):
                    # Listeners must be synchronous; close it to avoid a warning
                    result.close()
                    logger.warning("Async listener ignored for %s", event_type)
            except Exception:
                logger.exception("Event listener error for %s", event_type)

        for queue in self._queues:
            queue.put_nowait(event)

        return event


class StreamCallbacks(Protocol):
    """Callback surface for consumers that prefer plain method calls."""

    def on_text_update(self, text: str, is_streaming: bool) -> None: ...

    def on_artifact(
        self, code: str, language: ArtifactLanguage, title: str, is_streaming: bool
    ) -> None: ...

    def on_tool_activity(self, name: str, status: ToolStatus, result: str | None) -> None: ...

    def on_session_end(self, outcome: SessionOutcome, final_text: str) -> None: ...


class CallbackListener:
    """Event listener that forwards events to a StreamCallbacks object."""

    def __init__(self, callbacks: StreamCallbacks) -> None:
        self._callbacks = callbacks

    def __call__(self, event: StreamEvent) -> None:
        data = event.data
        cb = self._callbacks

        if event.type == EventType.TEXT_UPDATE:
            cb.on_text_update(data["text"], data["is_streaming"])
        elif event.type == EventType.ARTIFACT:
            cb.on_artifact(
                data["code"],
                ArtifactLanguage(data["language"]),
                data["title"],
                data["is_streaming"],
            )
        elif event.type == EventType.TOOL_ACTIVITY:
            cb.on_tool_activity(data["name"], ToolStatus(data["status"]), data.get("result"))
        elif event.type == EventType.SESSION_END:
            cb.on_session_end(SessionOutcome(data["outcome"]), data["final_text"])
