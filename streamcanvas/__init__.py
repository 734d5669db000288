"""streamcanvas: streaming assistant protocol handler with live artifacts."""

__version__ = "0.1.0"

from .events import EventType, StreamEvent, StreamEventEmitter
from .schemas.streaming import ArtifactLanguage, CodeBlock, Frame, FrameKind, SessionOutcome
from .stream.supervisor import SessionResult, StreamSupervisor

__all__ = [
    "ArtifactLanguage",
    "CodeBlock",
    "EventType",
    "Frame",
    "FrameKind",
    "SessionOutcome",
    "SessionResult",
    "StreamEvent",
    "StreamEventEmitter",
    "StreamSupervisor",
]
