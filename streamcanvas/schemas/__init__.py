"""streamcanvas schema definitions.

All Pydantic v2 models shared by the stream pipeline, transports and CLI.
"""

from streamcanvas.schemas.chat import (
    ChatMessage,
    ChatRequest,
    ChatRole,
    ErrorKind,
    UserLocation,
    build_chat_request,
    compose_edit_message,
)
from streamcanvas.schemas.config import (
    AppConfig,
    BackendConfig,
    StreamConfig,
    ThinkingConfig,
)
from streamcanvas.schemas.streaming import (
    Artifact,
    ArtifactLanguage,
    CodeBlock,
    Frame,
    FrameKind,
    SessionOutcome,
    SessionState,
    ToolActivity,
    ToolStatus,
)

__all__ = [
    "AppConfig",
    "Artifact",
    "ArtifactLanguage",
    "BackendConfig",
    "ChatMessage",
    "ChatRequest",
    "ChatRole",
    "CodeBlock",
    "ErrorKind",
    "Frame",
    "FrameKind",
    "SessionOutcome",
    "SessionState",
    "StreamConfig",
    "ThinkingConfig",
    "ToolActivity",
    "ToolStatus",
    "UserLocation",
    "build_chat_request",
    "compose_edit_message",
]
