"""Chat-surface schemas: messages, outgoing requests, error classes.

Conversation history itself is owned by the caller; these models only
describe what is sent to the backend and what comes back as a message.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from streamcanvas.schemas.streaming import Artifact


class ChatRole(StrEnum):
    """Roles a chat-surface message can carry."""

    USER = "user"
    ASSISTANT = "assistant"
    THINKING = "thinking"
    TOOL = "tool"


class ErrorKind(StrEnum):
    """User-facing classification of a failed session."""

    RATE_LIMITED = "rate_limited"
    GENERIC = "generic"
    TRANSPORT = "transport"


class ChatMessage(BaseModel):
    """A message shown on the chat surface."""

    role: ChatRole = Field(description="Who produced the message")
    content: str = Field(description="Message text (code fences stripped for assistants)")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the message was created",
    )


class UserLocation(BaseModel):
    """Store location the signed-in user is working from."""

    id: int | str
    name: str = "Unknown Location"


class ChatRequest(BaseModel):
    """Body posted to the assistant backend to open a stream."""

    message: str = Field(description="The (possibly edit-wrapped) user message")
    temperature: float = Field(default=0.9, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8192, gt=0)
    conversation: list[dict[str, str]] = Field(
        default_factory=list,
        description="Prior user/assistant turns as {role, content} dicts",
    )
    user_location: UserLocation | None = Field(default=None)


def build_chat_request(
    message: str,
    history: list[ChatMessage] | None = None,
    *,
    temperature: float = 0.9,
    max_tokens: int = 8192,
    location: UserLocation | None = None,
) -> ChatRequest:
    """Build the backend request for a new user message.

    Only user and assistant turns are forwarded; thinking and tool
    messages are surface-only and never sent back to the model.
    """
    conversation = [
        {"role": str(m.role), "content": m.content}
        for m in history or []
        if m.role in (ChatRole.USER, ChatRole.ASSISTANT)
    ]
    return ChatRequest(
        message=message,
        temperature=temperature,
        max_tokens=max_tokens,
        conversation=conversation,
        user_location=location,
    )


def compose_edit_message(user_text: str, artifact: Artifact | None) -> str:
    """Wrap a user request with edit instructions for the current artifact.

    When no artifact is open the text is returned unchanged.
    """
    if artifact is None:
        return user_text

    return (
        "[EDITING EXISTING ARTIFACT]\n\n"
        f"USER REQUEST: {user_text}\n\n"
        "ARTIFACT INFO:\n"
        f"- Type: {artifact.language}\n"
        f"- Title: {artifact.title}\n\n"
        "CRITICAL INSTRUCTIONS:\n"
        "1. You are EDITING existing code, NOT creating new code\n"
        "2. The COMPLETE current code is provided below\n"
        "3. Apply ONLY the changes requested by the user\n"
        "4. Keep ALL other functionality intact\n"
        "5. Return the COMPLETE updated version with ALL code\n"
        "6. DO NOT regenerate from scratch\n"
        "7. DO NOT describe what you changed - just provide the full updated code\n\n"
        "CURRENT COMPLETE CODE:\n"
        f"```{artifact.language}\n{artifact.code}\n```"
    )
