"""Frame classification helpers.

The supervisor dispatches frames by kind; the judgement calls that
dispatch depends on live here: whether a thinking snapshot is extended
reasoning or a short status line, and how an error frame is presented
to the user.
"""

from __future__ import annotations

from streamcanvas.schemas.chat import ErrorKind
from streamcanvas.schemas.config import ThinkingConfig

_RATE_LIMIT_MARKERS = ("overloaded", "rate limit")

GENERIC_FAILURE_MESSAGE = (
    "Sorry, I encountered an error processing your request. Please try again."
)


def is_extended_thinking(text: str, config: ThinkingConfig | None = None) -> bool:
    """True when a thinking snapshot reads as reasoning rather than status.

    Presentation hint only: both variants replace the thinking buffer.
    """
    cfg = config or ThinkingConfig()
    if len(text) <= cfg.min_chars:
        return False
    return not any(text.startswith(glyph) for glyph in cfg.status_glyphs)


def classify_error(text: str) -> ErrorKind:
    """Classify an error frame's text by substring match."""
    lowered = text.lower()
    if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        return ErrorKind.RATE_LIMITED
    return ErrorKind.GENERIC


def user_error_message(kind: ErrorKind, detail: str = "", prompt: str = "") -> str:
    """Build the chat message shown for a failed session."""
    if kind == ErrorKind.RATE_LIMITED:
        excerpt = prompt[:100]
        return (
            "⚠️ **API Overloaded**\n\n"
            "The assistant API is currently overloaded or rate limited.\n\n"
            "**Try:**\n"
            "- Wait 30 seconds and retry\n"
            f'- Your request: "{excerpt}..."\n\n'
            "Resend your message to retry."
        )
    if kind == ErrorKind.TRANSPORT:
        return GENERIC_FAILURE_MESSAGE
    return f"⚠️ **Error**\n\n{detail}\n\n**Suggestion:** Wait a moment and try again."
