"""Direct model streaming through LiteLLM.

Produces the same wire format as the tool backend so the FrameDecoder
and supervisor handle both paths identically: content deltas become
``content`` frames, reasoning deltas become cumulative ``thinking``
snapshots, provider failures become a single ``error`` frame.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from streamcanvas.schemas.chat import ChatRequest
from streamcanvas.schemas.config import BackendConfig
from streamcanvas.schemas.streaming import Frame, FrameKind
from streamcanvas.stream.decoder import encode_frame

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the store assistant: a senior full-stack developer and technical "
    "expert for the point-of-sale team. When you write code for the preview "
    "canvas, return ONE complete fenced code block tagged with its language "
    "(html, react, typescript, javascript, css, svg or mermaid)."
)


def short_error_reason(error: Exception) -> str:
    """Extract a short, user-friendly reason from a LiteLLM error."""
    error_str = str(error).lower()
    if "rate" in error_str or "429" in error_str:
        return "rate limit exceeded"
    if "overloaded" in error_str or "529" in error_str:
        return "API overloaded"
    if "timeout" in error_str or isinstance(error, TimeoutError):
        return "timeout"
    if "503" in error_str or "unavailable" in error_str:
        return "service unavailable"
    if "500" in error_str or "internal" in error_str:
        return "server error"
    if "connection" in error_str:
        return "connection error"
    return str(error)[:80]


def build_messages(request: ChatRequest, system: str = SYSTEM_PROMPT) -> list[dict[str, str]]:
    """System prompt, prior turns, then the new user message."""
    if request.user_location is not None:
        loc = request.user_location
        system += (
            f"\n\nCURRENT USER LOCATION: {loc.name} (Location ID: {loc.id}). "
            "Treat it as the primary location for stock questions unless told otherwise."
        )
    return [
        {"role": "system", "content": system},
        *request.conversation,
        {"role": "user", "content": request.message},
    ]


async def stream_direct(
    request: ChatRequest,
    backend: BackendConfig,
    *,
    system: str = SYSTEM_PROMPT,
) -> AsyncIterator[str]:
    """Stream a completion from ``backend.model`` as wire-format frames."""
    api_key = os.environ.get(backend.api_key_env, "")
    if not api_key:
        logger.warning("%s is not set; direct streaming unavailable", backend.api_key_env)
        yield encode_frame(Frame(
            kind=FrameKind.ERROR,
            text=f"Direct API not configured. Set {backend.api_key_env} in your environment.",
        ))
        yield encode_frame(Frame(kind=FrameKind.DONE))
        return

    kwargs: dict = {
        "model": backend.model,
        "messages": build_messages(request, system),
        "stream": True,
        "temperature": request.temperature,
        "max_tokens": request.max_tokens,
        "api_key": api_key,
    }

    reasoning = ""
    try:
        response = await litellm.acompletion(**kwargs)
        async for chunk in response:
            if not chunk.choices or not chunk.choices[0].delta:
                continue
            delta = chunk.choices[0].delta

            thought = getattr(delta, "reasoning_content", None)
            if thought:
                reasoning += thought
                yield encode_frame(Frame(kind=FrameKind.THINKING, text=reasoning))

            text = getattr(delta, "content", None)
            if text:
                yield encode_frame(Frame(kind=FrameKind.CONTENT, text=text))
    except (
        litellm.AuthenticationError,
        litellm.BadRequestError,
        litellm.RateLimitError,
        litellm.ServiceUnavailableError,
        litellm.InternalServerError,
        litellm.APIConnectionError,
        litellm.Timeout,
        TimeoutError,
    ) as e:
        reason = short_error_reason(e)
        logger.warning("Direct stream from %s failed: %s", backend.model, reason)
        yield encode_frame(Frame(kind=FrameKind.ERROR, text=f"Model call failed: {reason}"))
        return

    yield encode_frame(Frame(kind=FrameKind.DONE))
