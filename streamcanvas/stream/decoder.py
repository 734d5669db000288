"""Frame decoder for the line-oriented assistant event stream.

Turns raw transport chunks (text or bytes, split anywhere) into Frame
records. Event-bearing lines look like ``data: {"type": ..., ...}``; the
payload text may arrive under ``content`` or ``data`` (two generations of
the backend), or under ``error`` for error frames. Everything is
normalized here so nothing downstream sees the alternate shapes.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any

from streamcanvas.schemas.streaming import Frame, FrameKind

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"

# Upstream type names that mean the same thing as a canonical kind
_TYPE_ALIASES: dict[str, FrameKind] = {
    "extended_thinking": FrameKind.THINKING,
    "response": FrameKind.CONTENT,
}

_TEXT_KEYS = ("content", "data")


def parse_frame_line(line: str) -> Frame | None:
    """Parse one stream line into a Frame.

    Returns None for lines that are not event-bearing, carry an unknown
    type, or fail to parse. Malformed payloads are logged and dropped.
    """
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None

    raw = line[len(DATA_PREFIX):].strip()
    if not raw:
        return None

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Discarding malformed frame (%s): %.120s", exc, raw)
        return None

    if not isinstance(payload, dict):
        logger.debug("Ignoring non-object frame payload: %.80s", raw)
        return None

    kind = _resolve_kind(payload.get("type"))
    if kind is None:
        logger.debug("Ignoring frame with unknown type %r", payload.get("type"))
        return None

    return Frame(kind=kind, text=_payload_text(kind, payload))


def _resolve_kind(value: Any) -> FrameKind | None:
    if not isinstance(value, str):
        return None
    if value in _TYPE_ALIASES:
        return _TYPE_ALIASES[value]
    try:
        return FrameKind(value)
    except ValueError:
        return None


def _payload_text(kind: FrameKind, payload: dict[str, Any]) -> str:
    keys = _TEXT_KEYS + ("error",) if kind == FrameKind.ERROR else _TEXT_KEYS
    for key in keys:
        value = payload.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, str):
            return value
        # Tool payloads sometimes arrive as structured objects
        return json.dumps(value, ensure_ascii=False)
    return ""


def encode_frame(frame: Frame) -> str:
    """Render a Frame as a canonical wire line (with SSE blank-line terminator)."""
    body: dict[str, Any] = {"type": str(frame.kind), "content": frame.text}
    if frame.kind == FrameKind.DONE:
        body["done"] = True
    elif frame.kind == FrameKind.ERROR:
        body["error"] = frame.text
    return f"{DATA_PREFIX} {json.dumps(body, ensure_ascii=False)}\n\n"


class FrameDecoder:
    """Incremental splitter from transport chunks to Frames.

    Keeps a rolling buffer so a record split across chunk boundaries is
    decoded once its terminating newline arrives. Byte chunks are decoded
    as UTF-8 incrementally, so multi-byte characters may also straddle
    chunks. Frames come out in arrival order.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._bytes = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: str | bytes) -> list[Frame]:
        """Consume a chunk and return every Frame it completed."""
        if isinstance(chunk, bytes):
            chunk = self._bytes.decode(chunk)
        if not chunk:
            return []

        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        frames: list[Frame] = []
        for line in lines:
            frame = parse_frame_line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def flush(self) -> list[Frame]:
        """Decode whatever is left in the buffer once the transport ends."""
        tail = self._buffer + self._bytes.decode(b"", final=True)
        self._buffer = ""
        frame = parse_frame_line(tail) if tail.strip() else None
        return [frame] if frame is not None else []
