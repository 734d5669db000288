"""Chunk sources feeding the stream supervisor.

Every source is an async iterator of wire-format text; the supervisor
does not care whether it came from HTTP, a model SDK or a recording.
"""

from streamcanvas.transport.direct import stream_direct
from streamcanvas.transport.http import TransportError, stream_chat, stream_routed

__all__ = ["TransportError", "stream_chat", "stream_direct", "stream_routed"]
