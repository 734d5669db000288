"""Stream pipeline: decoding, accumulation, throttling and supervision."""

from streamcanvas.stream.accumulator import accumulate
from streamcanvas.stream.decoder import FrameDecoder, encode_frame, parse_frame_line
from streamcanvas.stream.session import StreamSession
from streamcanvas.stream.supervisor import SessionResult, StreamSupervisor
from streamcanvas.stream.throttle import IntervalGate, RenderThrottler

__all__ = [
    "FrameDecoder",
    "IntervalGate",
    "RenderThrottler",
    "SessionResult",
    "StreamSession",
    "StreamSupervisor",
    "accumulate",
    "encode_frame",
    "parse_frame_line",
]
