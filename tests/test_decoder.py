"""Tests for streamcanvas.stream.decoder: wire lines to Frames."""

from __future__ import annotations

import json
import logging

from streamcanvas.schemas.streaming import Frame, FrameKind
from streamcanvas.stream.decoder import FrameDecoder, encode_frame, parse_frame_line


class TestParseFrameLine:
    def test_content_frame(self):
        frame = parse_frame_line('data: {"type": "content", "content": "Hello"}')
        assert frame == Frame(kind=FrameKind.CONTENT, text="Hello")

    def test_data_key_alternate_shape(self):
        frame = parse_frame_line('data: {"type": "content", "data": "Hi"}')
        assert frame is not None
        assert frame.text == "Hi"

    def test_content_preferred_over_data(self):
        frame = parse_frame_line('data: {"type": "content", "content": "a", "data": "b"}')
        assert frame.text == "a"

    def test_type_aliases(self):
        thinking = parse_frame_line('data: {"type": "extended_thinking", "content": "hmm"}')
        response = parse_frame_line('data: {"type": "response", "content": "ok"}')
        assert thinking.kind == FrameKind.THINKING
        assert response.kind == FrameKind.CONTENT

    def test_error_key(self):
        frame = parse_frame_line('data: {"type": "error", "error": "boom"}')
        assert frame == Frame(kind=FrameKind.ERROR, text="boom")

    def test_done_frame(self):
        frame = parse_frame_line('data: {"type": "done", "done": true}')
        assert frame == Frame(kind=FrameKind.DONE, text="")

    def test_structured_tool_result_serialized(self):
        frame = parse_frame_line('data: {"type": "tool_result", "content": {"count": 3}}')
        assert frame.kind == FrameKind.TOOL_RESULT
        assert json.loads(frame.text) == {"count": 3}

    def test_no_space_after_prefix(self):
        frame = parse_frame_line('data:{"type": "content", "content": "x"}')
        assert frame.text == "x"

    def test_carriage_return_stripped(self):
        frame = parse_frame_line('data: {"type": "content", "content": "x"}\r')
        assert frame.text == "x"

    def test_non_data_lines_ignored(self):
        assert parse_frame_line("") is None
        assert parse_frame_line(": keepalive") is None
        assert parse_frame_line("event: message") is None
        assert parse_frame_line("data:") is None

    def test_malformed_json_dropped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="streamcanvas.stream.decoder"):
            assert parse_frame_line("data: {oops") is None
        assert "malformed" in caplog.text

    def test_unknown_type_dropped(self):
        assert parse_frame_line('data: {"type": "ping"}') is None
        assert parse_frame_line('data: {"content": "no type"}') is None

    def test_non_object_payload_dropped(self):
        assert parse_frame_line('data: ["content"]') is None
        assert parse_frame_line("data: 42") is None


class TestFrameDecoder:
    def test_multiple_frames_in_one_chunk(self):
        decoder = FrameDecoder()
        frames = decoder.feed(
            'data: {"type": "content", "content": "a"}\n\n'
            'data: {"type": "content", "content": "b"}\n\n'
        )
        assert [f.text for f in frames] == ["a", "b"]

    def test_record_split_across_chunks(self):
        decoder = FrameDecoder()
        assert decoder.feed('data: {"type": "cont') == []
        assert decoder.feed('ent", "content": "split"}') == []
        frames = decoder.feed("\n")
        assert frames == [Frame(kind=FrameKind.CONTENT, text="split")]

    def test_arrival_order_preserved(self):
        decoder = FrameDecoder()
        wire = "".join(
            f'data: {{"type": "content", "content": "{i}"}}\n' for i in range(20)
        )
        frames = []
        for i in range(0, len(wire), 5):
            frames.extend(decoder.feed(wire[i:i + 5]))
        assert [f.text for f in frames] == [str(i) for i in range(20)]

    def test_multibyte_character_split_in_bytes(self):
        decoder = FrameDecoder()
        wire = 'data: {"type": "content", "content": "héllo ✓"}\n'.encode()
        split = wire.index("✓".encode()) + 1
        assert decoder.feed(wire[:split]) == []
        frames = decoder.feed(wire[split:])
        assert frames[0].text == "héllo ✓"

    def test_flush_parses_unterminated_tail(self):
        decoder = FrameDecoder()
        assert decoder.feed('data: {"type": "done"}') == []
        assert decoder.flush() == [Frame(kind=FrameKind.DONE)]
        assert decoder.flush() == []

    def test_malformed_record_does_not_stop_decoding(self):
        decoder = FrameDecoder()
        frames = decoder.feed(
            "data: {broken\n"
            'data: {"type": "content", "content": "after"}\n'
        )
        assert [f.text for f in frames] == ["after"]


class TestEncodeFrame:
    def test_content_line(self):
        line = encode_frame(Frame(kind=FrameKind.CONTENT, text="hi"))
        assert line.startswith("data: ")
        assert line.endswith("\n\n")
        assert json.loads(line[len("data: "):]) == {"type": "content", "content": "hi"}

    def test_done_and_error_markers(self):
        done = json.loads(encode_frame(Frame(kind=FrameKind.DONE))[6:])
        error = json.loads(encode_frame(Frame(kind=FrameKind.ERROR, text="x"))[6:])
        assert done["done"] is True
        assert error["error"] == "x"

    def test_encoded_frame_decodes_back(self):
        frame = Frame(kind=FrameKind.TOOL_CALL, text="Looking up stock ✓")
        assert FrameDecoder().feed(encode_frame(frame)) == [frame]
