"""Tests for streamcanvas.transport.direct: LiteLLM direct streaming."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from streamcanvas.schemas.chat import UserLocation, build_chat_request
from streamcanvas.schemas.config import BackendConfig
from streamcanvas.schemas.streaming import FrameKind
from streamcanvas.stream.decoder import FrameDecoder
from streamcanvas.stream.supervisor import StreamSupervisor
from streamcanvas.transport.direct import build_messages, short_error_reason, stream_direct

# Shorthand for the mock target
_ACOMP = "streamcanvas.transport.direct.litellm.acompletion"


# ── Helpers ───────────────────────────────────────────────────


def _chunk(content: str | None = None, reasoning: str | None = None) -> SimpleNamespace:
    """Build a LiteLLM streaming chunk-like object."""
    delta = SimpleNamespace(content=content, reasoning_content=reasoning)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta, index=0)])


class _FakeStream:
    def __init__(self, chunks: list[SimpleNamespace]) -> None:
        self._chunks = list(chunks)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)


async def _frames(agen):
    decoder = FrameDecoder()
    frames = []
    async for line in agen:
        frames.extend(decoder.feed(line))
    return frames


@pytest.fixture
def backend(monkeypatch) -> BackendConfig:
    monkeypatch.setenv("CLAUDE_API_KEY", "sk-test")
    return BackendConfig()


# ── Tests ─────────────────────────────────────────────────────


class TestBuildMessages:
    def test_order(self):
        request = build_chat_request("new")
        request.conversation = [{"role": "user", "content": "old"}]
        messages = build_messages(request, "SYS")
        assert messages == [
            {"role": "system", "content": "SYS"},
            {"role": "user", "content": "old"},
            {"role": "user", "content": "new"},
        ]

    def test_location_context(self):
        request = build_chat_request("stock?", location=UserLocation(id=7, name="Harbor"))
        system = build_messages(request, "SYS")[0]["content"]
        assert "Harbor" in system
        assert "Location ID: 7" in system


class TestShortErrorReason:
    def test_reasons(self):
        assert short_error_reason(Exception("429 Too Many Requests")) == "rate limit exceeded"
        assert short_error_reason(Exception("Overloaded")) == "API overloaded"
        assert short_error_reason(TimeoutError()) == "timeout"
        assert short_error_reason(Exception("Connection refused")) == "connection error"


class TestStreamDirect:
    @pytest.mark.asyncio
    async def test_content_and_done(self, backend):
        mock = AsyncMock(return_value=_FakeStream([_chunk("Hel"), _chunk("lo"), _chunk()]))
        with patch(_ACOMP, mock):
            frames = await _frames(stream_direct(build_chat_request("hi"), backend))

        assert [f.kind for f in frames] == [FrameKind.CONTENT, FrameKind.CONTENT, FrameKind.DONE]
        assert "".join(f.text for f in frames) == "Hello"

        kwargs = mock.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["model"] == backend.model
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["temperature"] == 0.9

    @pytest.mark.asyncio
    async def test_reasoning_becomes_cumulative_thinking(self, backend):
        stream = _FakeStream([_chunk(reasoning="Plan "), _chunk(reasoning="it."), _chunk("Done")])
        with patch(_ACOMP, AsyncMock(return_value=stream)):
            frames = await _frames(stream_direct(build_chat_request("hi"), backend))

        thinking = [f.text for f in frames if f.kind == FrameKind.THINKING]
        assert thinking == ["Plan ", "Plan it."]

    @pytest.mark.asyncio
    async def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("CLAUDE_API_KEY", raising=False)
        mock = AsyncMock()
        with patch(_ACOMP, mock):
            frames = await _frames(stream_direct(build_chat_request("hi"), BackendConfig()))

        assert [f.kind for f in frames] == [FrameKind.ERROR, FrameKind.DONE]
        assert "CLAUDE_API_KEY" in frames[0].text
        mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_error_becomes_error_frame(self, backend):
        import litellm as litellm_mod

        mock = AsyncMock(
            side_effect=litellm_mod.RateLimitError(
                message="rate limited", model="test",
                llm_provider="test",
            ),
        )
        with patch(_ACOMP, mock):
            frames = await _frames(stream_direct(build_chat_request("hi"), backend))

        assert [f.kind for f in frames] == [FrameKind.ERROR]
        assert "rate limit exceeded" in frames[0].text

    @pytest.mark.asyncio
    async def test_supervised_rate_limit(self, backend):
        import litellm as litellm_mod

        mock = AsyncMock(
            side_effect=litellm_mod.RateLimitError(
                message="rate limited", model="test",
                llm_provider="test",
            ),
        )
        with patch(_ACOMP, mock):
            result = await StreamSupervisor().run(
                stream_direct(build_chat_request("hi"), backend), prompt="hi"
            )
        assert result.outcome == "errored"
        assert result.error_kind == "rate_limited"
