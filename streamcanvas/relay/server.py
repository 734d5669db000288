"""FastAPI relay between chat clients and the assistant backends.

Forwards a chat request to the tool-enabled upstream and re-emits its
event stream in canonical form: whatever payload shape or type alias the
upstream uses, clients receive ``data: {"type": ..., "content": ...}``
lines. A direct endpoint streams straight from the model via LiteLLM.

Requires the 'relay' optional dependency group:
    pip install streamcanvas[relay]
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from streamcanvas.schemas.chat import ChatRequest
from streamcanvas.schemas.config import AppConfig
from streamcanvas.schemas.streaming import Frame, FrameKind
from streamcanvas.stream.decoder import FrameDecoder, encode_frame
from streamcanvas.transport.direct import stream_direct
from streamcanvas.transport.http import TransportError, auth_params, stream_chat

logger = logging.getLogger(__name__)

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


async def relay_upstream(
    request: ChatRequest,
    config: AppConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[str]:
    """Relay the upstream event stream as canonical frames.

    Stops after the first ``done`` frame. Upstream failures become a
    single ``error`` frame; the relay itself never raises mid-stream.
    """
    backend = config.backend
    if not backend.upstream_url:
        yield encode_frame(Frame(kind=FrameKind.ERROR, text="Upstream backend is not configured"))
        return

    decoder = FrameDecoder()
    count = 0
    try:
        async with httpx.AsyncClient(transport=transport) as client:
            async for chunk in stream_chat(
                client,
                backend.upstream_url,
                request,
                params=auth_params(backend),
                extra={"stream": True},
            ):
                for frame in decoder.feed(chunk):
                    count += 1
                    yield encode_frame(frame)
                    if frame.kind == FrameKind.DONE:
                        logger.info("Relay complete after %d events", count)
                        return

            for frame in decoder.flush():
                yield encode_frame(frame)
    except (TransportError, httpx.HTTPError) as exc:
        logger.error("Relay upstream failed after %d events: %s", count, exc)
        yield encode_frame(Frame(kind=FrameKind.ERROR, text=str(exc) or "Upstream request failed"))


def create_app(
    config: AppConfig | None = None,
    *,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Create and configure the FastAPI relay application.

    FastAPI is imported inside this function so the module can be
    imported without the relay extra installed.
    """
    try:
        from fastapi import FastAPI
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import StreamingResponse
    except ImportError as exc:
        raise ImportError(
            "The relay requires extra dependencies. "
            "Install with: pip install streamcanvas[relay]"
        ) from exc

    cfg = config or AppConfig()

    app = FastAPI(
        title="streamcanvas relay",
        description="Canonical SSE relay for the assistant chat surface",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _sse(body: AsyncIterator[str]) -> StreamingResponse:
        return StreamingResponse(body, media_type="text/event-stream", headers=_SSE_HEADERS)

    async def relay(request: ChatRequest):
        """Forward to the tool-enabled upstream and normalize its stream."""
        logger.info("Relay request: %.50s", request.message)
        return _sse(relay_upstream(request, cfg, transport=upstream_transport))

    async def direct(request: ChatRequest):
        """Stream straight from the configured model."""
        logger.info("Direct request with %d prior turns", len(request.conversation))
        return _sse(stream_direct(request, cfg.backend))

    app.add_api_route("/api/ai/stream", relay, methods=["POST"])
    if cfg.backend.tools_path != "/api/ai/stream":
        app.add_api_route(cfg.backend.tools_path, relay, methods=["POST"])
    app.add_api_route(cfg.backend.direct_path, direct, methods=["POST"])

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "upstream_configured": bool(cfg.backend.upstream_url),
            "model": cfg.backend.model,
        }

    return app
