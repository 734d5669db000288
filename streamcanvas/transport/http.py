"""httpx streaming source for the assistant backend.

Posts a ChatRequest and yields the response body as text chunks for the
FrameDecoder. Closing the generator (on cancel, stale or timeout)
closes the underlying response.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator

import httpx

from streamcanvas.routing import Route, endpoint_path
from streamcanvas.schemas.chat import ChatRequest
from streamcanvas.schemas.config import BackendConfig

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """The backend refused or failed the stream request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def auth_params(backend: BackendConfig) -> dict[str, str]:
    params: dict[str, str] = {}
    key = os.environ.get(backend.consumer_key_env, "")
    secret = os.environ.get(backend.consumer_secret_env, "")
    if key and secret:
        params["consumer_key"] = key
        params["consumer_secret"] = secret
    return params


async def stream_chat(
    client: httpx.AsyncClient,
    url: str,
    request: ChatRequest,
    *,
    params: dict[str, str] | None = None,
    extra: dict | None = None,
    read_timeout: float | None = None,
) -> AsyncIterator[str]:
    """Open a streaming POST to ``url`` and yield decoded text chunks.

    Raises:
        TransportError: If the backend answers with a non-2xx status.
        httpx.HTTPError: On connection-level failures.
    """
    timeout = httpx.Timeout(10.0, read=read_timeout)
    async with client.stream(
        "POST",
        url,
        json={**request.model_dump(mode="json"), **(extra or {})},
        params=params or None,
        headers={"Accept": "text/event-stream"},
        timeout=timeout,
    ) as response:
        if response.status_code >= 400:
            body = (await response.aread()).decode("utf-8", errors="replace")
            raise TransportError(
                f"Assistant backend error: {response.status_code} - {body[:200]}",
                status_code=response.status_code,
            )

        logger.debug("Stream opened: %s (%d)", url, response.status_code)
        async for chunk in response.aiter_text():
            if chunk:
                yield chunk


async def stream_routed(
    client: httpx.AsyncClient,
    backend: BackendConfig,
    route: Route,
    request: ChatRequest,
) -> AsyncIterator[str]:
    """Stream from the relay endpoint selected for ``route``."""
    url = backend.base_url.rstrip("/") + endpoint_path(backend, route)
    logger.info("Streaming %s request to %s", route, url)
    async for chunk in stream_chat(client, url, request, params=auth_params(backend)):
        yield chunk
