"""Request routing between the direct model endpoint and the tool endpoint.

Messages that ask about store data (products, stock, sales) or ask for
inventory changes need the tool-enabled backend; everything else goes
straight to the model.
"""

from __future__ import annotations

import logging
import re
from enum import StrEnum

from streamcanvas.schemas.config import BackendConfig

logger = logging.getLogger(__name__)


class Route(StrEnum):
    """Which backend endpoint serves a message."""

    DIRECT = "direct"
    TOOLS = "tools"


def _keyword_pattern(keywords: list[str]) -> re.Pattern[str] | None:
    if not keywords:
        return None
    alternatives = sorted((re.escape(k.lower()) for k in keywords), key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b")


def select_route(message: str, keywords: list[str]) -> Route:
    """Pick the endpoint for ``message`` by whole-word keyword match."""
    pattern = _keyword_pattern(keywords)
    if pattern is None:
        return Route.DIRECT
    match = pattern.search(message.lower())
    if match:
        logger.debug("Routing to tools (matched %r)", match.group(0))
        return Route.TOOLS
    return Route.DIRECT


def endpoint_path(backend: BackendConfig, route: Route) -> str:
    """Relay path serving ``route``."""
    return backend.tools_path if route == Route.TOOLS else backend.direct_path
