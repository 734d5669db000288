"""Best-effort repair of code bodies that start with assistant prose.

When the model's markup is ambiguous, a fence body can begin with a
lead-in sentence ("I'll create...") instead of code. If such a phrase
appears near the start, the body is re-sliced from the first token that
plausibly starts code in the block's language. Unrepairable bodies are
returned as they are.
"""

from __future__ import annotations

import logging

from streamcanvas.artifacts.language import classify_language

logger = logging.getLogger(__name__)

LEAD_IN_PHRASES = ("I'll", "Here's", "Let me", "This is", "I made", "create a")

_SCRIPT_TOKENS = ["function", "const", "let", "var", "class", "//", "/*", "import", "export"]
_REACT_TOKENS = ["function", "const", "import", "export", "class"]

# Tokens expected at the start of real code, in order of preference
CODE_START_TOKENS: dict[str, list[str]] = {
    "html": ["<!DOCTYPE", "<html", "<HTML", "<!doctype"],
    "javascript": _SCRIPT_TOKENS,
    "js": _SCRIPT_TOKENS,
    "react": _REACT_TOKENS,
    "jsx": _REACT_TOKENS,
    "tsx": _REACT_TOKENS,
    "css": [".", "#", "@", "*", "body", "html", ":root"],
    "svg": ["<svg", "<SVG"],
    "typescript": [
        "function", "const", "let", "var", "class", "interface", "type", "import", "export",
    ],
    "ts": [
        "function", "const", "let", "var", "class", "interface", "type", "import", "export",
    ],
}


def looks_corrupted(body: str, scan_chars: int = 150) -> bool:
    """True if a prose lead-in phrase appears in the first ``scan_chars`` chars."""
    head = body.strip()[:scan_chars]
    return any(phrase in head for phrase in LEAD_IN_PHRASES)


def code_start_tokens(tag: str, body: str = "") -> list[str]:
    """Expected code-start tokens for a declared tag, else its classified language."""
    tag = tag.lower().strip()
    if tag in CODE_START_TOKENS:
        return CODE_START_TOKENS[tag]
    return CODE_START_TOKENS.get(str(classify_language(tag, body)), [])


def repair_body(body: str, tag: str, scan_chars: int = 150) -> str:
    """Strip a prose lead-in from a code body when it can be located.

    Returns the trimmed body, re-sliced from the detected code start when
    the body looks corrupted and a start token is found after offset 0.
    """
    trimmed = body.strip()
    if not looks_corrupted(trimmed, scan_chars):
        return trimmed

    tokens = code_start_tokens(tag, trimmed)
    offset = _line_start_offset(trimmed, tokens)
    if offset == 0:
        # Already starts with code; the phrase is inside a comment or string
        return trimmed
    if offset is None:
        offset = _first_token_offset(trimmed, tokens)

    if offset is None:
        logger.warning(
            "Code block (%s) looks corrupted but no code start was found: %.80r",
            tag or "untagged", trimmed,
        )
        return trimmed

    logger.info("Repaired %s block: dropped %d leading chars of prose", tag or "untagged", offset)
    return trimmed[offset:]


def _line_start_offset(body: str, tokens: list[str]) -> int | None:
    """Offset of the first line that begins with a token."""
    position = 0
    for line in body.split("\n"):
        stripped = line.lstrip()
        if stripped and any(stripped.startswith(t) for t in tokens):
            return position + (len(line) - len(stripped))
        position += len(line) + 1
    return None


def _first_token_offset(body: str, tokens: list[str]) -> int | None:
    for token in tokens:
        idx = body.find(token)
        if idx > 0:
            return idx
    return None
