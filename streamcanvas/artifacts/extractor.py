"""Incremental fenced-code extraction from accumulated assistant text.

Runs against the whole accumulated buffer on every update. Two passes
find complete fences: a strict pass that requires both markers at line
start, and a loose pass used only when the strict pass finds nothing.
Openers must carry a language tag, so a bare closing marker on its own
line can never start a fence.

Selection differs by phase:

- final (stream finished): the LAST complete fence wins, because models
  often show a worked example before the real answer.
- live (still streaming): a trailing open fence, whose closer has not
  arrived yet, wins so the preview follows what is being written;
  otherwise the last complete fence is shown.

Re-scanning the full buffer is O(n) per update. That is fine for
chat-length responses; a cursor that resumes from the last fence
boundary would be the fix for very long ones.
"""

from __future__ import annotations

import re

from streamcanvas.artifacts.repair import repair_body
from streamcanvas.schemas.streaming import CodeBlock

_TAG = r"([\w+#.-]+)"

_STRICT_FENCE_RE = re.compile(
    r"^```" + _TAG + r"[ \t]*\n"   # opener at line start with a tag
    r"(.*?)"                        # body (non-greedy)
    r"^```[ \t]*$",                 # closer alone on its line
    re.MULTILINE | re.DOTALL,
)

_LOOSE_FENCE_RE = re.compile(
    r"```" + _TAG + r"[ \t]*\n(.*?)\n```",
    re.DOTALL,
)

_OPEN_FENCE_RE = re.compile(r"```" + _TAG + r"[ \t]*\n(.*)\Z", re.DOTALL)

# A closing marker that has only partly arrived
_PARTIAL_CLOSER_RE = re.compile(r"\n`{1,2}\Z")

_STRIP_COMPLETE_RE = re.compile(r"```[\w+#.-]*[ \t]*\n.*?\n```", re.DOTALL)
_STRIP_OPEN_RE = re.compile(r"```[\w+#.-]*[ \t]*\n.*\Z", re.DOTALL)


def find_fences(text: str) -> list[re.Match[str]]:
    """All complete fences in ``text``: strict pass, else loose pass."""
    if "```" not in text:
        return []
    matches = list(_STRICT_FENCE_RE.finditer(text))
    if not matches:
        matches = list(_LOOSE_FENCE_RE.finditer(text))
    return matches


def find_open_fence(text: str) -> CodeBlock | None:
    """The trailing fence whose closing marker has not arrived yet, if any."""
    matches = find_fences(text)
    tail_start = matches[-1].end() if matches else 0
    match = _OPEN_FENCE_RE.search(text, tail_start)
    if match is None:
        return None
    body = _PARTIAL_CLOSER_RE.sub("", match.group(2))
    return CodeBlock(
        language=match.group(1).lower(),
        raw_text=body.strip(),
        is_complete=False,
    )


def extract_final(text: str, scan_chars: int = 150) -> CodeBlock | None:
    """Extract the block to keep once the stream has finished.

    The last complete fence wins. A stream cut off mid-fence (abort,
    stall) falls back to the open fence so its code is not dropped.
    Bodies are passed through the corruption repair; empty bodies
    yield None.
    """
    matches = find_fences(text)
    if matches:
        last = matches[-1]
        tag = last.group(1).lower()
        body = repair_body(last.group(2), tag, scan_chars)
        if not body:
            return None
        return CodeBlock(language=tag, raw_text=body, is_complete=True)

    block = find_open_fence(text)
    if block is None or not block.raw_text:
        return None
    return block.model_copy(
        update={"raw_text": repair_body(block.raw_text, block.language, scan_chars)}
    )


def extract_live(text: str, scan_chars: int = 150) -> CodeBlock | None:
    """Extract the block to preview while the stream is still running.

    An open fence at the end of the text takes priority and may have an
    empty body. Otherwise the last complete fence is returned.
    """
    block = find_open_fence(text)
    if block is not None:
        if block.raw_text:
            block = block.model_copy(
                update={"raw_text": repair_body(block.raw_text, block.language, scan_chars)}
            )
        return block

    matches = find_fences(text)
    if not matches:
        return None
    last = matches[-1]
    tag = last.group(1).lower()
    return CodeBlock(
        language=tag,
        raw_text=repair_body(last.group(2), tag, scan_chars),
        is_complete=True,
    )


def strip_code_blocks(text: str) -> str:
    """Remove complete and trailing open fences, leaving the chat prose."""
    without_complete = _STRIP_COMPLETE_RE.sub("", text)
    return _STRIP_OPEN_RE.sub("", without_complete).strip()
