"""Content accumulator with replace-vs-append policy.

The backend normally streams token deltas, but may switch mid-stream to
resending the full response. A fragment that is both large and much
longer than what has accumulated is taken as such a resend.
"""

from __future__ import annotations


def is_wholesale_replacement(
    current: str,
    fragment: str,
    *,
    min_chars: int = 100,
    ratio: float = 1.5,
) -> bool:
    """True when ``fragment`` should replace ``current`` instead of extending it."""
    return len(fragment) > min_chars and len(fragment) > len(current) * ratio


def accumulate(
    current: str,
    fragment: str,
    *,
    min_chars: int = 100,
    ratio: float = 1.5,
) -> tuple[str, bool]:
    """Fold one content fragment into the accumulated text.

    Returns:
        Tuple of (next accumulated text, whether it was a replacement).
    """
    if is_wholesale_replacement(current, fragment, min_chars=min_chars, ratio=ratio):
        return fragment, True
    return current + fragment, False
