"""Render throttling for the chat and preview surfaces.

Two independent gates, one per surface. A gate that is not ready simply
drops the push for the current frame; the next frame re-checks the same
window, so updates are deferred rather than lost. Finalization bypasses
both gates.
"""

from __future__ import annotations

import time
from collections.abc import Callable

Clock = Callable[[], float]


class IntervalGate:
    """Minimum-interval gate on a monotonic clock."""

    def __init__(self, interval: float, clock: Clock = time.monotonic) -> None:
        self._interval = interval
        self._clock = clock
        self._last: float | None = None
        self.emissions = 0

    @property
    def interval(self) -> float:
        return self._interval

    def ready(self) -> bool:
        """Whether enough time has passed since the last emission."""
        if self._last is None:
            return True
        return self._clock() - self._last >= self._interval

    def mark(self) -> None:
        """Record an emission now."""
        self._last = self._clock()
        self.emissions += 1

    def try_acquire(self) -> bool:
        """Mark and return True if ready, else return False."""
        if not self.ready():
            return False
        self.mark()
        return True


class RenderThrottler:
    """Rate-limits pushes to the text surface and the artifact surface."""

    def __init__(
        self,
        text_interval: float = 0.1,
        artifact_interval: float = 0.3,
        clock: Clock = time.monotonic,
    ) -> None:
        self.text = IntervalGate(text_interval, clock)
        self.artifact = IntervalGate(artifact_interval, clock)
        self._flushed = False

    def should_emit_text(self) -> bool:
        return not self._flushed and self.text.try_acquire()

    def artifact_ready(self) -> bool:
        """Whether a preview push is allowed now; call mark_artifact() after pushing."""
        return not self._flushed and self.artifact.ready()

    def mark_artifact(self) -> None:
        self.artifact.mark()

    def force_flush(self) -> bool:
        """Claim the single final flush. Returns False if already taken."""
        if self._flushed:
            return False
        self._flushed = True
        self.text.mark()
        self.artifact.mark()
        return True
