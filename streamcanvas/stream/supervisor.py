"""Session supervisor: owns the single in-flight stream of a chat surface.

State machine per session::

    idle -> streaming -> completed | aborted | errored | stale_finalized

Three independent triggers can end a stream early: user cancellation,
the stale watchdog (no bytes for ``stale_threshold``), and the hard
timeout (``hard_timeout`` since start, regardless of activity). All of
them, plus ``done``/``error`` frames and transport failures, funnel into
one ``_finalize()`` that runs at most once per session, flushes the final
text and artifact past the throttle, and emits ``session_end``. Nothing
is emitted for a session after that.

The consumer loop is a single asyncio task; it suspends only while
waiting for the next chunk, so session state needs no locking.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from streamcanvas.artifacts.extractor import extract_final, extract_live, strip_code_blocks
from streamcanvas.artifacts.language import build_artifact
from streamcanvas.events import EventType, StreamEventEmitter
from streamcanvas.schemas.chat import ChatMessage, ChatRole, ErrorKind
from streamcanvas.schemas.config import StreamConfig, ThinkingConfig
from streamcanvas.schemas.streaming import (
    OUTCOME_STATES,
    Artifact,
    Frame,
    FrameKind,
    SessionOutcome,
    SessionState,
    ToolActivity,
    ToolStatus,
)
from streamcanvas.stream.accumulator import accumulate
from streamcanvas.stream.classifier import (
    classify_error,
    is_extended_thinking,
    user_error_message,
)
from streamcanvas.stream.decoder import FrameDecoder
from streamcanvas.stream.session import StreamSession
from streamcanvas.stream.throttle import Clock, RenderThrottler

logger = logging.getLogger(__name__)

ChunkSource = AsyncIterable[str | bytes]

_EOF = object()


class SessionResult(BaseModel):
    """Terminal summary of one stream session."""

    session_id: str
    outcome: SessionOutcome
    reason: str = Field(default="", description="What ended the session")
    final_text: str = Field(default="", description="Text of the final chat message")
    message: ChatMessage | None = Field(
        default=None, description="Final chat message; None when nothing was produced"
    )
    artifact: Artifact | None = Field(default=None, description="Final preview artifact")
    tools: list[ToolActivity] = Field(default_factory=list)
    error_kind: ErrorKind | None = Field(default=None)


@dataclass
class _ActiveStream:
    """Per-session working objects kept alongside the session."""

    session: StreamSession
    throttler: RenderThrottler
    decoder: FrameDecoder = field(default_factory=FrameDecoder)
    task: asyncio.Task | None = None
    result: SessionResult | None = None


async def _next_chunk(iterator: AsyncIterator[Any]) -> Any:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _EOF


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


async def _close_source(iterator: AsyncIterator[Any]) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:
        logger.debug("Error while closing stream source", exc_info=True)


class StreamSupervisor:
    """Runs one stream at a time and guarantees single finalization.

    Consumers observe the session through the emitter; they never get a
    handle to mutate it. Starting a new stream cancels (aborts) any
    stream still open on this supervisor first.
    """

    def __init__(
        self,
        emitter: StreamEventEmitter | None = None,
        config: StreamConfig | None = None,
        thinking: ThinkingConfig | None = None,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self._emitter = emitter or StreamEventEmitter()
        self._config = config or StreamConfig()
        self._thinking = thinking or ThinkingConfig()
        self._clock = clock
        self._active: _ActiveStream | None = None

    @property
    def emitter(self) -> StreamEventEmitter:
        return self._emitter

    @property
    def session(self) -> StreamSession | None:
        """The current (or most recent) session."""
        return self._active.session if self._active else None

    @property
    def state(self) -> SessionState:
        return self._active.session.state if self._active else SessionState.IDLE

    # ── Lifecycle ─────────────────────────────────────────────────

    async def start(self, source: ChunkSource, *, prompt: str = "") -> StreamSession:
        """Open a new session consuming ``source``.

        Any still-open prior session is aborted and its reader closed
        before the new one starts.
        """
        await self._retire_active()

        session = StreamSession(started_at=self._clock(), prompt=prompt)
        session.state = SessionState.STREAMING
        run = _ActiveStream(
            session=session,
            throttler=RenderThrottler(
                self._config.text_render_interval,
                self._config.artifact_render_interval,
                self._clock,
            ),
        )
        self._active = run
        self._emit(run, EventType.SESSION_STARTED, prompt=prompt)

        run.task = asyncio.create_task(
            self._consume(run, source), name=f"stream-{session.session_id[:8]}"
        )
        # Let the consumer reach its first read so a cancel lands inside it
        await asyncio.sleep(0)
        return session

    async def wait(self) -> SessionResult:
        """Wait for the current session to reach a terminal state."""
        run = self._active
        if run is None or run.task is None:
            raise RuntimeError("No stream session has been started")

        try:
            await run.task
        except asyncio.CancelledError:
            if not run.task.done():
                # The waiter itself was cancelled; take the session down with it
                self.cancel(reason="cancelled")
                raise
            if not run.session.cancelled:
                raise

        if run.result is None:
            raise RuntimeError("Stream session ended without a result")
        return run.result

    async def run(self, source: ChunkSource, *, prompt: str = "") -> SessionResult:
        """Start a session and wait for it to finish."""
        await self.start(source, prompt=prompt)
        return await self.wait()

    def cancel(self, reason: str = "user") -> bool:
        """Abort the active session, flushing what has accumulated so far.

        Finalization happens synchronously; the reader is closed when the
        consumer task unwinds. Returns False if there was nothing to cancel.
        """
        run = self._active
        if run is None or run.session.finalized:
            return False

        run.session.cancelled = True
        self._finalize(run, SessionOutcome.ABORTED, reason=reason)
        # From inside the consumer (e.g. a listener) the loop exits on its own
        if run.task is not None and not run.task.done() and run.task is not _current_task():
            run.task.cancel()
        return True

    async def _retire_active(self) -> None:
        run = self._active
        if run is None:
            return
        if not run.session.finalized:
            logger.info("Superseding open session %s", run.session.session_id[:8])
            self.cancel(reason="superseded")
        if run.task is not None and not run.task.done():
            await asyncio.gather(run.task, return_exceptions=True)

    # ── Consumer loop ─────────────────────────────────────────────

    async def _consume(self, run: _ActiveStream, source: ChunkSource) -> SessionResult | None:
        session = run.session
        iterator = aiter(source)
        try:
            while not session.finalized:
                timeout, hard_bound = self._read_deadline(session)
                if timeout <= 0:
                    self._on_deadline(run, hard_bound)
                    break

                try:
                    chunk = await asyncio.wait_for(_next_chunk(iterator), timeout)
                except TimeoutError:
                    self._on_deadline(run, hard_bound)
                    break

                if chunk is _EOF:
                    for frame in run.decoder.flush():
                        self._dispatch(run, frame)
                    if not session.finalized:
                        logger.info(
                            "Stream %s ended without a done frame", session.session_id[:8]
                        )
                        self._finalize(run, SessionOutcome.COMPLETED, reason="eof")
                    break

                session.last_activity_at = self._clock()
                for frame in run.decoder.feed(chunk):
                    self._dispatch(run, frame)
                    if session.finalized:
                        break

        except asyncio.CancelledError:
            if not session.cancelled:
                self._finalize(run, SessionOutcome.ABORTED, reason="cancelled")
                raise
            logger.debug("Consumer for %s cancelled", session.session_id[:8])

        except Exception as exc:
            logger.exception("Stream %s failed", session.session_id[:8])
            self._finalize(
                run,
                SessionOutcome.ERRORED,
                reason="transport",
                error_kind=ErrorKind.TRANSPORT,
                detail=str(exc),
            )

        finally:
            await _close_source(iterator)

        return run.result

    def _read_deadline(self, session: StreamSession) -> tuple[float, bool]:
        """Seconds until the next deadline, and whether it is the hard timeout."""
        now = self._clock()
        stale_left = self._config.stale_threshold - (now - session.last_activity_at)
        hard_left = self._config.hard_timeout - (now - session.started_at)
        if hard_left <= stale_left:
            return hard_left, True
        return stale_left, False

    def _on_deadline(self, run: _ActiveStream, hard_bound: bool) -> None:
        session = run.session
        if hard_bound:
            logger.warning(
                "Stream %s hit the %.0fs hard timeout, aborting",
                session.session_id[:8], self._config.hard_timeout,
            )
            self._finalize(run, SessionOutcome.ABORTED, reason="timeout")
        else:
            logger.warning(
                "Stream %s stale (no data for %.0fs), finishing",
                session.session_id[:8], self._config.stale_threshold,
            )
            self._finalize(run, SessionOutcome.STALE, reason="stale")

    # ── Frame dispatch ────────────────────────────────────────────

    def _dispatch(self, run: _ActiveStream, frame: Frame) -> None:
        session = run.session
        kind = frame.kind

        if kind == FrameKind.THINKING:
            # Thinking frames are cumulative snapshots, not deltas
            session.accumulated_thinking = frame.text
            self._emit(
                run,
                EventType.THINKING,
                text=frame.text,
                extended=is_extended_thinking(frame.text, self._thinking),
            )

        elif kind == FrameKind.TOOL_CALL:
            activity = ToolActivity(text=frame.text)
            session.tools.append(activity)
            self._emit_tool(run, activity)

        elif kind == FrameKind.TOOL_RESULT:
            activity = session.last_running_tool()
            if activity is None:
                logger.debug("tool_result with no running tool: %.80s", frame.text)
                return
            activity.text = f"{activity.text} → {frame.text}"
            activity.result = frame.text
            activity.status = ToolStatus.COMPLETE
            self._emit_tool(run, activity)

        elif kind == FrameKind.CONTENT:
            self._on_content(run, frame.text)

        elif kind == FrameKind.DONE:
            self._finalize(run, SessionOutcome.COMPLETED, reason="done")

        elif kind == FrameKind.ERROR:
            logger.error("Backend error frame: %s", frame.text)
            self._finalize(
                run,
                SessionOutcome.ERRORED,
                reason="error",
                error_kind=classify_error(frame.text),
                detail=frame.text,
            )

    def _on_content(self, run: _ActiveStream, fragment: str) -> None:
        session = run.session
        session.accumulated_content, replaced = accumulate(
            session.accumulated_content,
            fragment,
            min_chars=self._config.replace_min_chars,
            ratio=self._config.replace_ratio,
        )
        if replaced:
            logger.debug("Full-response resend replaced accumulated content")

        content = session.accumulated_content
        throttler = run.throttler

        if throttler.should_emit_text():
            self._emit(
                run,
                EventType.TEXT_UPDATE,
                text=strip_code_blocks(content),
                is_streaming=True,
            )

        if "```" in content and throttler.artifact_ready():
            block = extract_live(content, self._config.corruption_scan_chars)
            if block is not None:
                throttler.mark_artifact()
                artifact = build_artifact(
                    block, is_streaming=True, placeholder=self._config.live_placeholder
                )
                self._emit(
                    run,
                    EventType.ARTIFACT,
                    is_complete=block.is_complete,
                    **artifact.model_dump(mode="json"),
                )

    # ── Finalization ──────────────────────────────────────────────

    def _finalize(
        self,
        run: _ActiveStream,
        outcome: SessionOutcome,
        *,
        reason: str,
        error_kind: ErrorKind | None = None,
        detail: str = "",
    ) -> bool:
        """Single exit path for every session. Returns False if already final."""
        session = run.session
        if session.finalized:
            logger.debug("Ignoring %s for finalized session %s", reason, session.session_id[:8])
            return False
        session.finalized = True
        session.state = OUTCOME_STATES[outcome]

        content = session.accumulated_content
        if outcome == SessionOutcome.ERRORED:
            final_text = user_error_message(
                error_kind or ErrorKind.GENERIC, detail, session.prompt
            )
        elif content:
            final_text = strip_code_blocks(content) or content
        else:
            final_text = ""

        artifact: Artifact | None = None
        if run.throttler.force_flush():
            if outcome != SessionOutcome.ERRORED and content:
                block = extract_final(content, self._config.corruption_scan_chars)
                if block is not None:
                    artifact = build_artifact(block, is_streaming=False)
                    self._emit(
                        run,
                        EventType.ARTIFACT,
                        final=True,
                        is_complete=block.is_complete,
                        **artifact.model_dump(mode="json"),
                    )
            if final_text:
                self._emit(
                    run, EventType.TEXT_UPDATE, final=True, text=final_text, is_streaming=False
                )

        message = ChatMessage(role=ChatRole.ASSISTANT, content=final_text) if final_text else None
        run.result = SessionResult(
            session_id=session.session_id,
            outcome=outcome,
            reason=reason,
            final_text=final_text,
            message=message,
            artifact=artifact,
            tools=[t.model_copy() for t in session.tools],
            error_kind=error_kind,
        )
        self._emit(
            run,
            EventType.SESSION_END,
            final=True,
            outcome=str(outcome),
            reason=reason,
            final_text=final_text,
            has_message=message is not None,
            error_kind=str(error_kind) if error_kind else None,
        )
        logger.info(
            "Session %s finalized: %s (%s, %d chars)",
            session.session_id[:8], outcome, reason, len(content),
        )
        return True

    # ── Emission ──────────────────────────────────────────────────

    def _emit(
        self, run: _ActiveStream, event_type: EventType, *, final: bool = False, **data: Any
    ) -> None:
        # Once finalized, only the finalization flush itself may emit
        if run.session.finalized and not final:
            return
        self._emitter.emit(event_type, run.session.session_id, **data)

    def _emit_tool(self, run: _ActiveStream, activity: ToolActivity) -> None:
        self._emit(
            run,
            EventType.TOOL_ACTIVITY,
            tool_id=activity.tool_id,
            name=activity.name,
            status=str(activity.status),
            text=activity.text,
            result=activity.result,
        )
