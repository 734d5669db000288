"""Rich Live display for a streaming chat session.

Renders the chat text, the live artifact preview (syntax-highlighted
source), and an activity log of thinking and tool events. Driven purely
by stream events, so it sees exactly what any other surface would.
"""

from __future__ import annotations

import time
from collections import deque

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from streamcanvas.events import EventListener, EventType, StreamEvent
from streamcanvas.schemas.streaming import ArtifactLanguage, SessionOutcome
from streamcanvas.stream.supervisor import SessionResult

# Pygments lexer per preview language
_LEXERS: dict[str, str] = {
    ArtifactLanguage.HTML: "html",
    ArtifactLanguage.REACT: "jsx",
    ArtifactLanguage.TYPESCRIPT: "typescript",
    ArtifactLanguage.JAVASCRIPT: "javascript",
    ArtifactLanguage.CSS: "css",
    ArtifactLanguage.SVG: "xml",
    ArtifactLanguage.MERMAID: "text",
}

_OUTCOME_STYLE: dict[str, tuple[str, str]] = {
    SessionOutcome.COMPLETED: ("●", "green"),
    SessionOutcome.ABORTED: ("■", "yellow"),
    SessionOutcome.ERRORED: ("✗", "red"),
    SessionOutcome.STALE: ("⚠", "yellow"),
}


def lexer_for(language: str) -> str:
    """Syntax lexer name for an artifact language value."""
    return _LEXERS.get(language, "text")


class ChatStreamDisplay:
    """Two-panel Live view: chat text on the left, artifact on the right."""

    def __init__(self, console: Console, *, max_code_lines: int = 200) -> None:
        self._console = console
        self._max_code_lines = max_code_lines
        self._start_time = time.monotonic()

        self.text = ""
        self.thinking = ""
        self.artifact_code = ""
        self.artifact_language = ""
        self.artifact_title = ""
        self.artifact_streaming = False
        self.outcome: str | None = None
        self._activity_log: deque[tuple[float, Text]] = deque(maxlen=30)

        self._live: Live | None = None

    def __enter__(self) -> ChatStreamDisplay:
        self._start_time = time.monotonic()
        self._live = Live(
            self._build_layout(),
            console=self._console,
            refresh_per_second=8,
            transient=True,
        )
        self._live.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        if self._live:
            self._live.__exit__(*args)
            self._live = None

    def create_listener(self) -> EventListener:
        """Create an event listener for the stream emitter."""

        def _handle(event: StreamEvent) -> None:
            self.handle_event(event)
            self._refresh()

        return _handle

    # ── Event handling ────────────────────────────────────────────

    def handle_event(self, event: StreamEvent) -> None:
        data = event.data

        if event.type == EventType.SESSION_STARTED:
            self._log("Analyzing request")

        elif event.type == EventType.THINKING:
            self.thinking = data.get("text", "")
            if not data.get("extended"):
                self._log(self.thinking)

        elif event.type == EventType.TOOL_ACTIVITY:
            marker = ("✓ ", "green") if data.get("status") == "complete" else ("… ", "cyan")
            self._log(Text.assemble(marker, data.get("text", "")))

        elif event.type == EventType.TEXT_UPDATE:
            self.text = data.get("text", "")

        elif event.type == EventType.ARTIFACT:
            self.artifact_code = data.get("code", "")
            self.artifact_language = data.get("language", "")
            self.artifact_title = data.get("title", "")
            self.artifact_streaming = bool(data.get("is_streaming"))

        elif event.type == EventType.SESSION_END:
            self.outcome = data.get("outcome")
            self._log(f"Session {self.outcome} ({data.get('reason', '')})")

    def _log(self, message: str | Text) -> None:
        elapsed = time.monotonic() - self._start_time
        if isinstance(message, str):
            message = Text(message)
        self._activity_log.append((elapsed, message))

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._build_layout())

    # ── Layout builders ───────────────────────────────────────────

    def _build_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="main", ratio=1),
            Layout(name="activity", size=8),
        )
        if self.artifact_code:
            layout["main"].split_row(
                Layout(name="chat", ratio=1),
                Layout(name="artifact", ratio=1),
            )
            layout["main"]["chat"].update(self._build_chat_panel())
            layout["main"]["artifact"].update(self._build_artifact_panel())
        else:
            layout["main"].update(self._build_chat_panel())
        layout["activity"].update(self._build_activity_panel())
        return layout

    def _build_chat_panel(self) -> Panel:
        if self.text:
            body = Text(self.text)
        elif self.thinking:
            body = Text(self.thinking, style="dim italic")
        else:
            body = Text("Analyzing request…", style="dim")
        return Panel(body, title="[bold blue]Assistant[/bold blue]", border_style="blue")

    def _build_artifact_panel(self) -> Panel:
        lines = self.artifact_code.splitlines()
        if len(lines) > self._max_code_lines:
            lines = lines[-self._max_code_lines:]
        syntax = Syntax(
            "\n".join(lines),
            lexer_for(self.artifact_language),
            theme="monokai",
            line_numbers=True,
            word_wrap=True,
        )
        tag = " [yellow]streaming[/yellow]" if self.artifact_streaming else ""
        return Panel(
            syntax,
            title=f"[bold magenta]{self.artifact_title or 'Artifact'}[/bold magenta]{tag}",
            border_style="magenta",
        )

    def _build_activity_panel(self) -> Panel:
        text = Text()
        for elapsed, message in self._activity_log:
            text.append(f"{elapsed:5.1f}s ", style="dim")
            text.append_text(message)
            text.append("\n")
        return Panel(text, title="[dim]Activity[/dim]", border_style="dim")


def render_result(console: Console, result: SessionResult) -> None:
    """Print the final message and artifact of a finished session."""
    symbol, color = _OUTCOME_STYLE.get(result.outcome, ("•", "white"))

    if result.message is not None:
        console.print(Panel(
            Text(result.message.content),
            title="[bold blue]Assistant[/bold blue]",
            border_style="blue",
        ))
    else:
        console.print("[dim]No response was produced.[/dim]")

    if result.artifact is not None:
        console.print(Panel(
            Syntax(
                result.artifact.code,
                lexer_for(result.artifact.language),
                theme="monokai",
                line_numbers=True,
                word_wrap=True,
            ),
            title=f"[bold magenta]{result.artifact.title}[/bold magenta]",
            border_style="magenta",
        ))

    for tool in result.tools:
        console.print(f"  [dim]tool[/dim] {escape(tool.text)} [dim]({tool.status})[/dim]")

    console.print(
        f"[{color}]{symbol}[/{color}] [bold]{result.outcome}[/bold] "
        f"[dim]({result.reason})[/dim]"
    )
