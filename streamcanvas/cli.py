"""streamcanvas CLI: Typer + Rich terminal chat surface.

Commands: chat, replay, config, serve.
Streams are rendered live through the same events any other surface
would consume; Ctrl+C aborts the session and keeps what has arrived.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from streamcanvas import __version__
from streamcanvas.artifacts.language import artifact_title, classify_language
from streamcanvas.cli_display import ChatStreamDisplay, render_result
from streamcanvas.events import StreamEventEmitter
from streamcanvas.keys import credential_status, load_keys_env
from streamcanvas.routing import select_route
from streamcanvas.schemas.chat import build_chat_request, compose_edit_message
from streamcanvas.schemas.config import AppConfig
from streamcanvas.schemas.streaming import Artifact, SessionOutcome
from streamcanvas.settings import load_app_config
from streamcanvas.stream.supervisor import ChunkSource, SessionResult, StreamSupervisor

console = Console()

app = typer.Typer(
    name="streamcanvas",
    help="Streaming assistant chat with a live code preview.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"streamcanvas {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging.",
    ),
) -> None:
    """streamcanvas: stream assistant replies and extract code artifacts."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    load_keys_env()


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(config_path: Path | None) -> AppConfig:
    """Load app config, exit on error."""
    try:
        return load_app_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


# File suffixes whose fence tag differs from the suffix itself
_SUFFIX_TAGS: dict[str, str] = {"htm": "html", "mmd": "mermaid"}


def _load_artifact(path: Path) -> Artifact:
    """Read a source file as the artifact currently open for editing."""
    try:
        code = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(1) from None
    suffix = path.suffix.lstrip(".").lower()
    language = classify_language(_SUFFIX_TAGS.get(suffix, suffix), code)
    return Artifact(code=code, language=language, title=artifact_title(language))


async def _supervise(
    supervisor: StreamSupervisor, source: ChunkSource, prompt: str
) -> SessionResult:
    """Run one session, mapping SIGINT to a user cancel while it streams."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, supervisor.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        # Windows event loops and non-main threads have no signal handlers
        handler_installed = False

    try:
        return await supervisor.run(source, prompt=prompt)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def _run_session(
    cfg: AppConfig,
    prompt: str,
    make_source,
    *,
    live: bool,
) -> SessionResult:
    """Drive a session to completion with optional live rendering."""
    emitter = StreamEventEmitter(keep_history=False)
    supervisor = StreamSupervisor(emitter, cfg.stream, cfg.thinking)

    async def _go() -> SessionResult:
        async with make_source() as source:
            return await _supervise(supervisor, source, prompt)

    if not live:
        return asyncio.run(_go())

    with ChatStreamDisplay(console) as display:
        emitter.add_listener(display.create_listener())
        return asyncio.run(_go())


def _finish(result: SessionResult) -> None:
    render_result(console, result)
    if result.outcome == SessionOutcome.ERRORED:
        raise typer.Exit(1)


class _HttpSource:
    """Async context manager yielding the routed backend stream.

    The route is chosen from ``route_text`` (the user's own words) while
    ``message`` is what is sent, which may carry edit instructions.
    """

    def __init__(self, cfg: AppConfig, message: str, route_text: str = "") -> None:
        self._cfg = cfg
        self._message = message
        self._route_text = route_text or message
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> AsyncIterator[str]:
        from streamcanvas.transport.http import stream_routed

        backend = self._cfg.backend
        request = build_chat_request(
            self._message,
            temperature=backend.temperature,
            max_tokens=backend.max_tokens,
        )
        route = select_route(self._route_text, backend.tool_keywords)
        self._client = httpx.AsyncClient()
        return stream_routed(self._client, backend, route, request)

    async def __aexit__(self, *args: object) -> None:
        if self._client is not None:
            await self._client.aclose()


class _DirectSource:
    """Async context manager yielding a LiteLLM stream."""

    def __init__(self, cfg: AppConfig, message: str) -> None:
        self._cfg = cfg
        self._message = message

    async def __aenter__(self) -> AsyncIterator[str]:
        from streamcanvas.transport.direct import stream_direct

        backend = self._cfg.backend
        request = build_chat_request(
            self._message,
            temperature=backend.temperature,
            max_tokens=backend.max_tokens,
        )
        return stream_direct(request, backend)

    async def __aexit__(self, *args: object) -> None:
        return None


class _ReplaySource:
    """Async context manager replaying a recorded SSE transcript."""

    def __init__(self, data: bytes, chunk_size: int, delay: float) -> None:
        self._data = data
        self._chunk_size = chunk_size
        self._delay = delay

    async def _chunks(self) -> AsyncIterator[bytes]:
        for start in range(0, len(self._data), self._chunk_size):
            yield self._data[start:start + self._chunk_size]
            if self._delay:
                await asyncio.sleep(self._delay)

    async def __aenter__(self) -> AsyncIterator[bytes]:
        return self._chunks()

    async def __aexit__(self, *args: object) -> None:
        return None


# ── streamcanvas chat ────────────────────────────────────────────


@app.command()
def chat(
    message: str = typer.Argument(..., help="Message to send to the assistant"),
    local: bool = typer.Option(
        False, "--local",
        help="Stream straight from the model via LiteLLM instead of the backend",
    ),
    url: str = typer.Option(
        "", "--url",
        help="Backend base URL (overrides the config file)",
    ),
    config_path: Path = typer.Option(
        None, "--config", "-c",
        help="Path to a TOML config file",
    ),
    no_live: bool = typer.Option(
        False, "--no-live",
        help="Print only the final result",
    ),
    edit_artifact: Path = typer.Option(
        None, "--edit-artifact",
        help="Source file to send as the current artifact to edit",
    ),
) -> None:
    """Send a message and stream the reply with a live artifact preview."""
    cfg = _load_config(config_path)
    if url:
        cfg.backend.base_url = url

    outgoing = message
    if edit_artifact is not None:
        outgoing = compose_edit_message(message, _load_artifact(edit_artifact))

    if local:
        def make_source():
            return _DirectSource(cfg, outgoing)
    else:
        def make_source():
            return _HttpSource(cfg, outgoing, route_text=message)

    result = _run_session(cfg, message, make_source, live=not no_live)
    _finish(result)


# ── streamcanvas replay ──────────────────────────────────────────


@app.command()
def replay(
    file: Path = typer.Argument(..., help="Recorded SSE transcript (data: lines)"),
    chunk_size: int = typer.Option(
        64, "--chunk-size", min=1,
        help="Bytes per simulated network read",
    ),
    delay: float = typer.Option(
        0.0, "--delay", min=0.0,
        help="Seconds to sleep between reads",
    ),
    config_path: Path = typer.Option(
        None, "--config", "-c",
        help="Path to a TOML config file",
    ),
    live: bool = typer.Option(
        False, "--live",
        help="Render the replay with the live display",
    ),
) -> None:
    """Feed a recorded stream through the full pipeline."""
    if not file.is_file():
        console.print(f"[red]File not found:[/red] {file}")
        raise typer.Exit(1)

    cfg = _load_config(config_path)
    data = file.read_bytes()

    result = _run_session(
        cfg,
        file.name,
        lambda: _ReplaySource(data, chunk_size, delay),
        live=live,
    )
    _finish(result)


# ── streamcanvas config ──────────────────────────────────────────


@app.command("config")
def config_show(
    config_path: Path = typer.Option(
        None, "--config", "-c",
        help="Path to a TOML config file",
    ),
) -> None:
    """Show the effective configuration."""
    cfg = _load_config(config_path)

    table = Table(title="Stream Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    stream = cfg.stream
    table.add_row("Text Render Interval", f"{stream.text_render_interval}s")
    table.add_row("Artifact Render Interval", f"{stream.artifact_render_interval}s")
    table.add_row("Stale Threshold", f"{stream.stale_threshold}s")
    table.add_row("Hard Timeout", f"{stream.hard_timeout}s")
    table.add_row("Replace Threshold", f"> {stream.replace_min_chars} chars, x{stream.replace_ratio}")
    table.add_row("Corruption Scan", f"{stream.corruption_scan_chars} chars")
    table.add_row("Extended Thinking", f"> {cfg.thinking.min_chars} chars")

    backend = cfg.backend
    table.add_row("Backend URL", backend.base_url)
    table.add_row("Direct Path", backend.direct_path)
    table.add_row("Tools Path", backend.tools_path)
    table.add_row("Relay Upstream", backend.upstream_url or "(not set)")
    table.add_row("Model", backend.model)
    table.add_row("Tool Keywords", str(len(backend.tool_keywords)))

    console.print(table)

    cred_table = Table(title="Credentials")
    cred_table.add_column("Variable", style="cyan")
    cred_table.add_column("Status")
    for name, present in credential_status(backend).items():
        cred_table.add_row(name, "[green]set[/green]" if present else "[dim]missing[/dim]")
    console.print()
    console.print(cred_table)


# ── streamcanvas serve ───────────────────────────────────────────


@app.command()
def serve(
    port: int = typer.Option(3000, "--port", "-p", help="Port to listen on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    config_path: Path = typer.Option(
        None, "--config", "-c",
        help="Path to a TOML config file",
    ),
) -> None:
    """Run the SSE relay server."""
    cfg = _load_config(config_path)

    try:
        import uvicorn

        from streamcanvas.relay.server import create_app
        app_instance = create_app(cfg)
    except ImportError:
        console.print(
            "[red]The relay requires extra dependencies.[/red]\n"
            "Install with: [bold]pip install streamcanvas\\[relay][/bold]"
        )
        raise typer.Exit(1) from None

    console.print(f"[bold blue]streamcanvas relay[/bold blue] on http://{host}:{port}")
    uvicorn.run(app_instance, host=host, port=port, log_level="warning")


# ── Entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    app()
