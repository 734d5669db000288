"""Tests for the streamcanvas CLI.

Covers --help/--version, config display, offline replay and chat over
both transports via CliRunner.
"""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
from typer.testing import CliRunner

from streamcanvas import __version__
from streamcanvas.cli import app

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside option names,
# which breaks substring matching in CI (headless, no TTY).
# COLUMNS=200 prevents wrapping that could split a flag across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})

_RealAsyncClient = httpx.AsyncClient


def _frame(kind: str, **payload) -> str:
    return f"data: {json.dumps({'type': kind, **payload})}\n\n"


_TRANSCRIPT = (
    _frame("thinking", content="🧠 Thinking...")
    + _frame("content", content="Here is your button.\n")
    + _frame("content", content="```html\n<button>Go</button>\n```\n")
    + _frame("done", done=True)
)


def _write(tmp_path: Path, text: str, name: str = "session.sse") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


class TestHelp:
    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("chat", "replay", "config", "serve"):
            assert command in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_chat_help(self):
        result = runner.invoke(app, ["chat", "--help"])
        assert result.exit_code == 0
        assert "--local" in result.output
        assert "--no-live" in result.output


class TestConfigCommand:
    def test_shows_settings(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Stale Threshold" in result.output
        assert "30.0s" in result.output
        assert "CLAUDE_API_KEY" in result.output

    def test_custom_file(self, tmp_path):
        path = _write(tmp_path, "[stream]\nhard_timeout = 45.0\n", "c.toml")
        result = runner.invoke(app, ["config", "--config", str(path)])
        assert result.exit_code == 0
        assert "45.0s" in result.output

    def test_bad_config_exits(self, tmp_path):
        result = runner.invoke(app, ["config", "--config", str(tmp_path / "missing.toml")])
        assert result.exit_code == 1
        assert "Error loading config" in result.output


class TestReplayCommand:
    def test_replays_transcript(self, tmp_path):
        path = _write(tmp_path, _TRANSCRIPT)
        result = runner.invoke(app, ["replay", str(path), "--chunk-size", "7"])
        assert result.exit_code == 0, result.output
        assert "Here is your button." in result.output
        assert "<button>Go</button>" in result.output
        assert "Html Artifact" in result.output
        assert "completed" in result.output

    def test_live_display(self, tmp_path):
        path = _write(tmp_path, _TRANSCRIPT)
        result = runner.invoke(app, ["replay", str(path), "--live"])
        assert result.exit_code == 0, result.output
        assert "completed" in result.output

    def test_error_transcript_exits_nonzero(self, tmp_path):
        path = _write(tmp_path, _frame("error", error="Something broke"))
        result = runner.invoke(app, ["replay", str(path)])
        assert result.exit_code == 1
        assert "Something broke" in result.output
        assert "errored" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["replay", str(tmp_path / "nope.sse")])
        assert result.exit_code == 1
        assert "File not found" in result.output


class TestChatCommand:
    def test_http_backend(self):
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, content=_TRANSCRIPT.encode())

        def fake_client(*args, **kwargs):
            return _RealAsyncClient(transport=httpx.MockTransport(handler))

        with patch("streamcanvas.cli.httpx.AsyncClient", side_effect=fake_client):
            result = runner.invoke(
                app,
                ["chat", "Build a button", "--no-live", "--url", "http://relay.test"],
            )

        assert result.exit_code == 0, result.output
        assert "Here is your button." in result.output
        assert seen[0].host == "relay.test"
        assert seen[0].path == "/api/ai/direct"

    def test_inventory_question_uses_tools_endpoint(self):
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, content=_frame("done").encode())

        def fake_client(*args, **kwargs):
            return _RealAsyncClient(transport=httpx.MockTransport(handler))

        with patch("streamcanvas.cli.httpx.AsyncClient", side_effect=fake_client):
            runner.invoke(app, ["chat", "How much stock do we have?", "--no-live"])

        assert seen[0].path == "/api/ai/wordpress-proxy"

    def test_edit_artifact_wraps_message(self, tmp_path):
        page = _write(tmp_path, "<button>Go</button>\n", name="page.html")
        bodies: list[dict] = []
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            bodies.append(json.loads(request.content))
            return httpx.Response(200, content=_TRANSCRIPT.encode())

        def fake_client(*args, **kwargs):
            return _RealAsyncClient(transport=httpx.MockTransport(handler))

        with patch("streamcanvas.cli.httpx.AsyncClient", side_effect=fake_client):
            result = runner.invoke(
                app,
                ["chat", "Make it red", "--no-live", "--edit-artifact", str(page)],
            )

        assert result.exit_code == 0, result.output
        sent = bodies[0]["message"]
        assert sent.startswith("[EDITING EXISTING ARTIFACT]")
        assert "USER REQUEST: Make it red" in sent
        assert "- Type: html" in sent
        assert "```html\n<button>Go</button>\n" in sent
        assert seen[0].path == "/api/ai/direct"

    def test_edit_artifact_routes_on_user_text(self, tmp_path):
        page = _write(tmp_path, "const stock = [];\n", name="app.js")
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, content=_frame("done").encode())

        def fake_client(*args, **kwargs):
            return _RealAsyncClient(transport=httpx.MockTransport(handler))

        with patch("streamcanvas.cli.httpx.AsyncClient", side_effect=fake_client):
            runner.invoke(
                app,
                ["chat", "Rename the variable", "--no-live", "--edit-artifact", str(page)],
            )

        assert seen[0].path == "/api/ai/direct"

    def test_edit_artifact_missing_file(self, tmp_path):
        result = runner.invoke(
            app,
            ["chat", "Make it red", "--edit-artifact", str(tmp_path / "absent.html")],
        )
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_backend_error_exits_nonzero(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="down")

        def fake_client(*args, **kwargs):
            return _RealAsyncClient(transport=httpx.MockTransport(handler))

        with patch("streamcanvas.cli.httpx.AsyncClient", side_effect=fake_client):
            result = runner.invoke(app, ["chat", "hello", "--no-live"])

        assert result.exit_code == 1
        assert "Please try again" in result.output

    def test_local_mode(self, monkeypatch):
        monkeypatch.setenv("CLAUDE_API_KEY", "sk-test")
        delta = SimpleNamespace(content="Direct hello", reasoning_content=None)
        chunk = SimpleNamespace(choices=[SimpleNamespace(delta=delta)])

        async def stream():
            yield chunk

        mock = AsyncMock(return_value=stream())
        with patch("streamcanvas.transport.direct.litellm.acompletion", mock):
            result = runner.invoke(app, ["chat", "hi", "--local", "--no-live"])

        assert result.exit_code == 0, result.output
        assert "Direct hello" in result.output
        mock.assert_called_once()
