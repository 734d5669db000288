"""Configuration schemas for the stream pipeline and its backends.

Loaded from config/defaults.toml by streamcanvas.settings. Every
interval and threshold is overridable; the defaults match the values
observed in production.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class StreamConfig(BaseModel):
    """Timing and heuristic thresholds for one stream session."""

    text_render_interval: float = Field(
        default=0.1, ge=0.0, description="Minimum seconds between chat-text pushes"
    )
    artifact_render_interval: float = Field(
        default=0.3, ge=0.0, description="Minimum seconds between preview pushes"
    )
    stale_threshold: float = Field(
        default=30.0, gt=0.0, description="Seconds without bytes before a stream is stale"
    )
    hard_timeout: float = Field(
        default=120.0, gt=0.0, description="Absolute ceiling on one stream's lifetime"
    )
    replace_min_chars: int = Field(
        default=100, ge=0, description="Fragments at or below this length always append"
    )
    replace_ratio: float = Field(
        default=1.5, gt=0.0,
        description="Fragment/accumulated length ratio that triggers wholesale replacement",
    )
    corruption_scan_chars: int = Field(
        default=150, gt=0, description="Leading body chars scanned for prose lead-ins"
    )
    live_placeholder: str = Field(
        default="// Generating code...",
        description="Preview text while an open fence has no body yet",
    )


class ThinkingConfig(BaseModel):
    """Presentation hint thresholds for thinking frames."""

    min_chars: int = Field(
        default=50, ge=0, description="Longer snapshots count as extended reasoning"
    )
    status_glyphs: list[str] = Field(
        default_factory=lambda: ["🧠", "🔌", "🔄", "💭", "🛠", "✓", "⚡"],
        description="Leading glyphs that mark a short status line",
    )


class BackendConfig(BaseModel):
    """Where chat requests are sent."""

    base_url: str = Field(default="http://localhost:3000", description="Relay base URL")
    direct_path: str = Field(default="/api/ai/direct")
    tools_path: str = Field(default="/api/ai/wordpress-proxy")
    upstream_url: str = Field(
        default="", description="Tool-enabled backend the relay forwards to"
    )
    consumer_key_env: str = Field(default="WC_CONSUMER_KEY")
    consumer_secret_env: str = Field(default="WC_CONSUMER_SECRET")
    model: str = Field(
        default="anthropic/claude-sonnet-4-5-20250929",
        description="LiteLLM model identifier for direct streaming",
    )
    api_key_env: str = Field(default="CLAUDE_API_KEY")
    temperature: float = Field(default=0.9, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8192, gt=0)
    tool_keywords: list[str] = Field(
        default_factory=list,
        description="Phrases that route a message to the tool-enabled endpoint",
    )


class AppConfig(BaseModel):
    """Top-level configuration."""

    stream: StreamConfig = Field(default_factory=StreamConfig)
    thinking: ThinkingConfig = Field(default_factory=ThinkingConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
