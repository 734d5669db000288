"""TOML configuration loader.

Loads stream timing, thinking heuristics and backend settings from
config/defaults.toml (or a user-supplied file) into AppConfig.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import ValidationError

from streamcanvas.schemas.config import AppConfig

# Default config directory relative to the streamcanvas package
_CONFIG_DIR = Path(__file__).parent / "config"

_SECTIONS = ("stream", "thinking", "backend")


def load_app_config(config_path: Path | None = None) -> AppConfig:
    """Load application settings from a TOML file.

    Sections missing from the file fall back to model defaults.

    Args:
        config_path: Path to a TOML file. Defaults to
            streamcanvas/config/defaults.toml.

    Returns:
        AppConfig populated from the file.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If a section is malformed or fails validation.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    data: dict[str, dict] = {}
    for section in _SECTIONS:
        value = raw.get(section, {})
        if not isinstance(value, dict):
            raise ValueError(f"[{section}] in {path} must be a table")
        data[section] = value

    try:
        return AppConfig(**data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {path}: {exc}") from exc
