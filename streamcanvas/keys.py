"""Credential loading for the assistant backends.

Keys are read from the environment, loaded with this priority:
  1. Environment variables (highest: already set in shell)
  2. ~/.streamcanvas/keys.env (user-level keys)
  3. .env in current directory (project-level)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from streamcanvas.schemas.config import BackendConfig

logger = logging.getLogger(__name__)

# Directory for user-level configuration
STREAMCANVAS_HOME = Path.home() / ".streamcanvas"
KEYS_FILE = STREAMCANVAS_HOME / "keys.env"


def load_keys_env() -> list[str]:
    """Load keys from ~/.streamcanvas/keys.env and .env into os.environ.

    Existing env vars are NOT overwritten, and earlier files win over
    later ones. Returns the names that were set.
    """
    loaded: list[str] = []
    for env_file in (KEYS_FILE, Path.cwd() / ".env"):
        if env_file.is_file():
            loaded.extend(_load_env_file(env_file))
    return loaded


def parse_env_text(text: str) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines; ``export`` prefixes and quotes are allowed."""
    pairs: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.removeprefix("export ").partition("=")
        key = key.strip()
        if key:
            pairs[key] = value.strip().strip("'\"")
    return pairs


def _load_env_file(path: Path) -> list[str]:
    try:
        pairs = parse_env_text(path.read_text(encoding="utf-8"))
    except OSError:
        logger.debug("Could not read %s", path)
        return []

    loaded = [key for key in pairs if not os.environ.get(key)]
    for key in loaded:
        os.environ[key] = pairs[key]
    if loaded:
        logger.debug("Loaded %s from %s", ", ".join(loaded), path)
    return loaded


def credential_status(backend: BackendConfig) -> dict[str, bool]:
    """Which credential env vars named by ``backend`` are set."""
    names = [backend.api_key_env, backend.consumer_key_env, backend.consumer_secret_env]
    return {name: bool(os.environ.get(name)) for name in names}
