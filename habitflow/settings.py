"""Application settings with JSON persistence.

Settings are stored at:
    ~/.habitflow/settings.json

Environment variables (also read from a ``.env`` file) win over the file,
so credentials never have to be written to disk:

    HABITFLOW_STORAGE      local | supabase
    HABITFLOW_DATABASE_URL SQLAlchemy URL for the local store
    SUPABASE_URL / SUPABASE_KEY / HABITFLOW_SUPABASE_USER_ID
    GROQ_API_KEY / HABITFLOW_GROQ_MODEL
    HABITFLOW_LOG_LEVEL

Usage::

    settings = load_settings()
    settings.poll_interval_ms = 250
    save_settings(settings)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path

from dotenv import load_dotenv

from .database.db import APP_DATA_DIR, DEFAULT_DATABASE_URL
from .suggestions import DEFAULT_MODEL

logger = logging.getLogger(__name__)

SETTINGS_PATH = APP_DATA_DIR / "settings.json"

STORAGE_LOCAL = "local"
STORAGE_SUPABASE = "supabase"


@dataclass
class Settings:
    """All user-configurable preferences."""

    # ── storage ───────────────────────────────────────────────────────
    storage_backend: str = STORAGE_LOCAL
    database_url: str = DEFAULT_DATABASE_URL
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_user_id: str | None = None

    # ── suggestions ───────────────────────────────────────────────────
    groq_api_key: str = ""
    groq_model: str = DEFAULT_MODEL
    suggestion_timeout: float = 30.0       # seconds

    # ── timer ─────────────────────────────────────────────────────────
    poll_interval_ms: int = 100

    # ── logging ───────────────────────────────────────────────────────
    log_level: str = "INFO"


# env var → settings field
_ENV_OVERRIDES = {
    "HABITFLOW_STORAGE": "storage_backend",
    "HABITFLOW_DATABASE_URL": "database_url",
    "SUPABASE_URL": "supabase_url",
    "SUPABASE_KEY": "supabase_key",
    "HABITFLOW_SUPABASE_USER_ID": "supabase_user_id",
    "GROQ_API_KEY": "groq_api_key",
    "HABITFLOW_GROQ_MODEL": "groq_model",
    "HABITFLOW_LOG_LEVEL": "log_level",
}


def _apply_env(settings: Settings) -> Settings:
    load_dotenv()
    for var, attr in _ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value:
            setattr(settings, attr, value)
    return settings


def _typed(data: dict) -> dict:
    """Keep known keys whose values fit the field type; drop the rest."""
    defaults = Settings()
    clean = {}
    for f in fields(Settings):
        if f.name not in data:
            continue
        value = data[f.name]
        default = getattr(defaults, f.name)
        if value is None and default is None:
            clean[f.name] = None
            continue
        kind = str if default is None else type(default)
        accepted = (int, float) if kind is float else (kind,)
        if isinstance(value, accepted) and not isinstance(value, bool):
            clean[f.name] = kind(value)
        else:
            logger.warning(
                "Ignoring setting %s=%r: expected %s", f.name, value, kind.__name__
            )
    return clean


def load_settings(path: Path = SETTINGS_PATH, *, use_env: bool = True) -> Settings:
    """Load settings from disk, falling back to defaults."""
    settings = Settings()
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            settings = Settings(**_typed(data))
    except (OSError, ValueError, TypeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
    if use_env:
        _apply_env(settings)
    return settings


def save_settings(settings: Settings, path: Path = SETTINGS_PATH) -> None:
    """Write settings to disk as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(asdict(settings), indent=2) + "\n",
        encoding="utf-8",
    )
