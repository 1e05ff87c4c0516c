"""Environment-driven configuration helpers."""

from __future__ import annotations

import os
from pathlib import Path


DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


def load_env_file(path: str = ".env") -> None:
    """Best-effort .env loader; variables already set in the environment win."""
    env_path = Path(path)
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("\"'")
        if key and key not in os.environ:
            os.environ[key] = value


def as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_flag(name: str, default: bool = False) -> bool:
    return as_bool(os.getenv(name), default=default)


def gemini_model() -> str:
    return os.getenv("FREIGHTDESK_GEMINI_MODEL", DEFAULT_GEMINI_MODEL)


def offline_mode() -> bool:
    return env_flag("FREIGHTDESK_OFFLINE", default=False)


def log_level() -> str:
    return os.getenv("FREIGHTDESK_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
