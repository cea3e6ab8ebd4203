"""Configuration helpers for the Taskly service."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


DEFAULT_STORE_DIR = Path(__file__).resolve().parents[1] / "taskly_store"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the library and API."""

    environment: str = "local"
    force_file_store: bool = False
    store_dir: Path = DEFAULT_STORE_DIR
    dedupe_invitations: bool = False
    log_level: str = "INFO"
    anthropic_model: Optional[str] = None
    allowed_origins: List[str] = field(default_factory=list)

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


def _flag(name: str) -> bool:
    value = os.getenv(name, "").strip().lower()
    if value in ("", "0", "false", "no"):
        return False
    if value in ("1", "true", "yes"):
        return True
    raise ConfigError(f"{name} must be 0/1, got {value!r}.")


def load_settings(*, dotenv: bool = True) -> Settings:
    """Load settings from environment variables.

    Args:
        dotenv: Also read a local .env file before resolving variables.

    Returns:
        Settings with the resolved values.

    Raises:
        ConfigError: if a variable holds an invalid value.
    """

    if dotenv:
        load_dotenv()

    log_level = os.getenv("TASKLY_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(
            f"TASKLY_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}."
        )

    store_dir = os.getenv("TASKLY_STORE_DIR", "").strip()
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        os.getenv("TASKLY_ALLOWED_FRONTEND", "").strip(),
    ]

    return Settings(
        environment=os.getenv("TASKLY_ENV", "local"),
        force_file_store=_flag("TASKLY_STORE_FORCE_FILE"),
        store_dir=Path(store_dir) if store_dir else DEFAULT_STORE_DIR,
        dedupe_invitations=_flag("TASKLY_DEDUPE_INVITATIONS"),
        log_level=log_level,
        anthropic_model=os.getenv("ANTHROPIC_MODEL") or None,
        allowed_origins=[origin for origin in origins if origin],
    )
