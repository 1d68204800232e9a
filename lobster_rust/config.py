"""Centralized configuration for lobster-rust.

This module is the single source of truth for all configuration.
It loads the .env file once, on first use, and exposes the settings
as a validated pydantic model. Command line options override them.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "LOBSTER_RUST_"

DEFAULT_TRACE_MARKER = "lobster-trace"
DEFAULT_EXCLUDE_MARKER = "lobster-exclude"


def _find_env_file(start: Path | None = None) -> Path | None:
    """Find a .env file by searching upward from a directory.

    Args:
        start: Directory to start from, the working directory if omitted

    Returns:
        Path to the .env file, or None if there is none
    """
    current = (start or Path.cwd()).resolve()

    for candidate in (current, *current.parents):
        env_path = candidate / ".env"
        if env_path.is_file():
            return env_path
    return None


class TracerSettings(BaseModel):
    """Settings of a tracing run."""

    trace_marker: str = Field(default=DEFAULT_TRACE_MARKER, min_length=1)
    exclude_marker: str = Field(default=DEFAULT_EXCLUDE_MARKER, min_length=1)
    jobs: int = Field(default=1, ge=1)
    strict_syntax: bool = False
    log_level: str = "ERROR"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{value}'")
        return level

    @classmethod
    def from_env(cls) -> "TracerSettings":
        """Build settings from LOBSTER_RUST_* environment variables."""
        values = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw.strip():
                values[name] = raw.strip()
        return cls(**values)


_CACHED_SETTINGS: TracerSettings | None = None


def _load_config() -> TracerSettings:
    """Load configuration from the .env file and the environment."""
    env_path = _find_env_file()
    if env_path is not None:
        # Variables set in the environment win over the .env file
        load_dotenv(env_path, override=False)
    return TracerSettings.from_env()


def get_settings() -> TracerSettings:
    """Get the tracer settings, loading once and caching."""
    global _CACHED_SETTINGS
    if _CACHED_SETTINGS is None:
        _CACHED_SETTINGS = _load_config()
    return _CACHED_SETTINGS


def reset_settings():
    """Forget the cached settings so the next call reloads them."""
    global _CACHED_SETTINGS
    _CACHED_SETTINGS = None
