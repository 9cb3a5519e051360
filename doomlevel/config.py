"""Shared console and environment-driven settings."""

import os
from dataclasses import dataclass

from rich.console import Console

from doomlevel.atlas import DEFAULT_ATLAS_SIZE
from doomlevel.sectors import DEFAULT_CLIP_EXTENT

console = Console(stderr=True)

ENV_PREFIX = "DOOMLEVEL_"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class Settings:
    atlas_size: int = DEFAULT_ATLAS_SIZE
    clip_extent: float = DEFAULT_CLIP_EXTENT
    log_level: str = "WARNING"


def _env(name: str, cast, default):
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise SystemExit(f"Error: {ENV_PREFIX}{name}={raw!r} is not a valid {cast.__name__}")
    if isinstance(value, (int, float)) and value <= 0:
        raise SystemExit(f"Error: {ENV_PREFIX}{name} must be positive, got {raw!r}")
    return value


def load_settings() -> Settings:
    """Read settings from the environment.

    Call ``load_dotenv()`` first to pick up a ``.env`` file.
    """
    log_level = _env("LOG_LEVEL", str, "WARNING").upper()
    if log_level not in LOG_LEVELS:
        raise SystemExit(
            f"Error: {ENV_PREFIX}LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}"
        )
    return Settings(
        atlas_size=_env("ATLAS_SIZE", int, DEFAULT_ATLAS_SIZE),
        clip_extent=_env("CLIP_EXTENT", float, DEFAULT_CLIP_EXTENT),
        log_level=log_level,
    )
