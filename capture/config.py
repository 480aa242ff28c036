"""
capture.config

Runtime configuration read from SHOT_* environment variables (plus the
SCREENSHOT_CONCURRENCY knob used by the admission controller).
A .env file is loaded first via python-dotenv without overriding variables
that are already set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_DEVICE_SCALE_FACTOR,
    DEFAULT_WIDTH,
    NAV_TIMEOUT_MS,
    PRODUCTION_VERSION,
)


def _load_dotenv_if_needed() -> None:
    """Load SHOT_ENV_FILE (if set) and then ./.env; never overrides os.environ."""
    env_file = os.getenv("SHOT_ENV_FILE", "").strip()
    if env_file and os.path.exists(env_file):
        load_dotenv(env_file, override=False)
    cwd_env = os.path.join(os.getcwd(), ".env")
    if os.path.exists(cwd_env):
        load_dotenv(cwd_env, override=False)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)).strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)).strip())
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CaptureConfig:
    """Process-wide settings for the screenshot service."""

    max_concurrent_captures: int = 2
    environment: str = "production"
    headless: bool = True
    chromium_path: Optional[str] = None
    default_width: int = DEFAULT_WIDTH
    device_scale_factor: float = DEFAULT_DEVICE_SCALE_FACTOR
    nav_timeout_ms: int = NAV_TIMEOUT_MS
    production_version: str = PRODUCTION_VERSION

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("dev", "development")

    @classmethod
    def from_env(cls) -> "CaptureConfig":
        """Build the config from the environment, with sane fallbacks."""
        _load_dotenv_if_needed()
        concurrency = max(1, _env_int("SCREENSHOT_CONCURRENCY", 2))
        environment = os.getenv("SHOT_ENV", "").strip() or "production"
        chromium_path = os.getenv("SHOT_CHROMIUM_PATH", "").strip() or None
        width = _env_int("SHOT_DEFAULT_WIDTH", DEFAULT_WIDTH)
        dsf = _env_float("SHOT_DEVICE_SCALE_FACTOR", DEFAULT_DEVICE_SCALE_FACTOR)
        if dsf <= 0:
            dsf = DEFAULT_DEVICE_SCALE_FACTOR
        return cls(
            max_concurrent_captures=concurrency,
            environment=environment,
            headless=_env_bool("SHOT_HEADLESS", True),
            chromium_path=chromium_path,
            default_width=width,
            device_scale_factor=dsf,
            nav_timeout_ms=max(1, _env_int("SHOT_NAV_TIMEOUT_MS", NAV_TIMEOUT_MS)),
            production_version=os.getenv("SHOT_VERSION", "").strip() or PRODUCTION_VERSION,
        )
