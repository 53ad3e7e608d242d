"""Configuration for hostprobe."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

APP_NAME: str = "hostprobe"

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 8080
DEFAULT_LOG_LEVEL: str = "INFO"

DEFAULT_SEARCH_LIMIT: int = 50
REPORT_PROCESS_CAP: int = 20

SAMPLE_INTERVAL_SECONDS: float = 1.0
SAMPLE_WINDOW_SECONDS: float = 0.2
MONITOR_POLL_SECONDS: float = 2.0

UNKNOWN: str = "Unknown"
NULL_MAC_ADDRESS: str = "00:00:00:00:00:00"
TIMESTAMP_FORMAT: str = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True, frozen=True)
class Settings:
    """Runtime settings for the HTTP service."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    sample_interval: float = SAMPLE_INTERVAL_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL


def _env_number(environ: Mapping[str, str], name: str, cast: type, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from HOSTPROBE_* environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.
    """
    env = os.environ if environ is None else environ
    port = int(_env_number(env, "HOSTPROBE_PORT", int, DEFAULT_PORT))
    if not 0 <= port <= 65535:
        raise ValueError(f"HOSTPROBE_PORT must be in range 0..65535, got {port}")
    interval = float(_env_number(env, "HOSTPROBE_SAMPLE_INTERVAL", float, SAMPLE_INTERVAL_SECONDS))
    if interval <= 0:
        raise ValueError(f"HOSTPROBE_SAMPLE_INTERVAL must be positive, got {interval}")
    return Settings(
        host=env.get("HOSTPROBE_HOST") or DEFAULT_HOST,
        port=port,
        sample_interval=interval,
        log_level=(env.get("HOSTPROBE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )
