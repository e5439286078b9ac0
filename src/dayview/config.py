"""Configuration management for dayview."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DAYVIEW_HOME = Path(os.environ.get("DAYVIEW_HOME", Path.home() / "dayview"))
CONFIG_FILE = DAYVIEW_HOME / "config" / "dayview.conf"
SESSION_FILE = DAYVIEW_HOME / "config" / ".session.json"


@dataclass
class Config:
    """dayview configuration."""

    # Base URL of the credential-issuance endpoint (serves /auth and /refresh)
    auth_server_url: str = ""
    google_client_id: str = ""
    redirect_uri: str = "http://localhost:8080/callback"
    primary_calendar_id: str = "primary"
    # Calendars whose events are classes; everything else is generic
    class_calendar_ids: list[str] = field(default_factory=list)
    timezone: str = "America/Toronto"
    window_days: int = 14
    stale_seconds: float = 300.0
    refresh_interval_seconds: float = 60.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0


def _strip_value(value: str) -> str:
    """Remove surrounding quotes, or an inline comment from unquoted values."""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def _parse_number(key: str, value: str, kind: type, default):
    try:
        return kind(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {key.upper()} value: {value!r}")
        return default


def load_config(path: Path | None = None) -> Config:
    """Load configuration from dayview.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _strip_value(value.strip())

        match key:
            case "auth_server_url":
                config.auth_server_url = value.rstrip("/")
            case "google_client_id":
                config.google_client_id = value
            case "redirect_uri":
                config.redirect_uri = value
            case "primary_calendar_id":
                config.primary_calendar_id = value or "primary"
            case "class_calendar_ids":
                config.class_calendar_ids = [c.strip() for c in value.split(",") if c.strip()]
            case "timezone":
                config.timezone = value
            case "window_days":
                config.window_days = _parse_number(key, value, int, config.window_days)
            case "stale_seconds":
                config.stale_seconds = _parse_number(key, value, float, config.stale_seconds)
            case "refresh_interval_seconds":
                config.refresh_interval_seconds = _parse_number(
                    key, value, float, config.refresh_interval_seconds
                )
            case "max_retries":
                config.max_retries = _parse_number(key, value, int, config.max_retries)
            case "retry_base_delay":
                config.retry_base_delay = _parse_number(key, value, float, config.retry_base_delay)
            case "retry_max_delay":
                config.retry_max_delay = _parse_number(key, value, float, config.retry_max_delay)
            case _:
                logger.debug(f"Unknown config key: {key}")

    return config
