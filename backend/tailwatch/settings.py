"""settings.py
~~~~~~~~~~~~~
Environment-driven configuration.

Values are read once (normally at app start-up, after ``load_dotenv()``)
and handed to the components that need them. Nothing here is a global the
core reaches for on its own.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Final

LOG = logging.getLogger("settings")

DEFAULT_OPENSKY_BASE_URL: Final[str] = "https://opensky-network.org/api"
DEFAULT_ADSBDB_BASE_URL: Final[str] = "https://api.adsbdb.com/v0"
DEFAULT_OPENAI_BASE_URL: Final[str] = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL: Final[str] = "gpt-3.5-turbo"


def _env_int(name: str, default: int) -> int:
    """Read a positive integer, falling back to *default* on garbage."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        LOG.warning("[settings] %s=%r is not an integer, using %d", name, raw, default)
        return default
    if value <= 0:
        LOG.warning("[settings] %s=%d must be positive, using %d", name, value, default)
        return default
    return value


def _env_str(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


@dataclass(frozen=True)
class Settings:
    """Tunables for the polling / rate-limit / cache layer and its collaborators."""

    max_requests_per_day: int = 400
    min_request_interval: int = 10  # seconds
    poll_interval: int = 60  # seconds
    cache_duration: int = 300  # seconds
    max_states_per_aircraft: int = 30
    cleanup_interval: int = 3_600  # seconds
    http_timeout: int = 10  # seconds

    opensky_base_url: str = DEFAULT_OPENSKY_BASE_URL
    opensky_username: str | None = None
    opensky_password: str | None = None
    adsbdb_base_url: str = DEFAULT_ADSBDB_BASE_URL
    openai_api_key: str | None = None
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    openai_model: str = DEFAULT_OPENAI_MODEL

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            max_requests_per_day=_env_int("MAX_REQUESTS_PER_DAY", 400),
            min_request_interval=_env_int("MIN_REQUEST_INTERVAL", 10),
            poll_interval=_env_int("POLL_INTERVAL", 60),
            cache_duration=_env_int("CACHE_DURATION", 300),
            max_states_per_aircraft=_env_int("MAX_STATES_PER_AIRCRAFT", 30),
            cleanup_interval=_env_int("CLEANUP_INTERVAL", 3_600),
            http_timeout=_env_int("HTTP_TIMEOUT", 10),
            opensky_base_url=_env_str("OPENSKY_BASE_URL", DEFAULT_OPENSKY_BASE_URL).rstrip("/"),
            opensky_username=_env_str("OPENSKY_USERNAME"),
            opensky_password=_env_str("OPENSKY_PASSWORD"),
            adsbdb_base_url=_env_str("ADSBDB_BASE_URL", DEFAULT_ADSBDB_BASE_URL).rstrip("/"),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_base_url=_env_str("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL).rstrip("/"),
            openai_model=_env_str("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
        )

    @property
    def opensky_auth(self) -> tuple[str, str] | None:
        if self.opensky_username and self.opensky_password:
            return (self.opensky_username, self.opensky_password)
        return None


__all__ = ["Settings"]
