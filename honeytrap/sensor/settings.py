"""Service configuration loaded from HONEY_* environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HoneySettings(BaseSettings):
    """Honeytrap sensor settings.

    All fields are read from environment variables with the ``HONEY_`` prefix.
    For example, ``HONEY_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    The event store capacity is deliberately **not** configurable here; it is
    the fixed ``MAX_CAPACITY`` constant in ``store.memory``.
    """

    model_config = SettingsConfigDict(
        env_prefix="HONEY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    hit_log_level: str = "INFO"
    """Level of the per-hit log lines; set to WARNING to silence them."""

    debug: bool = False
    """Include exception messages in 500 responses."""

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 5000
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])

    # -- Capture ---------------------------------------------------------------
    intercept_probability: float = Field(default=0.8, ge=0.0, le=1.0)
    """Chance that a hit is recorded as intercepted ("blocked").

    Placeholder decision policy, not a security verdict.
    """

    # -- Enrichment ------------------------------------------------------------
    geo_enabled: bool = True
    geo_base_url: str = "http://ip-api.com/json"
    geo_timeout: float = Field(default=2.0, gt=0)
    """Overall deadline in seconds for a single geolocation lookup."""

    # -- Live delivery ---------------------------------------------------------
    subscriber_queue_size: int = Field(default=100, ge=1)
    """Per-subscriber buffer.  On overflow the oldest queued event is dropped."""

    bootstrap_size: int = Field(default=10, ge=1, le=10)
    websocket_enabled: bool = True

    # -- Dashboard settings (exposed read-only) --------------------------------
    auto_block: bool = True
    threat_threshold: int = 10
    retention_days: int = 7
    """Exposed to the dashboard but never enforced against the event store.

    Only count-based eviction exists; there is no time-based eviction.
    """


def get_settings() -> HoneySettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> HoneySettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return HoneySettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
