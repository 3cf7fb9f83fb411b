"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/contextmemo/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class AnchorConfig(BaseModel):
    """Anchor capture and relocation tuning."""

    prefix_window: int = Field(default=32, ge=0)
    suffix_match: int = Field(default=8, ge=1)


class ReconcileConfig(BaseModel):
    """Timing for the reconciliation loop triggers."""

    initial_delays: list[float] = Field(default_factory=lambda: [0.0, 0.3, 1.0, 2.5])
    poll_interval: float = Field(default=1.5, gt=0)
    max_polls: int = Field(default=20, ge=0)
    mutation_debounce: float = Field(default=0.25, ge=0)

    @model_validator(mode="after")
    def delays_not_negative(self) -> ReconcileConfig:
        if any(delay < 0 for delay in self.initial_delays):
            msg = "RECONCILE__INITIAL_DELAYS must not contain negative values"
            raise ValueError(msg)
        return self


class StoreConfig(BaseModel):
    """Where the JSON note store lives and how often it is checked for
    writes made by other processes."""

    path: Path = Path("data/notes.json")
    watch_interval: float = Field(default=1.0, gt=0)


class AppConfig(BaseModel):
    """Application runtime configuration."""

    log_dir: Path = Path("logs")
    navigation_timeout: float = 20.0
    flash_seconds: float = 1.5
    export_snippet_limit: int = 300


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Application settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``ANCHOR__PREFIX_WINDOW``, ``RECONCILE__POLL_INTERVAL``, ``STORE__PATH``.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    anchor: AnchorConfig = AnchorConfig()
    reconcile: ReconcileConfig = ReconcileConfig()
    store: StoreConfig = StoreConfig()
    app: AppConfig = AppConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
