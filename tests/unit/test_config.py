"""Tests for pydantic-settings configuration."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from contextmemo.config import ReconcileConfig, Settings, StoreConfig, get_settings


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith(("ANCHOR__", "RECONCILE__", "STORE__", "APP__")):
            monkeypatch.delenv(key, raising=False)


class TestDefaults:
    """Default values with no environment."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _clear_env(monkeypatch)
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.anchor.prefix_window == 32
        assert s.anchor.suffix_match == 8
        assert s.reconcile.initial_delays == [0.0, 0.3, 1.0, 2.5]
        assert s.reconcile.max_polls == 20
        assert s.store.path == Path("data/notes.json")
        assert s.store.watch_interval == 1.0
        assert s.app.navigation_timeout == 20.0


class TestEnvironmentOverrides:
    """Nested ``SECTION__FIELD`` variables."""

    def test_anchor_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _clear_env(monkeypatch)
        monkeypatch.setenv("ANCHOR__PREFIX_WINDOW", "16")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.anchor.prefix_window == 16

    def test_store_path_override(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        _clear_env(monkeypatch)
        monkeypatch.setenv("STORE__PATH", str(tmp_path / "n.json"))
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.store.path == tmp_path / "n.json"


class TestValidation:
    """Rejected values."""

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not contain negative"):
            ReconcileConfig(initial_delays=[0.1, -1.0])

    def test_zero_watch_interval_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StoreConfig(watch_interval=0)

    def test_zero_poll_interval_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReconcileConfig(poll_interval=0)


class TestGetSettings:
    """Cached singleton access."""

    def test_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_cache_clear(self) -> None:
        first = get_settings()
        get_settings.cache_clear()
        assert get_settings() is not first
