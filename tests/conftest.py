"""Shared pytest fixtures for ContextMemo tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from contextmemo.config import get_settings

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None]:
    """Every test sees freshly loaded settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
