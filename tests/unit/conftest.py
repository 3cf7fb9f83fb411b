"""Shared fixtures for unit tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeAlias

import pytest

from contextmemo.anchoring.serializer import capture
from contextmemo.config import AppConfig, ReconcileConfig, Settings
from contextmemo.document import LiveDocument
from contextmemo.models import Note
from contextmemo.store.page_identity import normalize_url

PAGE_URL = "https://example.com/articles/fox/"

FOX_PAGE = (
    "<html><head><title>Fox</title><style>p { color: red }</style></head>"
    "<body><p>The quick brown fox</p><p>jumps over the lazy dog.</p></body></html>"
)

DocumentFactory: TypeAlias = "Callable[..., LiveDocument]"
NoteFactory: TypeAlias = "Callable[..., Note]"


@pytest.fixture
def settings() -> Settings:
    """Settings with short timings and no .env file."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        reconcile=ReconcileConfig(
            initial_delays=[],
            poll_interval=0.01,
            max_polls=0,
            mutation_debounce=0.01,
        ),
        app=AppConfig(flash_seconds=0.01, navigation_timeout=0.05),
    )


@pytest.fixture
def make_document() -> DocumentFactory:
    """Build a LiveDocument from HTML (defaults to the fox page)."""

    def _make(html: str = FOX_PAGE, url: str = PAGE_URL) -> LiveDocument:
        return LiveDocument.from_html(html, url)

    return _make


@pytest.fixture
def make_note() -> NoteFactory:
    """Capture a note for the *occurrence*-th match of *text* in *document*.

    The document's selection is cleared again so the page is left as found.
    """

    def _make(
        document: LiveDocument,
        text: str,
        note_id: str = "n_test",
        *,
        occurrence: int = 0,
        content: str = "",
        created_at: int = 1_700_000_000_000,
    ) -> Note:
        text_range = document.select_text(text, occurrence)
        assert text_range is not None, f"{text!r} not in document"
        locator = capture(text_range, document.build_corpus())
        assert locator is not None
        document.clear_selection()
        return Note(
            id=note_id,
            url=document.url,
            normalized_url=normalize_url(document.url),
            content=content,
            snippet=text_range.to_string(),
            locator=locator,
            created_at=created_at,
        )

    return _make
