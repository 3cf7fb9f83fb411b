"""Tests for URL normalisation and page grouping."""

from __future__ import annotations

import pytest

from contextmemo.models import Note
from contextmemo.store import MemoryNoteStore, normalize_url, notes_for_page, same_page


class TestNormalizeUrl:
    """Page identity from a URL."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://example.com/a/b", "https://example.com/a/b"),
            ("https://example.com/a/b/", "https://example.com/a/b"),
            ("https://example.com/a?q=1#top", "https://example.com/a"),
            ("HTTPS://Example.COM/Path", "https://example.com/Path"),
            ("https://example.com:443/a", "https://example.com/a"),
            ("http://example.com:80/", "http://example.com"),
            ("http://example.com:8080/x/", "http://example.com:8080/x"),
            ("https://example.com//", "https://example.com/"),
        ],
    )
    def test_normalisation(self, url: str, expected: str) -> None:
        assert normalize_url(url) == expected

    @pytest.mark.parametrize(
        "url", ["not a url", "", "http://[::1", "http://example.com:99999/"]
    )
    def test_unparsable_input_is_returned_unchanged(self, url: str) -> None:
        assert normalize_url(url) == url


class TestSamePage:
    """Matching notes to pages."""

    def test_uses_stored_normalized_url(self) -> None:
        note = Note(
            id="n1",
            url="https://example.com/a?x=1",
            normalized_url="https://example.com/a",
            created_at=0,
        )
        assert same_page(note, "https://example.com/a/#frag")
        assert not same_page(note, "https://example.com/b")

    def test_falls_back_to_url_for_old_records(self) -> None:
        note = Note(id="n1", url="https://example.com/a/", created_at=0)
        assert same_page(note, "https://example.com/a")

    @pytest.mark.asyncio
    async def test_notes_for_page(self) -> None:
        store = MemoryNoteStore(
            [
                Note(id="a", url="https://example.com/a", created_at=0),
                Note(id="b", url="https://example.com/b", created_at=0),
                Note(id="c", url="https://example.com/a/?ref=x", created_at=0),
            ]
        )
        notes = await notes_for_page(store, "https://example.com/a")
        assert [n.id for n in notes] == ["a", "c"]
