"""Tests for note search and export rendering."""

from __future__ import annotations

import json
from datetime import UTC, date, datetime

import pytest

from contextmemo.export import (
    clean_and_truncate,
    export_filename,
    export_json,
    export_markdown,
    filter_notes,
    render_export,
)
from contextmemo.models import Note

NOTES = [
    Note(
        id="a",
        url="https://example.com/a",
        content="About foxes",
        snippet="The quick brown fox",
        created_at=0,
    ),
    Note(
        id="b",
        url="https://example.com/b?page=2",
        content="",
        snippet="A lazy dog",
        created_at=86_400_000,
    ),
    Note(
        id="c",
        url="https://example.com/a/",
        content="Second note on a",
        snippet="jumps over",
        created_at=1_000,
    ),
]


class TestFilterNotes:
    """Popup-style search."""

    def test_empty_query_returns_all(self) -> None:
        assert [n.id for n in filter_notes(NOTES, "  ")] == ["a", "b", "c"]

    def test_query_matches_content_and_snippet(self) -> None:
        assert [n.id for n in filter_notes(NOTES, "FOX")] == ["a"]
        assert [n.id for n in filter_notes(NOTES, "lazy")] == ["b"]

    def test_query_matches_url_across_all_pages(self) -> None:
        assert [n.id for n in filter_notes(NOTES, "page=2")] == ["b"]

    def test_page_filter(self) -> None:
        notes = filter_notes(NOTES, page_url="https://example.com/a?utm=1")
        assert [n.id for n in notes] == ["a", "c"]

    def test_page_filter_ignores_url_in_query(self) -> None:
        notes = filter_notes(NOTES, "example.com", page_url="https://example.com/a")
        assert notes == []


class TestCleanAndTruncate:
    """Snippet tidying for display."""

    def test_collapses_whitespace(self) -> None:
        assert clean_and_truncate("  a\n\n b\tc ") == "a b c"

    def test_truncates_with_marker(self) -> None:
        assert clean_and_truncate("abcdefghij", 4) == "abcd ..."

    def test_empty(self) -> None:
        assert clean_and_truncate("") == ""


class TestExports:
    """JSON and Markdown output."""

    def test_json_uses_record_shape(self) -> None:
        data = json.loads(export_json(NOTES[:1]))
        assert data == [
            {
                "id": "a",
                "url": "https://example.com/a",
                "normalizedUrl": "",
                "content": "About foxes",
                "snippet": "The quick brown fox",
                "createdAt": 0,
            }
        ]

    def test_markdown_groups_by_url(self) -> None:
        text = export_markdown(
            NOTES, generated_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        )

        assert text.startswith(
            "# ContextMemo Export\n\n_Generated: 2024-01-02 03:04:05 UTC_"
        )
        assert text.count("## [") == 3
        assert "## [https://example.com/a](https://example.com/a)" in text
        assert "> The quick brown fox" in text
        assert "**Note:** About foxes" in text
        assert "*(No comment added)*" in text
        assert "_1970-01-02 00:00:00 UTC_" in text

    def test_markdown_truncates_snippets(self) -> None:
        note = NOTES[0].model_copy(update={"snippet": "word " * 100})
        text = export_markdown([note], snippet_limit=9)
        assert "> word word ..." in text

    def test_render_export_dispatch(self) -> None:
        assert render_export(NOTES, "json").startswith("[")
        assert render_export(NOTES, "md").startswith("# ContextMemo Export")

    def test_render_export_empty_raises(self) -> None:
        with pytest.raises(ValueError, match="No notes to export"):
            render_export([], "md")

    def test_export_filename(self) -> None:
        assert export_filename("md", date(2024, 5, 1)) == (
            "contextmemo_export_2024-05-01.md"
        )
        assert export_filename("json", date(2024, 5, 1)).endswith(".json")
