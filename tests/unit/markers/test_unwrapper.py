"""Tests for removing markers and restoring page text."""

from __future__ import annotations

from contextmemo.document import LiveDocument
from contextmemo.marker_constants import MarkerKind
from contextmemo.markers import find_markers, remove, render

URL = "https://example.com/page"


def _render_text(document: LiveDocument, text: str, note_id: str) -> None:
    text_range = document.select_text(text)
    assert text_range is not None
    assert render(document, text_range, note_id)


class TestRemove:
    """Unwrapping a note's marker elements."""

    def test_render_then_remove_restores_markup(self) -> None:
        document = LiveDocument.from_html(
            "<body><p>The quick <b>brown</b> fox jumps</p></body>", URL
        )
        original = document.to_html()
        _render_text(document, "quick brown fox", "n1")
        assert document.to_html() != original

        assert remove(document, "n1") == 3

        assert document.to_html() == original
        assert find_markers(document.root, "n1") == []

    def test_text_slots_merge_after_unwrap(self) -> None:
        document = LiveDocument.from_html(
            "<body><p>The quick brown fox</p></body>", URL
        )
        p = document.content_root()[0]
        _render_text(document, "quick", "n1")

        remove(document, "n1")

        assert p.text == "The quick brown fox"
        assert len(p) == 0

    def test_repeated_cycles_do_not_fragment_text(self) -> None:
        document = LiveDocument.from_html(
            "<body><p>The quick brown fox</p></body>", URL
        )
        original = document.to_html()

        for _ in range(3):
            _render_text(document, "brown", "n1")
            remove(document, "n1")

        assert document.to_html() == original

    def test_no_marker_returns_zero(self) -> None:
        document = LiveDocument.from_html("<body><p>Plain</p></body>", URL)
        original = document.to_html()

        assert remove(document, "missing") == 0
        assert document.to_html() == original

    def test_only_the_given_note_is_removed(self) -> None:
        document = LiveDocument.from_html(
            "<body><p>The quick brown fox</p></body>", URL
        )
        _render_text(document, "quick", "a")
        _render_text(document, "fox", "b")

        remove(document, "a")

        assert find_markers(document.root, "a") == []
        assert len(find_markers(document.root, "b", MarkerKind.HIGHLIGHT)) == 1
        assert len(find_markers(document.root, "b", MarkerKind.INDICATOR)) == 1
        assert document.content_root()[0].text_content() == "The quick brown fox"

    def test_indicator_tail_text_survives(self) -> None:
        document = LiveDocument.from_html(
            "<body><p>The quick brown fox</p></body>", URL
        )
        _render_text(document, "quick", "n1")
        # A page script moved text next to the indicator
        indicator = find_markers(document.root, "n1", MarkerKind.INDICATOR)[0]
        indicator.tail = "!"

        remove(document, "n1")

        assert document.content_root()[0].text_content() == "The quick! brown fox"
