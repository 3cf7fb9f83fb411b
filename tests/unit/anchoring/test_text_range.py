"""Tests for text slots and live ranges over lxml trees."""

from __future__ import annotations

import pytest
from lxml import html as lxml_html

from contextmemo.anchoring.text_range import (
    InvalidRangeError,
    TextLocation,
    TextRange,
    iter_text_slots,
)


def _fragment(markup: str) -> lxml_html.HtmlElement:
    return lxml_html.fragment_fromstring(markup)


class TestIterTextSlots:
    """Document-order enumeration of text slots."""

    def test_text_then_children_then_tails(self) -> None:
        p = _fragment("<p>a<b>b</b>c<i>d</i>e</p>")
        b, i = p[0], p[1]
        assert list(iter_text_slots(p)) == [
            TextLocation(p, "text"),
            TextLocation(b, "text"),
            TextLocation(b, "tail"),
            TextLocation(i, "text"),
            TextLocation(i, "tail"),
        ]

    def test_comment_text_is_skipped_but_tail_kept(self) -> None:
        p = _fragment("<p>a<!-- hidden -->b</p>")
        comment = p[0]
        slots = list(iter_text_slots(p))
        assert TextLocation(comment, "text") not in slots
        assert TextLocation(comment, "tail") in slots

    def test_root_tail_is_not_yielded(self) -> None:
        div = _fragment("<div><p>x</p>after</div>")
        p = div[0]
        assert TextLocation(p, "tail") not in list(iter_text_slots(p))


class TestTextRangeCreate:
    """Validation in TextRange.create()."""

    def test_valid_range_across_slots(self) -> None:
        p = _fragment("<p>The quick <b>brown</b> fox</p>")
        b = p[0]
        text_range = TextRange.create(
            TextLocation(p, "text"), 4, TextLocation(b, "tail"), 4
        )
        assert text_range.to_string() == "quick brown fox"
        assert not text_range.collapsed

    def test_collapsed_range(self) -> None:
        p = _fragment("<p>abc</p>")
        location = TextLocation(p, "text")
        assert TextRange.create(location, 1, location, 1).collapsed

    def test_offset_past_slot_end_raises(self) -> None:
        p = _fragment("<p>abc</p>")
        location = TextLocation(p, "text")
        with pytest.raises(InvalidRangeError, match="outside slot"):
            TextRange.create(location, 0, location, 4)

    def test_start_after_end_raises(self) -> None:
        p = _fragment("<p>abc<b>def</b></p>")
        with pytest.raises(InvalidRangeError, match="follows"):
            TextRange.create(
                TextLocation(p[0], "text"), 1, TextLocation(p, "text"), 1
            )

    def test_different_trees_raise(self) -> None:
        a = _fragment("<p>abc</p>")
        b = _fragment("<p>abc</p>")
        with pytest.raises(InvalidRangeError, match="different trees"):
            TextRange.create(TextLocation(a, "text"), 0, TextLocation(b, "text"), 1)

    def test_tail_of_detached_element_raises(self) -> None:
        p = lxml_html.Element("p")
        p.text = "abc"
        p.tail = "loose"
        location = TextLocation(p, "tail")
        with pytest.raises(InvalidRangeError, match="detached"):
            TextRange.create(location, 0, location, 1)


class TestTextLocation:
    """Reading and writing one slot."""

    def test_read_missing_text_is_empty(self) -> None:
        assert TextLocation(_fragment("<p></p>"), "text").read() == ""

    def test_write_empty_clears_slot(self) -> None:
        p = _fragment("<p>abc</p>")
        TextLocation(p, "text").write("")
        assert p.text is None

    def test_container_of_tail_is_parent(self) -> None:
        p = _fragment("<p><b>x</b>y</p>")
        assert TextLocation(p[0], "tail").container is p
        assert TextLocation(p[0], "text").container is p[0]
