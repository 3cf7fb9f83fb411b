"""Tests for LiveDocument and HostContext."""

from __future__ import annotations

from unittest.mock import MagicMock

from contextmemo.document import HostContext, LiveDocument
from contextmemo.marker_constants import UI_ATTRIBUTE

URL = "https://example.com/"


class TestHostContext:
    """Validity flag."""

    def test_invalidate_is_permanent(self) -> None:
        context = HostContext()
        assert context.is_valid
        context.invalidate()
        context.invalidate()
        assert not context.is_valid


class TestParsing:
    """from_html / to_html / content_root."""

    def test_empty_input_gives_empty_body(self) -> None:
        document = LiveDocument.from_html("   ", URL)
        assert document.content_root().tag == "body"
        assert document.build_corpus().full_dense == ""

    def test_round_trip_keeps_text(self) -> None:
        document = LiveDocument.from_html("<body><p>Hi <b>there</b></p></body>", URL)
        assert "<p>Hi <b>there</b></p>" in document.to_html()


class TestSelection:
    """select_text / clear_selection."""

    def test_select_text(self) -> None:
        document = LiveDocument.from_html("<body><p>one two one</p></body>", URL)

        text_range = document.select_text("one", 1)

        assert text_range is not None
        assert document.selection is text_range
        assert text_range.start.offset == 8

    def test_select_missing_text_clears_selection(self) -> None:
        document = LiveDocument.from_html("<body><p>one</p></body>", URL)
        document.select_text("one")

        assert document.select_text("three") is None
        assert document.selection is None


class TestMutationListeners:
    """on_mutation / notify_mutation."""

    def test_notify_and_unsubscribe(self) -> None:
        document = LiveDocument.from_html("", URL)
        listener = MagicMock()
        unsubscribe = document.on_mutation(listener)

        document.notify_mutation()
        unsubscribe()
        document.notify_mutation()

        listener.assert_called_once_with()

    def test_failing_listener_does_not_block_others(self) -> None:
        document = LiveDocument.from_html("", URL)
        healthy = MagicMock()
        document.on_mutation(MagicMock(side_effect=RuntimeError("boom")))
        document.on_mutation(healthy)

        document.notify_mutation()

        healthy.assert_called_once_with()


class TestEditorUi:
    """The engine's own note editor."""

    def test_single_host_and_editor(self) -> None:
        document = LiveDocument.from_html("<body><p>text</p></body>", URL)

        document.show_editor("first")
        document.show_editor("second", "draft")

        assert len(document.root.xpath(f"//*[@{UI_ATTRIBUTE}='host']")) == 1
        (editor,) = document.root.xpath(f"//*[@{UI_ATTRIBUTE}='editor']")
        assert editor.find("blockquote").text == "second"
        assert editor.find("textarea").text == "draft"

    def test_hide_editor(self) -> None:
        document = LiveDocument.from_html("<body><p>text</p></body>", URL)
        document.show_editor("snippet")

        document.hide_editor()

        assert document.root.xpath(f"//*[@{UI_ATTRIBUTE}='editor']") == []
