"""The live page the engine annotates.

A ``LiveDocument`` owns an ``lxml.html`` tree, the user's current selection,
mutation listeners, and the ``HostContext`` that says whether the hosting
environment is still alive.  Host code (a headless browser bridge, a page
renderer, the CLI) mutates the tree and calls ``notify_mutation()``; the
engine itself only wraps and unwraps marker elements.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lxml import html as lxml_html
from lxml.html import HtmlElement

from contextmemo.anchoring.corpus import Corpus, build_corpus
from contextmemo.marker_constants import UI_ATTRIBUTE

if TYPE_CHECKING:
    from collections.abc import Callable

    from contextmemo.anchoring.text_range import TextRange

logger = logging.getLogger(__name__)

_EMPTY_DOCUMENT = "<html><body></body></html>"


class HostContext:
    """Whether the hosting environment is still usable.

    Once invalidated (extension reloaded, page torn down) it stays invalid;
    stores and timers check it and quietly stop.
    """

    def __init__(self) -> None:
        self._valid = True

    @property
    def is_valid(self) -> bool:
        return self._valid

    def invalidate(self) -> None:
        if self._valid:
            logger.info("Host context invalidated")
        self._valid = False


class LiveDocument:
    """A mutable page plus selection and change notifications."""

    def __init__(
        self,
        root: HtmlElement,
        url: str,
        context: HostContext | None = None,
    ) -> None:
        self.root = root
        self.url = url
        self.context = context or HostContext()
        self.selection: TextRange | None = None
        self._mutation_listeners: list[Callable[[], None]] = []

    @classmethod
    def from_html(
        cls, html: str, url: str, context: HostContext | None = None
    ) -> LiveDocument:
        """Parse a full HTML page."""
        if not html or not html.strip():
            html = _EMPTY_DOCUMENT
        return cls(lxml_html.document_fromstring(html), url, context)

    def to_html(self) -> str:
        return lxml_html.tostring(self.root, encoding="unicode")

    def content_root(self) -> HtmlElement:
        """``<body>`` when there is one, otherwise the root element."""
        body = self.root.find(".//body")
        return body if body is not None else self.root

    def build_corpus(self) -> Corpus:
        return build_corpus(self.content_root())

    # --- selection -------------------------------------------------------------

    def select(self, text_range: TextRange | None) -> None:
        self.selection = text_range

    def clear_selection(self) -> None:
        self.selection = None

    def select_text(self, text: str, occurrence: int = 0) -> TextRange | None:
        """Select the *occurrence*-th match of *text* (whitespace/case tolerant)."""
        text_range = self.build_corpus().find_text(text, occurrence)
        self.selection = text_range
        return text_range

    # --- mutation notifications ---------------------------------------------------

    def on_mutation(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register *callback* for structural/content changes.

        Returns:
            A function that unregisters the callback.
        """
        self._mutation_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._mutation_listeners:
                self._mutation_listeners.remove(callback)

        return unsubscribe

    def notify_mutation(self) -> None:
        """Tell listeners the tree changed outside the engine."""
        for callback in list(self._mutation_listeners):
            try:
                callback()
            except Exception:
                logger.exception("Mutation listener failed")

    # --- engine UI ------------------------------------------------------------------

    def ui_host(self) -> HtmlElement:
        """The engine's own UI container, created on first use."""
        found = self.root.xpath(f".//*[@{UI_ATTRIBUTE}='host']")
        if found:
            return found[0]
        host = lxml_html.Element("div")
        host.set(UI_ATTRIBUTE, "host")
        host.set("style", "all:initial")
        self.content_root().append(host)
        return host

    def show_editor(self, snippet: str, content: str = "") -> HtmlElement:
        """Render the note editor for *snippet*, replacing any open editor."""
        self.hide_editor()
        host = self.ui_host()
        editor = lxml_html.Element("div")
        editor.set(UI_ATTRIBUTE, "editor")
        quote = lxml_html.Element("blockquote")
        quote.text = snippet
        textarea = lxml_html.Element("textarea")
        textarea.text = content or None
        editor.append(quote)
        editor.append(textarea)
        host.append(editor)
        return editor

    def hide_editor(self) -> None:
        host = self.ui_host()
        for child in list(host):
            host.remove(child)
