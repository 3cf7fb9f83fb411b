"""Paint highlight markers over live ranges.

A marker for one note is a ``<span>`` per wrapped text slot plus a single
empty indicator ``<span>`` appended to the last of them.  The indicator has
no text, so painting never changes the corpus.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lxml import html as lxml_html
from lxml.html import HtmlElement

from contextmemo.errors import RenderConflict
from contextmemo.marker_constants import (
    HIGHLIGHT_STYLE,
    INDICATOR_STYLE,
    KIND_ATTRIBUTE,
    NOTE_ID_ATTRIBUTE,
    MarkerKind,
)
from contextmemo.markers.lookup import find_markers, is_highlight

if TYPE_CHECKING:
    from contextmemo.anchoring.corpus import TextSegment
    from contextmemo.anchoring.text_range import TextLocation, TextRange
    from contextmemo.document import LiveDocument

logger = logging.getLogger(__name__)


def make_marker_element(note_id: str, kind: MarkerKind) -> HtmlElement:
    element = lxml_html.Element("span")
    element.set(NOTE_ID_ATTRIBUTE, note_id)
    element.set(KIND_ATTRIBUTE, kind.value)
    match kind:
        case MarkerKind.HIGHLIGHT:
            element.set("style", HIGHLIGHT_STYLE)
        case MarkerKind.INDICATOR:
            element.set("style", INDICATOR_STYLE)
            element.set("role", "button")
            element.set("title", "Open note")
    return element


def _wrap_slice(
    segment: TextSegment, lo: int, hi: int, note_id: str
) -> HtmlElement:
    """Replace ``raw[lo:hi]`` of one slot with a highlight span.

    Text before the slice stays in the slot; text after it becomes the
    span's tail, so the visible text is unchanged.
    """
    location: TextLocation = segment.location
    raw = location.read()
    if raw != segment.raw:
        msg = "text slot changed since the corpus was built"
        raise RenderConflict(msg, note_id)

    span = make_marker_element(note_id, MarkerKind.HIGHLIGHT)
    span.text = raw[lo:hi]
    span.tail = raw[hi:] or None
    element = location.element

    if location.slot == "text":
        element.text = raw[:lo] or None
        element.insert(0, span)
        return span

    parent = element.getparent()
    if parent is None:
        msg = "element was detached from the page"
        raise RenderConflict(msg, note_id)
    element.tail = raw[:lo] or None
    parent.insert(parent.index(element) + 1, span)
    return span


def render(document: LiveDocument, text_range: TextRange, note_id: str) -> bool:
    """Paint the marker for *note_id* over *text_range*.

    Idempotent: returns True without touching the tree when the note already
    has a marker.  Slots already inside another note's highlight are skipped,
    so overlapping selections never nest markers.

    Returns:
        True if the note has a marker afterwards.
    """
    if find_markers(document.root, note_id):
        return True

    corpus = document.build_corpus()
    wrapped: list[HtmlElement] = []

    for segment in corpus.segments_in(text_range):
        lo, hi = corpus.local_span(segment, text_range)
        if hi <= lo:
            continue
        container = segment.location.container
        if container is not None and is_highlight(container):
            logger.debug(
                "Skipping slot already inside marker %s",
                container.get(NOTE_ID_ATTRIBUTE),
            )
            continue
        try:
            wrapped.append(_wrap_slice(segment, lo, hi, note_id))
        except RenderConflict as exc:
            logger.warning("Could not wrap part of note %s: %s", note_id, exc)

    document.clear_selection()

    if not wrapped:
        logger.debug("Nothing to wrap for note %s", note_id)
        return False

    wrapped[-1].append(make_marker_element(note_id, MarkerKind.INDICATOR))
    logger.debug("Rendered note %s over %d slot(s)", note_id, len(wrapped))
    return True
