"""Remove highlight markers and give the page its text back."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contextmemo.errors import RenderConflict
from contextmemo.marker_constants import MarkerKind
from contextmemo.markers.lookup import find_markers

if TYPE_CHECKING:
    from lxml.html import HtmlElement

    from contextmemo.document import LiveDocument

logger = logging.getLogger(__name__)


def _unwrap(element: HtmlElement, note_id: str) -> None:
    """Splice a highlight's content back into its parent.

    ``drop_tag`` appends the element's text and tail to the neighbouring
    text slot, so the text around the marker ends up in one slot again
    instead of accumulating fragments across wrap/unwrap cycles.
    """
    if element.getparent() is None:
        msg = "marker element was detached from the page"
        raise RenderConflict(msg, note_id)
    element.drop_tag()


def remove(document: LiveDocument, note_id: str) -> int:
    """Remove every marker element of *note_id*.

    Indicators go first (they are leaves inside a highlight).  A marker
    element the page has already moved or detached is logged and skipped.

    Returns:
        Number of highlight elements unwrapped; 0 when there was no marker.
    """
    root = document.root

    for indicator in find_markers(root, note_id, MarkerKind.INDICATOR):
        if indicator.getparent() is None:
            continue
        try:
            indicator.drop_tree()
        except (AttributeError, ValueError) as exc:
            logger.warning("Could not remove indicator for %s: %s", note_id, exc)

    removed = 0
    for highlight in find_markers(root, note_id, MarkerKind.HIGHLIGHT):
        try:
            _unwrap(highlight, note_id)
            removed += 1
        except (RenderConflict, AttributeError, ValueError) as exc:
            logger.warning("Could not unwrap marker for %s: %s", note_id, exc)

    if removed:
        logger.debug("Removed %d marker element(s) for note %s", removed, note_id)
    return removed
