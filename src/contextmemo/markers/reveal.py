"""Scroll-and-flash support for jumping to a note's marker."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contextmemo.marker_constants import FLASH_ATTRIBUTE, MarkerKind
from contextmemo.markers.lookup import find_markers

if TYPE_CHECKING:
    from lxml import etree

    from contextmemo.document import LiveDocument


def flash_marker(document: LiveDocument, note_id: str) -> etree._Element | None:
    """Flag the note's first highlight as the scroll target and flash it.

    Returns:
        The flagged element, or None if the note has no marker.
    """
    highlights = find_markers(document.root, note_id, MarkerKind.HIGHLIGHT)
    if not highlights:
        return None
    for element in highlights:
        element.set(FLASH_ATTRIBUTE, "1")
    return highlights[0]


def clear_flash(document: LiveDocument, note_id: str) -> None:
    for element in find_markers(document.root, note_id, MarkerKind.HIGHLIGHT):
        element.attrib.pop(FLASH_ATTRIBUTE, None)
