"""Find and classify marker elements in a live tree."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contextmemo.marker_constants import KIND_ATTRIBUTE, NOTE_ID_ATTRIBUTE, MarkerKind

if TYPE_CHECKING:
    from lxml import etree


def classify(element: etree._Element) -> MarkerKind | None:
    """The marker kind of *element*, or None for ordinary page elements."""
    if not isinstance(element.tag, str) or element.get(NOTE_ID_ATTRIBUTE) is None:
        return None
    try:
        return MarkerKind(element.get(KIND_ATTRIBUTE, ""))
    except ValueError:
        return None


def is_highlight(element: etree._Element) -> bool:
    return classify(element) is MarkerKind.HIGHLIGHT


def find_markers(
    root: etree._Element,
    note_id: str,
    kind: MarkerKind | None = None,
) -> list[etree._Element]:
    """Marker elements for *note_id* in document order, optionally of one kind."""
    if kind is None:
        return root.xpath(f".//*[@{NOTE_ID_ATTRIBUTE}=$nid]", nid=note_id)
    return root.xpath(
        f".//*[@{NOTE_ID_ATTRIBUTE}=$nid and @{KIND_ATTRIBUTE}=$kind]",
        nid=note_id,
        kind=kind.value,
    )


def live_marker_ids(root: etree._Element) -> set[str]:
    """Ids of every note that currently has a marker element in the tree."""
    ids: set[str] = set()
    for element in root.xpath(f".//*[@{NOTE_ID_ATTRIBUTE}]"):
        match classify(element):
            case MarkerKind.HIGHLIGHT | MarkerKind.INDICATOR:
                ids.add(element.get(NOTE_ID_ATTRIBUTE))
            case None:
                pass
    return ids
