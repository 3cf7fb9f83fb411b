"""Text locations and live ranges over an lxml element tree.

lxml keeps document text in two slots per element: ``.text`` (before the
first child) and ``.tail`` (after the closing tag, inside the parent).  A
``TextLocation`` names one such slot; a ``TextRange`` spans two
``(location, offset)`` boundaries in document order, like a DOM Range whose
containers are both text nodes.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from lxml import etree

Slot = Literal["text", "tail"]


class InvalidRangeError(ValueError):
    """Boundaries that cannot describe a range in the current tree."""


@dataclass(frozen=True)
class TextLocation:
    """One text slot of one element."""

    element: etree._Element
    slot: Slot

    def read(self) -> str:
        return getattr(self.element, self.slot) or ""

    def write(self, value: str) -> None:
        setattr(self.element, self.slot, value or None)

    @property
    def container(self) -> etree._Element | None:
        """The element whose content this text is rendered in."""
        if self.slot == "text":
            return self.element
        return self.element.getparent()


@dataclass(frozen=True)
class Boundary:
    location: TextLocation
    offset: int


def iter_text_slots(root: etree._Element) -> Iterator[TextLocation]:
    """Yield every text slot under *root* in document order.

    Comment and processing-instruction contents are not document text, but
    their tails are.  The root's own tail lies outside the tree and is never
    yielded.
    """
    if isinstance(root.tag, str):
        yield TextLocation(root, "text")
    for child in root:
        yield from iter_text_slots(child)
        yield TextLocation(child, "tail")


def slot_order(root: etree._Element) -> dict[TextLocation, int]:
    """Map each text slot under *root* to its document-order position."""
    return {location: i for i, location in enumerate(iter_text_slots(root))}


def tree_root(element: etree._Element) -> etree._Element:
    return element.getroottree().getroot()


@dataclass(frozen=True)
class TextRange:
    """A live range between two text boundaries of the same tree.

    Build with ``TextRange.create()``, which rejects boundaries the tree
    cannot hold.  Ranges are ephemeral: any mutation of the slots they name
    may invalidate them.
    """

    start: Boundary
    end: Boundary

    @classmethod
    def create(
        cls,
        start_location: TextLocation,
        start_offset: int,
        end_location: TextLocation,
        end_offset: int,
    ) -> TextRange:
        """Validate boundaries and build a range.

        Raises:
            InvalidRangeError: If an offset lies outside its slot, a slot is
                detached or belongs to another tree, or start follows end.
        """
        for location, offset in (
            (start_location, start_offset),
            (end_location, end_offset),
        ):
            if location.slot == "tail" and location.element.getparent() is None:
                msg = "tail slot of a detached element"
                raise InvalidRangeError(msg)
            if not 0 <= offset <= len(location.read()):
                msg = f"offset {offset} outside slot of length {len(location.read())}"
                raise InvalidRangeError(msg)

        root = tree_root(start_location.element)
        if tree_root(end_location.element) is not root:
            msg = "boundaries belong to different trees"
            raise InvalidRangeError(msg)

        order = slot_order(root)
        start_pos = order.get(start_location)
        end_pos = order.get(end_location)
        if start_pos is None or end_pos is None:
            msg = "boundary slot is not part of the tree"
            raise InvalidRangeError(msg)
        if (start_pos, start_offset) > (end_pos, end_offset):
            msg = "range start follows range end"
            raise InvalidRangeError(msg)

        return cls(
            Boundary(start_location, start_offset),
            Boundary(end_location, end_offset),
        )

    @property
    def collapsed(self) -> bool:
        return self.start == self.end

    def root(self) -> etree._Element:
        return tree_root(self.start.location.element)

    def slots(self) -> list[TextLocation]:
        """Text slots from the start slot to the end slot, inclusive."""
        result: list[TextLocation] = []
        inside = False
        for location in iter_text_slots(self.root()):
            if location == self.start.location:
                inside = True
            if inside:
                result.append(location)
            if location == self.end.location:
                break
        return result

    def to_string(self) -> str:
        """Raw text covered by the range, as a DOM Range would stringify it."""
        parts: list[str] = []
        for location in self.slots():
            text = location.read()
            lo = self.start.offset if location == self.start.location else 0
            hi = self.end.offset if location == self.end.location else len(text)
            parts.append(text[lo:hi])
        return "".join(parts)
