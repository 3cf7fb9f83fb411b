"""Dense text index over the rendered text of a live tree.

The corpus maps "dense" offsets (whitespace removed, case folded) to the
text slots they came from.  Anchors are expressed in dense offsets so they
survive reflow, re-indentation and case changes in markup.

A corpus describes the tree at the instant it was built.  Build a new one
after any ``await``: the page may have changed in between.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lxml import etree

from contextmemo.anchoring.text_range import (
    Boundary,
    InvalidRangeError,
    TextLocation,
    TextRange,
    slot_order,
)
from contextmemo.marker_constants import UI_ATTRIBUTE

logger = logging.getLogger(__name__)

# Elements whose content is never rendered as page text
EXCLUDED_TAGS = frozenset(
    (
        "script",
        "style",
        "noscript",
        "template",
        "head",
        "title",
        "iframe",
        "object",
        "embed",
        "svg",
        "canvas",
    )
)


# ---------------------------------------------------------------------------
# Character classification.  Raw -> dense and dense -> raw must agree, so
# both directions go through these helpers and nothing else.
# ---------------------------------------------------------------------------
def is_whitespace(ch: str) -> bool:
    return ch.isspace()


def fold(ch: str) -> str:
    """Case-fold one character, keeping the 1:1 raw/dense correspondence."""
    lowered = ch.lower()
    return lowered if len(lowered) == 1 else ch


def densify(raw: str) -> str:
    """Strip whitespace and fold case."""
    return "".join(fold(ch) for ch in raw if not is_whitespace(ch))


def dense_length(raw: str, raw_offset: int | None = None) -> int:
    """Count dense characters in ``raw[:raw_offset]``."""
    prefix = raw if raw_offset is None else raw[:raw_offset]
    return sum(1 for ch in prefix if not is_whitespace(ch))


def raw_start_offset(raw: str, dense_count: int) -> int:
    """Raw index of the dense character number *dense_count* (0-based).

    Returns ``len(raw)`` when the slot has fewer dense characters.
    """
    seen = 0
    for i, ch in enumerate(raw):
        if is_whitespace(ch):
            continue
        if seen == dense_count:
            return i
        seen += 1
    return len(raw)


def raw_end_offset(raw: str, dense_count: int) -> int:
    """Raw index just past the first *dense_count* dense characters."""
    if dense_count <= 0:
        return 0
    seen = 0
    for i, ch in enumerate(raw):
        if is_whitespace(ch):
            continue
        seen += 1
        if seen == dense_count:
            return i + 1
    return len(raw)


@dataclass(frozen=True)
class TextSegment:
    """One text slot's contribution to the corpus."""

    location: TextLocation
    dense_start: int
    dense_end: int
    raw: str

    @property
    def dense_size(self) -> int:
        return self.dense_end - self.dense_start


@dataclass
class Corpus:
    """Ordered text segments plus their concatenated dense text."""

    segments: list[TextSegment] = field(default_factory=list)
    full_dense: str = ""

    def __len__(self) -> int:
        return len(self.full_dense)

    # --- range -> segments -------------------------------------------------

    def segments_in(self, text_range: TextRange) -> list[TextSegment]:
        """Segments whose slots lie between the range boundaries.

        Positions come from the full slot order of the range's tree, so
        boundaries inside excluded content still bracket the right segments.
        """
        order = slot_order(text_range.root())
        start_pos = order.get(text_range.start.location)
        end_pos = order.get(text_range.end.location)
        if start_pos is None or end_pos is None:
            return []
        result: list[TextSegment] = []
        for segment in self.segments:
            pos = order.get(segment.location)
            if pos is not None and start_pos <= pos <= end_pos:
                result.append(segment)
        return result

    @staticmethod
    def local_span(segment: TextSegment, text_range: TextRange) -> tuple[int, int]:
        """Raw ``(lo, hi)`` of the range within one segment, clamped."""
        lo = 0
        hi = len(segment.raw)
        if segment.location == text_range.start.location:
            lo = min(text_range.start.offset, hi)
        if segment.location == text_range.end.location:
            hi = min(text_range.end.offset, hi)
        return lo, max(lo, hi)

    # --- dense offsets -> boundaries -----------------------------------------

    def start_boundary(self, dense_offset: int) -> Boundary | None:
        for segment in self.segments:
            if segment.dense_start <= dense_offset < segment.dense_end:
                local = dense_offset - segment.dense_start
                return Boundary(segment.location, raw_start_offset(segment.raw, local))
        return None

    def end_boundary(self, dense_offset: int) -> Boundary | None:
        for segment in self.segments:
            if segment.dense_start < dense_offset <= segment.dense_end:
                local = dense_offset - segment.dense_start
                return Boundary(segment.location, raw_end_offset(segment.raw, local))
        return None

    def range_for(self, dense_start: int, dense_end: int) -> TextRange | None:
        """Live range covering ``full_dense[dense_start:dense_end]``.

        Returns None when either offset has no segment or the tree no longer
        accepts the boundaries.
        """
        if dense_end <= dense_start:
            return None
        start = self.start_boundary(dense_start)
        end = self.end_boundary(dense_end)
        if start is None or end is None:
            return None
        try:
            return TextRange.create(
                start.location, start.offset, end.location, end.offset
            )
        except InvalidRangeError as exc:
            logger.debug(
                "Range %d:%d no longer fits the tree: %s", dense_start, dense_end, exc
            )
            return None

    # --- search ----------------------------------------------------------------

    def find_all(self, dense_text: str) -> list[int]:
        """Start offsets of every occurrence, overlapping ones included."""
        if not dense_text:
            return []
        hits: list[int] = []
        pos = self.full_dense.find(dense_text)
        while pos != -1:
            hits.append(pos)
            pos = self.full_dense.find(dense_text, pos + 1)
        return hits

    def find_text(self, text: str, occurrence: int = 0) -> TextRange | None:
        """Range of the *occurrence*-th match of *text*, ignoring whitespace/case."""
        dense = densify(text)
        hits = self.find_all(dense)
        if not 0 <= occurrence < len(hits):
            return None
        start = hits[occurrence]
        return self.range_for(start, start + len(dense))


@dataclass
class _BuildState:
    segments: list[TextSegment] = field(default_factory=list)
    dense_parts: list[str] = field(default_factory=list)
    offset: int = 0

    def add(self, location: TextLocation) -> None:
        raw = location.read()
        if not raw:
            return
        dense = densify(raw)
        self.segments.append(
            TextSegment(
                location=location,
                dense_start=self.offset,
                dense_end=self.offset + len(dense),
                raw=raw,
            )
        )
        self.dense_parts.append(dense)
        self.offset += len(dense)


def is_excluded(element: etree._Element) -> bool:
    """True when the element's own text and descendants are not page text."""
    if not isinstance(element.tag, str):
        return True
    if element.get(UI_ATTRIBUTE) is not None:
        return True
    return etree.QName(element).localname.lower() in EXCLUDED_TAGS


def _walk(element: etree._Element, state: _BuildState) -> None:
    state.add(TextLocation(element, "text"))
    for child in element:
        if not is_excluded(child):
            _walk(child, state)
        # A tail is rendered in the parent, whatever the child is
        state.add(TextLocation(child, "tail"))


def build_corpus(root: etree._Element) -> Corpus:
    """Index the rendered text under *root* in document order."""
    state = _BuildState()
    if not is_excluded(root):
        _walk(root, state)
    return Corpus(segments=state.segments, full_dense="".join(state.dense_parts))
