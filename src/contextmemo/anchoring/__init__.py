"""Text anchoring: corpus construction, capture and relocation."""

from contextmemo.anchoring.corpus import Corpus, TextSegment, build_corpus, densify
from contextmemo.anchoring.relocator import locator_for_note, relocate
from contextmemo.anchoring.serializer import capture
from contextmemo.anchoring.text_range import (
    Boundary,
    InvalidRangeError,
    TextLocation,
    TextRange,
)

__all__ = [
    "Boundary",
    "Corpus",
    "InvalidRangeError",
    "TextLocation",
    "TextRange",
    "TextSegment",
    "build_corpus",
    "capture",
    "densify",
    "locator_for_note",
    "relocate",
]
