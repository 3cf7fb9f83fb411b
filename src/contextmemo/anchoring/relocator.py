"""Find a stored ``Locator`` again in a (possibly changed) page.

Relocation runs in tiers, each covering a different way pages drift:

1. Stored offsets still select the stored dense text: nothing moved.
2. Content search: text was inserted or removed earlier in the page, so
   offsets shifted.  Repeated occurrences are told apart by the dense text
   preceding them.
3. Several occurrences and no usable context: first occurrence, best effort.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contextmemo.anchoring.corpus import densify
from contextmemo.models import Locator

if TYPE_CHECKING:
    from contextmemo.anchoring.corpus import Corpus
    from contextmemo.anchoring.text_range import TextRange
    from contextmemo.models import Note

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX_MATCH = 8


def _common_suffix_length(a: str, b: str) -> int:
    n = 0
    for x, y in zip(reversed(a), reversed(b), strict=False):
        if x != y:
            break
        n += 1
    return n


def context_matches(preceding: str, prefix: str, suffix_match: int) -> bool:
    """Tolerant comparison of the text before an occurrence with stored context.

    Accepts when either non-empty string contains the other, or when their
    last *suffix_match* characters agree.
    """
    if not preceding or not prefix:
        return False
    if preceding in prefix or prefix in preceding:
        return True
    return preceding[-suffix_match:] == prefix[-suffix_match:]


def _pick_occurrence(
    hits: list[int], locator: Locator, corpus: Corpus, suffix_match: int
) -> int:
    prefix = locator.prefix_context
    if len(hits) == 1 or not prefix:
        return hits[0]

    preceding = {
        hit: corpus.full_dense[max(0, hit - len(prefix)) : hit] for hit in hits
    }
    # Closest context first; sort is stable so ties keep document order
    ranked = sorted(
        hits, key=lambda hit: -_common_suffix_length(preceding[hit], prefix)
    )
    for hit in ranked:
        if context_matches(preceding[hit], prefix, suffix_match):
            return hit

    logger.debug(
        "No occurrence of %r matched its context; using the first of %d",
        locator.dense_text,
        len(hits),
    )
    return hits[0]


def resolve_offset(
    locator: Locator,
    corpus: Corpus,
    *,
    suffix_match: int = DEFAULT_SUFFIX_MATCH,
) -> int | None:
    """Dense start offset of the locator's text in *corpus*, or None."""
    stored = corpus.full_dense[locator.global_start : locator.global_end]
    if stored == locator.dense_text:
        return locator.global_start

    hits = corpus.find_all(locator.dense_text)
    if not hits:
        return None
    return _pick_occurrence(hits, locator, corpus, suffix_match)


def relocate(
    locator: Locator,
    corpus: Corpus,
    *,
    suffix_match: int = DEFAULT_SUFFIX_MATCH,
) -> TextRange | None:
    """Rebuild a live range for *locator* from a freshly built *corpus*.

    Returns None when the text is gone or the tree rejects the boundaries;
    neither is an error for the caller.
    """
    start = resolve_offset(locator, corpus, suffix_match=suffix_match)
    if start is None:
        logger.debug("Anchor text %r not found in page", locator.dense_text)
        return None
    return corpus.range_for(start, start + len(locator.dense_text))


def locator_for_note(note: Note) -> Locator | None:
    """The note's locator, or one searched from its snippet for old records."""
    if note.locator is not None:
        return note.locator
    dense = densify(note.snippet)
    if not dense:
        return None
    return Locator(global_start=0, global_end=0, dense_text=dense, snippet=note.snippet)
