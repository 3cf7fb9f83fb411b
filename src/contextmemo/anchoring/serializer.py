"""Turn a live selection into a durable ``Locator``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contextmemo.anchoring.corpus import dense_length
from contextmemo.models import Locator

if TYPE_CHECKING:
    from contextmemo.anchoring.corpus import Corpus
    from contextmemo.anchoring.text_range import TextRange

logger = logging.getLogger(__name__)

DEFAULT_PREFIX_WINDOW = 32


def capture(
    text_range: TextRange,
    corpus: Corpus,
    *,
    prefix_window: int = DEFAULT_PREFIX_WINDOW,
) -> Locator | None:
    """Describe *text_range* in dense offsets of *corpus*.

    Boundaries that fall outside the first/last intersected segment (for
    example a selection starting inside a ``<script>``) are clamped to that
    segment's edges.

    Args:
        text_range: The selection to anchor.
        corpus: A corpus built from the same tree, with no intervening await.
        prefix_window: How many dense characters of preceding context to keep.

    Returns:
        The locator, or None if no rendered text lies inside the range.
    """
    segments = corpus.segments_in(text_range)
    if not segments:
        logger.debug("Selection touches no rendered text")
        return None

    first, last = segments[0], segments[-1]
    start_lo, _ = corpus.local_span(first, text_range)
    _, end_hi = corpus.local_span(last, text_range)

    global_start = first.dense_start + dense_length(first.raw, start_lo)
    global_end = last.dense_start + dense_length(last.raw, end_hi)
    if global_end <= global_start:
        logger.debug("Selection contains only whitespace")
        return None

    context_start = max(0, global_start - prefix_window)
    prefix = corpus.full_dense[context_start:global_start]

    return Locator(
        global_start=global_start,
        global_end=global_end,
        dense_text=corpus.full_dense[global_start:global_end],
        prefix_context=prefix or None,
        snippet=text_range.to_string(),
    )
