"""Attribute names and styling for engine-owned elements.

Every element the engine inserts into a page carries one of these
attributes, so marker lookup and corpus exclusion never depend on page
markup.
"""

from __future__ import annotations

from enum import StrEnum

# Marker elements
NOTE_ID_ATTRIBUTE = "data-contextmemo-id"
KIND_ATTRIBUTE = "data-contextmemo-kind"
FLASH_ATTRIBUTE = "data-contextmemo-flash"

# The engine's own UI subtree (note editor); never part of the corpus
UI_ATTRIBUTE = "data-contextmemo-ui"


class MarkerKind(StrEnum):
    """What a marker element is for."""

    HIGHLIGHT = "highlight"
    INDICATOR = "indicator"


# Inline styles so page stylesheets cannot hide the marker
HIGHLIGHT_STYLE = (
    "background-color:#fff59d;text-decoration:underline;border-radius:2px;"
    "padding:1px 0;display:inline;position:relative;z-index:2147480000"
)
INDICATOR_STYLE = (
    "width:8px;height:8px;background:#f59e0b;display:inline-block;"
    "border-radius:50%;margin-left:4px;vertical-align:middle;cursor:pointer"
)
