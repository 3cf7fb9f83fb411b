"""Marker rendering and removal."""

from contextmemo.markers.lookup import classify, find_markers, live_marker_ids
from contextmemo.markers.renderer import render
from contextmemo.markers.reveal import clear_flash, flash_marker
from contextmemo.markers.unwrapper import remove

__all__ = [
    "classify",
    "clear_flash",
    "find_markers",
    "flash_marker",
    "live_marker_ids",
    "remove",
    "render",
]
