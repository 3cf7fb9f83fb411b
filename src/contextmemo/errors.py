"""Error taxonomy for the anchor engine.

Only ``AnchorNotFound`` ever reaches a user, and only from a direct capture
request. The other two are raised and caught inside the engine.
"""

from __future__ import annotations


class ContextMemoError(Exception):
    """Base class for all engine errors."""


class AnchorNotFound(ContextMemoError):
    """A selection or stored locator could not be tied to document text."""


class StoreUnavailable(ContextMemoError):
    """The host context is gone; store operations must become no-ops."""


class RenderConflict(ContextMemoError):
    """A wrap or unwrap step found the tree already changed underneath it."""

    def __init__(self, message: str, note_id: str | None = None) -> None:
        self.note_id = note_id
        super().__init__(message)
