"""Shared behaviour for note stores: availability, patching, notification."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from contextmemo.errors import StoreUnavailable
from contextmemo.models import Note, now_ms

if TYPE_CHECKING:
    from collections.abc import Callable

    from contextmemo.document import HostContext
    from contextmemo.store.protocol import ChangeCallback

logger = logging.getLogger(__name__)

# Persisted (camelCase) or field name -> field name.  Locators, ids and
# creation times are fixed at capture and never patched.
_PATCHABLE_FIELDS: dict[str, str] = {
    "content": "content",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
}


def apply_patch(note: Note, patch: dict[str, Any]) -> Note:
    """Return *note* with the editable fields of *patch* applied.

    ``updated_at`` is stamped with the current time unless the patch sets it.
    """
    changes: dict[str, Any] = {}
    for key, value in patch.items():
        field_name = _PATCHABLE_FIELDS.get(key)
        if field_name is None:
            logger.warning("Ignoring non-editable note field %r", key)
            continue
        changes[field_name] = value
    changes.setdefault("updated_at", now_ms())
    return note.model_copy(update=changes)


class ObservableNoteStore:
    """Base class implementing the ``NoteStore`` operations.

    Subclasses provide ``_load()`` and ``_dump()``.  Read-modify-write
    sequences run under one lock so concurrent tasks cannot lose writes.
    """

    def __init__(self, context: HostContext | None = None) -> None:
        self._context = context
        self._listeners: list[ChangeCallback] = []
        self._lock = asyncio.Lock()

    # --- subclass hooks ----------------------------------------------------------

    async def _load(self) -> list[Note]:
        raise NotImplementedError

    async def _dump(self, notes: list[Note]) -> None:
        raise NotImplementedError

    # --- availability ----------------------------------------------------------------

    def _is_available(self) -> bool:
        return self._context is None or self._context.is_valid

    def _ensure_available(self) -> None:
        if not self._is_available():
            msg = "host context is no longer valid"
            raise StoreUnavailable(msg)

    # --- NoteStore ---------------------------------------------------------------------

    async def get_all(self) -> list[Note]:
        try:
            self._ensure_available()
            return list(await self._load())
        except StoreUnavailable:
            logger.debug("Store unavailable; get_all returns nothing")
            return []

    async def save(self, note: Note) -> None:
        try:
            self._ensure_available()
            async with self._lock:
                notes = [n for n in await self._load() if n.id != note.id]
                notes.append(note)
                await self._dump(notes)
        except StoreUnavailable:
            logger.debug("Store unavailable; dropped save of %s", note.id)
            return
        self._notify(notes)

    async def update(self, note_id: str, patch: dict[str, Any]) -> Note | None:
        try:
            self._ensure_available()
            async with self._lock:
                notes = await self._load()
                updated: Note | None = None
                for i, note in enumerate(notes):
                    if note.id == note_id:
                        updated = apply_patch(note, patch)
                        notes[i] = updated
                        break
                if updated is None:
                    return None
                await self._dump(notes)
        except StoreUnavailable:
            logger.debug("Store unavailable; dropped update of %s", note_id)
            return None
        self._notify(notes)
        return updated

    async def delete(self, note_id: str) -> bool:
        try:
            self._ensure_available()
            async with self._lock:
                notes = await self._load()
                remaining = [n for n in notes if n.id != note_id]
                if len(remaining) == len(notes):
                    return False
                await self._dump(remaining)
        except StoreUnavailable:
            logger.debug("Store unavailable; dropped delete of %s", note_id)
            return False
        self._notify(remaining)
        return True

    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, notes: list[Note]) -> None:
        for callback in list(self._listeners):
            try:
                callback(list(notes))
            except Exception:
                logger.exception("Store change listener failed")
