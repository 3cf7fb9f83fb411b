"""In-process note store, for embedding hosts and tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contextmemo.store.base import ObservableNoteStore

if TYPE_CHECKING:
    from collections.abc import Iterable

    from contextmemo.document import HostContext
    from contextmemo.models import Note


class MemoryNoteStore(ObservableNoteStore):
    """Keeps notes in a list owned by the store."""

    def __init__(
        self,
        notes: Iterable[Note] = (),
        context: HostContext | None = None,
    ) -> None:
        super().__init__(context)
        self._notes: list[Note] = list(notes)

    async def _load(self) -> list[Note]:
        return list(self._notes)

    async def _dump(self, notes: list[Note]) -> None:
        self._notes = list(notes)
