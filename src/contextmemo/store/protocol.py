"""Protocol defining the note store interface.

``MemoryNoteStore`` and ``JsonFileNoteStore`` both implement this protocol,
so the engine can be given either one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Callable

    from contextmemo.models import Note

ChangeCallback: TypeAlias = "Callable[[list[Note]], None]"


class NoteStore(Protocol):
    """Asynchronous key-value store holding every note.

    All operations become no-ops when the host context is invalid:
    ``get_all`` returns an empty list and writes do nothing.
    """

    async def get_all(self) -> list[Note]:
        """Return every stored note."""
        ...

    async def save(self, note: Note) -> None:
        """Add *note*, replacing a stored note with the same id."""
        ...

    async def update(self, note_id: str, patch: dict[str, Any]) -> Note | None:
        """Apply *patch* to the note's editable fields.

        Returns:
            The updated note, or None if no such note exists.
        """
        ...

    async def delete(self, note_id: str) -> bool:
        """Delete a note.

        Returns:
            True if a note was removed.
        """
        ...

    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        """Call *callback* with the new note list after every change.

        Returns:
            A function that unregisters the callback.
        """
        ...
