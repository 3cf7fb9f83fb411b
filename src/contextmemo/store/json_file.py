"""Note store backed by one JSON file.

The file holds ``{"notes": [...]}`` with each note in the persisted
camelCase record shape.  Records that fail validation are skipped with a
warning and dropped on the next write.

Other processes (the CLI, a second page) may write the same file.  While
anyone is subscribed, the store checks the file's signature every
``watch_interval`` seconds and notifies its listeners when it changes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, TypeAlias

from pydantic import ValidationError

from contextmemo.config import get_settings
from contextmemo.models import Note
from contextmemo.store.base import ObservableNoteStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from contextmemo.document import HostContext
    from contextmemo.store.protocol import ChangeCallback

logger = logging.getLogger(__name__)

# (inode, mtime in ns, size); a rename-over write changes at least one.
FileSignature: TypeAlias = "tuple[int, int, int] | None"


def read_notes_file(path: Path) -> list[Note]:
    """Load notes from *path*; a missing or unreadable file means no notes."""
    if not path.is_file():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        logger.exception("Could not read note file %s; treating as empty", path)
        return []

    records = data.get("notes", []) if isinstance(data, dict) else None
    if not isinstance(records, list):
        logger.warning("Note file %s has no notes list; treating as empty", path)
        return []

    notes: list[Note] = []
    for record in records:
        try:
            notes.append(Note.from_record(record))
        except ValidationError as exc:
            logger.warning("Skipping malformed note record in %s: %s", path, exc)
    return notes


def write_notes_file(path: Path, notes: list[Note]) -> None:
    """Write *notes* to *path* atomically (temp file, then rename)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"notes": [note.to_record() for note in notes]}
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(
        json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    tmp_path.replace(path)


def file_signature(path: Path) -> FileSignature:
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    return (stat.st_ino, stat.st_mtime_ns, stat.st_size)


class JsonFileNoteStore(ObservableNoteStore):
    """Notes in a JSON file; file I/O runs in a worker thread."""

    def __init__(
        self,
        path: Path,
        context: HostContext | None = None,
        *,
        watch_interval: float | None = None,
    ) -> None:
        super().__init__(context)
        self.path = path
        self.watch_interval = (
            watch_interval
            if watch_interval is not None
            else get_settings().store.watch_interval
        )
        self._signature: FileSignature = None
        self._writes = 0
        self._watcher: asyncio.Task[None] | None = None

    async def _load(self) -> list[Note]:
        return await asyncio.to_thread(read_notes_file, self.path)

    async def _dump(self, notes: list[Note]) -> None:
        await asyncio.to_thread(write_notes_file, self.path, notes)
        # Still under the write lock: the watcher never mistakes our own
        # write for someone else's.
        self._signature = file_signature(self.path)
        self._writes += 1
        logger.debug("Wrote %d notes to %s", len(notes), self.path)

    # --- external writes ---------------------------------------------------------

    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        unsubscribe = super().on_change(callback)
        if self._watcher is None or self._watcher.done():
            self._signature = file_signature(self.path)
            self._watcher = asyncio.get_running_loop().create_task(self._watch())
        return unsubscribe

    async def _watch(self) -> None:
        """Notify listeners of writes made outside this store object.

        Exits once nobody is subscribed or the host context is gone.
        """
        while True:
            await asyncio.sleep(self.watch_interval)
            if not self._listeners or not self._is_available():
                break
            writes = self._writes
            if self._lock.locked():
                continue
            signature = await asyncio.to_thread(file_signature, self.path)
            if self._lock.locked() or writes != self._writes:
                continue
            if signature == self._signature:
                continue
            self._signature = signature
            notes = await self.get_all()
            logger.info(
                "Note file %s changed on disk; %d notes", self.path, len(notes)
            )
            self._notify(notes)
        logger.debug("Stopped watching %s", self.path)

    async def close(self) -> None:
        """Stop watching the file."""
        if self._watcher is None:
            return
        self._watcher.cancel()
        await asyncio.gather(self._watcher, return_exceptions=True)
        self._watcher = None
