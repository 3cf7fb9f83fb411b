"""Note storage and page identity."""

from contextmemo.store.json_file import JsonFileNoteStore
from contextmemo.store.memory import MemoryNoteStore
from contextmemo.store.page_identity import normalize_url, notes_for_page, same_page
from contextmemo.store.protocol import NoteStore

__all__ = [
    "JsonFileNoteStore",
    "MemoryNoteStore",
    "NoteStore",
    "normalize_url",
    "notes_for_page",
    "same_page",
]
