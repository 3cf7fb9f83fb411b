"""Decide whether two page loads are "the same page".

Notes are grouped by the normalised URL: scheme, host, port and path, with
one trailing slash removed.  Query strings and fragments are ignored, so
``https://example.com/a/?x=1#top`` and ``https://example.com/a`` match.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from contextmemo.models import Note
    from contextmemo.store.protocol import NoteStore

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """Page identity of *url*; unparsable input is returned unchanged."""
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return url
    if not parts.scheme or not parts.hostname:
        return url

    scheme = parts.scheme.lower()
    origin = f"{scheme}://{parts.hostname.lower()}"
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        origin = f"{origin}:{port}"

    path = parts.path
    if path.endswith("/"):
        path = path[:-1]
    return origin + path


def page_key(note: Note) -> str:
    return note.normalized_url or normalize_url(note.url)


def same_page(note: Note, url: str) -> bool:
    return page_key(note) == normalize_url(url)


async def notes_for_page(store: NoteStore, url: str) -> list[Note]:
    """Every stored note belonging to the page at *url*."""
    key = normalize_url(url)
    return [note for note in await store.get_all() if page_key(note) == key]
