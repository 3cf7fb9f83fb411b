"""Search and export over the note collection."""

from __future__ import annotations

import json
import re
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Literal

from contextmemo.store.page_identity import same_page

if TYPE_CHECKING:
    from collections.abc import Iterable

    from contextmemo.models import Note

ExportFormat = Literal["json", "md"]

_WHITESPACE_RUN = re.compile(r"\s+")


def filter_notes(
    notes: Iterable[Note],
    query: str = "",
    *,
    page_url: str | None = None,
) -> list[Note]:
    """Notes matching *query*, optionally limited to one page.

    The query is matched case-insensitively against content and snippet,
    and also against the URL when searching across all pages.
    """
    selected = [n for n in notes if page_url is None or same_page(n, page_url)]
    needle = query.strip().lower()
    if not needle:
        return selected

    def haystack(note: Note) -> str:
        parts = [note.content, note.snippet]
        if page_url is None:
            parts.append(note.url)
        return " ".join(parts).lower()

    return [n for n in selected if needle in haystack(n)]


def clean_and_truncate(text: str, max_length: int = 150) -> str:
    """Collapse whitespace runs and cut to *max_length* characters."""
    if not text:
        return ""
    clean = _WHITESPACE_RUN.sub(" ", text).strip()
    if len(clean) > max_length:
        return clean[:max_length] + " ..."
    return clean


def _format_timestamp(epoch_ms: int) -> str:
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=UTC)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def export_json(notes: Iterable[Note]) -> str:
    """Notes in the persisted record shape, indented."""
    return json.dumps(
        [note.to_record() for note in notes], indent=2, ensure_ascii=False
    )


def export_markdown(
    notes: Iterable[Note],
    *,
    snippet_limit: int = 300,
    generated_at: datetime | None = None,
) -> str:
    """A Markdown digest of *notes*, grouped by page URL in first-seen order."""
    generated = generated_at or datetime.now(tz=UTC)
    grouped: dict[str, list[Note]] = {}
    for note in notes:
        grouped.setdefault(note.url, []).append(note)

    lines = [
        "# ContextMemo Export",
        "",
        f"_Generated: {generated.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}_",
        "",
        "---",
        "",
    ]
    for url, page_notes in grouped.items():
        lines += [f"## [{url}]({url})", ""]
        for note in page_notes:
            lines += [f"> {clean_and_truncate(note.snippet, snippet_limit)}", ""]
            if note.content:
                lines += [f"**Note:** {note.content}", ""]
            else:
                lines += ["*(No comment added)*", ""]
            lines += [f"_{_format_timestamp(note.created_at)}_", "", "---", ""]
    return "\n".join(lines)


def export_filename(fmt: ExportFormat, today: date | None = None) -> str:
    day = today or date.today()
    return f"contextmemo_export_{day.isoformat()}.{fmt}"


def render_export(
    notes: Iterable[Note], fmt: ExportFormat, *, snippet_limit: int = 300
) -> str:
    """Render *notes* in *fmt*.

    Raises:
        ValueError: If there is nothing to export.
    """
    note_list = list(notes)
    if not note_list:
        msg = "No notes to export in current view."
        raise ValueError(msg)
    match fmt:
        case "json":
            return export_json(note_list)
        case "md":
            return export_markdown(note_list, snippet_limit=snippet_limit)
