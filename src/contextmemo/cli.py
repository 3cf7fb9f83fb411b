"""Command-line access to the note store and the anchor engine.

Usage:
    contextmemo capture PAGE.html --url URL --select TEXT [--note TEXT]
    contextmemo apply PAGE.html --url URL [-o OUT.html]
    contextmemo list [--url URL] [--query Q]
    contextmemo export --format {json,md} [--url URL] [--query Q] [-o FILE]
    contextmemo delete NOTE_ID
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from contextmemo.config import Settings
    from contextmemo.document import LiveDocument
    from contextmemo.store.json_file import JsonFileNoteStore

console = Console()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contextmemo",
        description="Anchor notes to text in HTML pages.",
    )
    parser.add_argument(
        "--store", type=Path, default=None, help="Note file (default: STORE__PATH)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    capture_p = sub.add_parser("capture", help="Anchor a note to text in a page")
    capture_p.add_argument("page", type=Path, help="Saved HTML page")
    capture_p.add_argument("--url", required=True, help="URL the page was loaded from")
    capture_p.add_argument("--select", required=True, help="Text to anchor")
    capture_p.add_argument(
        "--occurrence", type=int, default=0, help="Which match to use (0-based)"
    )
    capture_p.add_argument("--note", default="", help="Note content")

    apply_p = sub.add_parser("apply", help="Paint stored notes onto a page")
    apply_p.add_argument("page", type=Path, help="Saved HTML page")
    apply_p.add_argument("--url", required=True, help="URL the page was loaded from")
    apply_p.add_argument("-o", "--output", type=Path, default=None)

    list_p = sub.add_parser("list", help="List notes")
    list_p.add_argument("--url", default=None, help="Only notes for this page")
    list_p.add_argument("--query", default="", help="Search content and snippets")

    export_p = sub.add_parser("export", help="Export notes")
    export_p.add_argument("--format", choices=("json", "md"), default="md")
    export_p.add_argument("--url", default=None, help="Only notes for this page")
    export_p.add_argument("--query", default="", help="Search content and snippets")
    export_p.add_argument("-o", "--output", type=Path, default=None)

    delete_p = sub.add_parser("delete", help="Delete a note")
    delete_p.add_argument("note_id")

    return parser


def _open_store(settings: Settings, path: Path | None) -> JsonFileNoteStore:
    from contextmemo.store.json_file import JsonFileNoteStore

    return JsonFileNoteStore(
        path or settings.store.path, watch_interval=settings.store.watch_interval
    )


def _load_page(page: Path, url: str) -> LiveDocument:
    from contextmemo.document import LiveDocument

    if not page.is_file():
        console.print(f"[red]Error:[/] page not found: {page}")
        sys.exit(1)
    return LiveDocument.from_html(page.read_text(encoding="utf-8"), url)


async def _cmd_capture(
    store: JsonFileNoteStore,
    settings: Settings,
    args: argparse.Namespace,
) -> int:
    from contextmemo.session import AnnotationSession, RequestCapture, SaveNote

    document = _load_page(args.page, args.url)
    if document.select_text(args.select, args.occurrence) is None:
        console.print(f"[red]Not found:[/] {args.select!r} in {args.page}")
        return 1

    session = AnnotationSession(document, store, settings)
    response = await session.handle(RequestCapture(args.select))
    if response.ok:
        response = await session.handle(SaveNote(args.note))
    if not response.ok:
        console.print(f"[red]Error:[/] {response.error}")
        return 1
    console.print(f"[green]Saved[/] note {response.note_id}")
    return 0


async def _cmd_apply(
    store: JsonFileNoteStore,
    settings: Settings,
    args: argparse.Namespace,
) -> int:
    from contextmemo.reconcile import Reconciler

    document = _load_page(args.page, args.url)
    report = await Reconciler(document, store, settings).run_pass()
    if report is None:
        console.print("[red]Error:[/] reconciliation did not run")
        return 1

    output = args.output or args.page.with_suffix(".annotated.html")
    output.write_text(document.to_html(), encoding="utf-8")
    console.print(
        f"[green]Rendered[/] {len(report.rendered)} note(s) into {output}"
        f" ({len(report.unresolved)} not found on page)"
    )
    for note_id in report.unresolved:
        console.print(f"  [yellow]unresolved:[/] {note_id}")
    return 0


async def _cmd_list(store: JsonFileNoteStore, args: argparse.Namespace) -> int:
    from contextmemo.export import clean_and_truncate, filter_notes

    notes = filter_notes(await store.get_all(), args.query, page_url=args.url)
    if not notes:
        console.print("[dim]No notes.[/]")
        return 0

    table = Table(title=f"Notes ({len(notes)})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Page")
    table.add_column("Snippet")
    table.add_column("Note")
    table.add_column("Created", no_wrap=True)
    for note in notes:
        created = datetime.fromtimestamp(note.created_at / 1000, tz=UTC)
        table.add_row(
            note.id,
            note.normalized_url or note.url,
            clean_and_truncate(note.snippet, 60),
            clean_and_truncate(note.content, 60) or "[dim]-[/]",
            created.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)
    return 0


async def _cmd_export(
    store: JsonFileNoteStore,
    settings: Settings,
    args: argparse.Namespace,
) -> int:
    from contextmemo.export import export_filename, filter_notes, render_export

    notes = filter_notes(await store.get_all(), args.query, page_url=args.url)
    try:
        text = render_export(
            notes, args.format, snippet_limit=settings.app.export_snippet_limit
        )
    except ValueError as exc:
        console.print(f"[yellow]{exc}[/]")
        return 1

    output = args.output or Path(export_filename(args.format))
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Exported[/] {len(notes)} note(s) to {output}")
    return 0


async def _cmd_delete(store: JsonFileNoteStore, args: argparse.Namespace) -> int:
    if await store.delete(args.note_id):
        console.print(f"[green]Deleted[/] {args.note_id}")
        return 0
    console.print(f"[yellow]No such note:[/] {args.note_id}")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``contextmemo`` command."""
    from contextmemo import _setup_logging
    from contextmemo.config import get_settings

    args = _build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    settings = get_settings()
    _setup_logging(settings.app.log_dir)
    store = _open_store(settings, args.store)

    async def _run() -> int:
        match args.command:
            case "capture":
                return await _cmd_capture(store, settings, args)
            case "apply":
                return await _cmd_apply(store, settings, args)
            case "list":
                return await _cmd_list(store, args)
            case "export":
                return await _cmd_export(store, settings, args)
            case "delete":
                return await _cmd_delete(store, args)
        return 2

    return asyncio.run(_run())


if __name__ == "__main__":
    sys.exit(main())
