"""Per-page annotation session: command handling and session state.

Commands arrive as small message objects (from a context menu, a popup, the
CLI) and are answered with a ``CommandResponse``.  The only failure a user
ever sees is a capture that has nothing to anchor; everything else is
logged and retried by the reconciler.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias, assert_never

from contextmemo.anchoring.relocator import relocate
from contextmemo.anchoring.serializer import capture
from contextmemo.config import get_settings
from contextmemo.errors import AnchorNotFound
from contextmemo.markers import clear_flash, flash_marker, remove, render
from contextmemo.models import Note, new_note_id, now_ms
from contextmemo.reconcile import Reconciler
from contextmemo.store.page_identity import normalize_url, same_page

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from contextmemo.config import Settings
    from contextmemo.document import LiveDocument
    from contextmemo.models import Locator
    from contextmemo.store.protocol import NoteStore

logger = logging.getLogger(__name__)

NO_SELECTION_MESSAGE = "Select some text first."
NOT_ANCHORABLE_MESSAGE = "Could not anchor this selection."
NOT_HIGHLIGHTED_MESSAGE = "Could not highlight this snippet."


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RequestCapture:
    """Open the note editor for the current selection."""

    snippet: str


@dataclass(frozen=True)
class SaveNote:
    """Commit the pending capture with the editor's content."""

    content: str


@dataclass(frozen=True)
class RequestDelete:
    note_id: str


@dataclass(frozen=True)
class RequestReveal:
    """Scroll to a note's marker, flash it and make it the edit target."""

    note_id: str


@dataclass(frozen=True)
class UpdateNote:
    note_id: str
    content: str


Command: TypeAlias = "RequestCapture | SaveNote | RequestDelete | RequestReveal | UpdateNote"


@dataclass(frozen=True)
class CommandResponse:
    ok: bool
    note_id: str | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PendingCapture:
    """A captured selection waiting for the user to write the note."""

    locator: Locator
    snippet: str


@dataclass
class SessionState:
    pending: PendingCapture | None = None
    edit_target: str | None = None


class AnnotationSession:
    """Everything the engine does for one open page."""

    def __init__(
        self,
        document: LiveDocument,
        store: NoteStore,
        settings: Settings | None = None,
    ) -> None:
        self.document = document
        self.store = store
        self.settings = settings or get_settings()
        self.state = SessionState()
        self.reconciler = Reconciler(document, store, self.settings)
        self.loaded = asyncio.Event()
        self._flash_tasks: set[asyncio.Task[None]] = set()

    async def start(self) -> None:
        """Begin reconciling and report the page as ready for commands."""
        self.reconciler.start()
        self.loaded.set()

    async def close(self) -> None:
        for task in list(self._flash_tasks):
            task.cancel()
        await self.reconciler.stop()

    async def handle(self, command: Command) -> CommandResponse:
        """Dispatch one command."""
        match command:
            case RequestCapture(snippet=snippet):
                try:
                    self._begin_capture(snippet)
                except AnchorNotFound as exc:
                    return CommandResponse(ok=False, error=str(exc))
                return CommandResponse(ok=True)
            case SaveNote(content=content):
                return await self._commit_capture(content)
            case RequestDelete(note_id=note_id):
                return await self._delete(note_id)
            case RequestReveal(note_id=note_id):
                return await self._reveal(note_id)
            case UpdateNote(note_id=note_id, content=content):
                return await self._update(note_id, content)
            case _:
                assert_never(command)

    # --- capture ----------------------------------------------------------------------

    def _begin_capture(self, snippet: str) -> PendingCapture:
        """Anchor the selection now, before any await can change the page.

        Raises:
            AnchorNotFound: Nothing selected, or the selection holds no
                rendered text.
        """
        snippet = snippet.strip()
        if not snippet:
            raise AnchorNotFound(NO_SELECTION_MESSAGE)

        selection = self.document.selection
        if selection is None:
            selection = self.document.select_text(snippet)
        if selection is None:
            raise AnchorNotFound(NOT_ANCHORABLE_MESSAGE)

        locator = capture(
            selection,
            self.document.build_corpus(),
            prefix_window=self.settings.anchor.prefix_window,
        )
        if locator is None:
            raise AnchorNotFound(NOT_ANCHORABLE_MESSAGE)

        pending = PendingCapture(locator=locator, snippet=snippet)
        self.state.pending = pending
        self.document.show_editor(snippet)
        return pending

    async def _commit_capture(self, content: str) -> CommandResponse:
        pending = self.state.pending
        self.state.pending = None
        self.document.hide_editor()
        if pending is None:
            return CommandResponse(ok=False, error=NO_SELECTION_MESSAGE)

        note = Note(
            id=new_note_id(),
            url=self.document.url,
            normalized_url=normalize_url(self.document.url),
            content=content.strip(),
            snippet=pending.snippet,
            locator=pending.locator,
            created_at=now_ms(),
        )

        text_range = relocate(
            pending.locator,
            self.document.build_corpus(),
            suffix_match=self.settings.anchor.suffix_match,
        )
        if text_range is None or not render(self.document, text_range, note.id):
            return CommandResponse(ok=False, error=NOT_HIGHLIGHTED_MESSAGE)

        await self.store.save(note)
        logger.info("Saved note %s on %s", note.id, note.normalized_url)
        return CommandResponse(ok=True, note_id=note.id)

    # --- delete / update --------------------------------------------------------------

    async def _delete(self, note_id: str) -> CommandResponse:
        remove(self.document, note_id)
        await self.store.delete(note_id)
        if self.state.edit_target == note_id:
            self.state.edit_target = None
        return CommandResponse(ok=True, note_id=note_id)

    async def _update(self, note_id: str, content: str) -> CommandResponse:
        updated = await self.store.update(note_id, {"content": content.strip()})
        if updated is None:
            return CommandResponse(ok=False, note_id=note_id, error="Note not found.")
        return CommandResponse(ok=True, note_id=note_id)

    # --- reveal -------------------------------------------------------------------------

    async def _reveal(self, note_id: str) -> CommandResponse:
        target = flash_marker(self.document, note_id)
        if target is None:
            # Content may not have been painted yet
            await self.reconciler.settle()
            target = flash_marker(self.document, note_id)
        if target is None:
            return CommandResponse(
                ok=False, note_id=note_id, error="Note is not anchored on this page."
            )

        self.state.edit_target = note_id
        task = asyncio.create_task(self._unflash_later(note_id))
        self._flash_tasks.add(task)
        task.add_done_callback(self._flash_tasks.discard)
        return CommandResponse(ok=True, note_id=note_id)

    async def _unflash_later(self, note_id: str) -> None:
        await asyncio.sleep(self.settings.app.flash_seconds)
        clear_flash(self.document, note_id)


async def deliver_reveal(
    note: Note,
    active: AnnotationSession | None,
    open_page: Callable[[str], Awaitable[AnnotationSession]],
    *,
    timeout: float | None = None,
) -> CommandResponse:
    """Reveal *note*, opening its page first when it is not the active one.

    A freshly opened page gets up to *timeout* seconds to report itself
    loaded before the command is delivered.
    """
    if active is not None and same_page(note, active.document.url):
        return await active.handle(RequestReveal(note.id))

    session = await open_page(note.url)
    wait = timeout if timeout is not None else session.settings.app.navigation_timeout
    try:
        await asyncio.wait_for(session.loaded.wait(), timeout=wait)
    except TimeoutError:
        logger.warning("Page %s did not finish loading within %.1fs", note.url, wait)
        return CommandResponse(ok=False, note_id=note.id, error="Page did not load.")
    return await session.handle(RequestReveal(note.id))
