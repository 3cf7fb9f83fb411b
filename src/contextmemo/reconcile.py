"""Reconciliation loop: keep live markers in step with the stored notes.

Four producers feed one queue:

- a few delayed passes after ``start()`` (content that renders late),
- a bounded interval poll (slow or streaming pages; idle pages stop),
- a debounced pass after each document mutation notification,
- an immediate pass on every store change notification.

One consumer task drains the queue, coalescing bursts into a single pass,
so two passes never run at once.  Each pass fetches the page's notes,
paints a marker for every note that lacks one, and unwraps markers whose
note is gone.  Failures are logged and retried by the next trigger.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from contextmemo.anchoring.relocator import locator_for_note, relocate
from contextmemo.config import get_settings
from contextmemo.markers import live_marker_ids, remove, render
from contextmemo.store.page_identity import notes_for_page

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from typing import Any

    from contextmemo.config import Settings
    from contextmemo.document import LiveDocument
    from contextmemo.models import Note
    from contextmemo.store.protocol import NoteStore

logger = logging.getLogger(__name__)


@dataclass
class PassReport:
    """What one reconciliation pass changed."""

    rendered: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class Reconciler:
    """Drives relocation, rendering and orphan removal for one document."""

    def __init__(
        self,
        document: LiveDocument,
        store: NoteStore,
        settings: Settings | None = None,
    ) -> None:
        self._document = document
        self._store = store
        self._settings = settings or get_settings()
        self._queue: asyncio.Queue[str] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._debounce: asyncio.Task[None] | None = None
        self._timers: set[asyncio.Task[None]] = set()
        self._unsubscribers: list[Callable[[], None]] = []
        self._in_flight = False
        self._idle = asyncio.Event()
        self._idle.set()
        self.passes_run = 0

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    # --- lifecycle -----------------------------------------------------------------

    def start(self) -> None:
        """Start the consumer and all triggers.  Must run inside an event loop."""
        if self.running:
            return
        cfg = self._settings.reconcile
        self._queue = asyncio.Queue()
        self._consumer = asyncio.create_task(self._consume())
        for delay in cfg.initial_delays:
            self._spawn(self._delayed_pass(delay))
        if cfg.max_polls > 0:
            self._spawn(self._poll(cfg.poll_interval, cfg.max_polls))
        self._unsubscribers.append(self._document.on_mutation(self._on_mutation))
        self._unsubscribers.append(self._store.on_change(self._on_store_change))
        logger.info("Reconciler started for %s", self._document.url)

    async def stop(self) -> None:
        """Unsubscribe from notifications and cancel every outstanding task."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        tasks = [*self._timers]
        if self._debounce is not None:
            tasks.append(self._debounce)
        if self._consumer is not None:
            tasks.append(self._consumer)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._timers.clear()
        self._debounce = None
        self._consumer = None
        self._queue = None

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)

    # --- producers --------------------------------------------------------------------

    def request_pass(self, reason: str) -> None:
        """Queue a pass; a no-op once stopped.

        Requests still reach the consumer after the host context is gone,
        which is how the consumer learns to exit.
        """
        if self._queue is None:
            return
        self._queue.put_nowait(reason)

    async def _delayed_pass(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.request_pass(f"initial+{delay:g}s")

    async def _poll(self, interval: float, max_polls: int) -> None:
        for _ in range(max_polls):
            await asyncio.sleep(interval)
            self.request_pass("poll")
            if not self._document.context.is_valid:
                return

    def _on_mutation(self) -> None:
        if self._debounce is not None and not self._debounce.done():
            self._debounce.cancel()
        self._debounce = asyncio.get_running_loop().create_task(
            self._debounced_pass()
        )

    async def _debounced_pass(self) -> None:
        await asyncio.sleep(self._settings.reconcile.mutation_debounce)
        self.request_pass("mutation")

    def _on_store_change(self, notes: list[Note]) -> None:
        self.request_pass("store-change")

    # --- consumer -----------------------------------------------------------------------

    async def _consume(self) -> None:
        queue = self._queue
        assert queue is not None
        while True:
            reason = await queue.get()
            if not self._document.context.is_valid:
                logger.info("Host context gone; reconciler exiting")
                return
            coalesced = 1
            while not queue.empty():
                queue.get_nowait()
                coalesced += 1
            logger.debug("Reconciliation pass (%s, %d trigger(s))", reason, coalesced)
            try:
                await self.run_pass()
            except Exception:
                logger.exception("Reconciliation pass failed (%s)", reason)

    # --- the pass ----------------------------------------------------------------------

    async def run_pass(self) -> PassReport | None:
        """Run one fetch-relocate-render-collect pass.

        Returns:
            The pass report, or None when a pass is already in flight or the
            host context is gone.
        """
        if self._in_flight or not self._document.context.is_valid:
            return None
        self._in_flight = True
        self._idle.clear()
        try:
            notes = await notes_for_page(self._store, self._document.url)
            # A store that went away mid-fetch answers with no notes; treating
            # that as "every note deleted" would strip all markers.
            if not self._document.context.is_valid:
                return None
            report = self._apply(notes)
        finally:
            self._in_flight = False
            self._idle.set()

        self.passes_run += 1
        if report.rendered or report.removed:
            logger.info(
                "Pass on %s: %d rendered, %d removed, %d unresolved",
                self._document.url,
                len(report.rendered),
                len(report.removed),
                len(report.unresolved),
            )
        return report

    async def settle(self) -> None:
        """Bring the markers up to date before returning.

        Runs a pass, or waits for the one already in flight to finish.
        """
        if self._in_flight:
            await self._idle.wait()
            return
        await self.run_pass()

    def _apply(self, notes: list[Note]) -> PassReport:
        # No awaits below: every corpus is built and used in one step.
        report = PassReport()
        live = live_marker_ids(self._document.root)

        for note in notes:
            if note.id in live:
                continue
            try:
                if self._restore(note):
                    report.rendered.append(note.id)
                else:
                    report.unresolved.append(note.id)
            except Exception:
                logger.exception("Could not restore note %s", note.id)
                report.failed.append(note.id)

        wanted = {note.id for note in notes}
        for orphan in sorted(live - wanted):
            try:
                remove(self._document, orphan)
                report.removed.append(orphan)
            except Exception:
                logger.exception("Could not remove orphaned marker %s", orphan)
                report.failed.append(orphan)

        return report

    def _restore(self, note: Note) -> bool:
        locator = locator_for_note(note)
        if locator is None:
            return False
        corpus = self._document.build_corpus()
        text_range = relocate(
            locator, corpus, suffix_match=self._settings.anchor.suffix_match
        )
        if text_range is None:
            logger.debug("Note %s has no anchor on this page", note.id)
            return False
        return render(self._document, text_range, note.id)
