"""Async runtime that serializes user controls and the auto-advance timer.

`PlayerService` is the single writer for the catalog and the playback
controller. Every public coroutine runs one operation under an
`asyncio.Lock`; a background task ticks `check_and_auto_next()` under the
same lock. Favorite/history changes are mirrored to the persistence
collaborator before the lock is released, so stored state follows the
order of operations. Events raised synchronously by the core are buffered
and delivered to `emit_event` after the lock is released.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from contextlib import suppress
from typing import Protocol, TypeVar

from zotu.events import (
    FavoriteAdded,
    FavoriteRemoved,
    HistoryAdded,
    HistoryCleared,
    TrackChanged,
)
from zotu.models import Track
from zotu.runtime_config import clamp_auto_advance_interval
from zotu.services.audio_output import AudioOutput, Decoder
from zotu.services.catalog_db import Category
from zotu.services.catalog_store import CatalogStore, CatalogView
from zotu.services.playback_controller import (
    ControllerState,
    LoopMode,
    PlaybackController,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CatalogPersistence(Protocol):
    """Write side of catalog storage used to mirror favorites/history."""

    async def add_to_category(self, category: Category, track_id: str) -> None: ...

    async def remove_from_category(
        self, category: Category, track_id: str
    ) -> None: ...

    async def clear_category(self, category: Category) -> None: ...


class PlayerService:
    """Owns the catalog/controller pair and emits events to subscribers."""

    def __init__(
        self,
        *,
        emit_event: Callable[[object], Awaitable[None]],
        catalog: CatalogStore,
        output: AudioOutput,
        decoder: Decoder,
        persistence: CatalogPersistence | None = None,
        auto_advance_interval_s: float = 0.5,
        shuffle_random: random.Random | None = None,
        loop_mode: LoopMode | str = LoopMode.LIST,
    ) -> None:
        self._emit_event = emit_event
        self._catalog = catalog
        self._persistence = persistence
        self._pending: list[object] = []
        self._controller = PlaybackController(
            output,
            decoder,
            emit_event=self._on_controller_event,
            rng=shuffle_random,
            loop_mode=LoopMode(loop_mode),
        )
        self._unsubscribe = catalog.subscribe(self._pending.append)
        self._lock = asyncio.Lock()
        self._poll_task: asyncio.Task[None] | None = None
        self._poll_interval = clamp_auto_advance_interval(auto_advance_interval_s)
        self._view: CatalogView | None = None
        self._query: str | None = None

    @property
    def catalog(self) -> CatalogStore:
        return self._catalog

    @property
    def controller(self) -> PlaybackController:
        return self._controller

    @property
    def state(self) -> ControllerState:
        return self._controller.snapshot()

    @property
    def view(self) -> CatalogView | None:
        return self._view

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    async def start(self) -> None:
        """Start the background auto-advance task."""
        if self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll_auto_advance())

    async def shutdown(self) -> None:
        """Stop polling and release the audio output."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None
        await self._run(self._controller.clear)
        self._unsubscribe()

    # Selection

    async def select_view(
        self, view: CatalogView | str, query: str | None = None
    ) -> int:
        """Feed a catalog collection into a fresh playback ordering.

        Returns the size of the new ordering.
        """
        selected = CatalogView(view)

        def apply() -> int:
            tracks = self._catalog.tracks_for(selected, query)
            self._controller.set_playlist(tracks)
            self._view = selected
            self._query = query
            return len(tracks)

        return await self._run(apply)

    async def update_library(self, tracks: Sequence[Track] | None) -> None:
        """Replace the library and rebuild the ordering of the selected view."""

        def apply() -> None:
            self._catalog.update_library(tracks)
            if self._view is not None:
                self._controller.set_playlist(
                    self._catalog.tracks_for(self._view, self._query)
                )

        await self._run(apply)

    # Transport

    async def play_track_id(self, track_id: str) -> bool:
        """Play a library track by identity; False when it is unknown."""

        def apply() -> bool:
            track = self._catalog.get_by_id(track_id)
            if track is None:
                logger.debug("Ignoring play request for unknown id %s", track_id)
                return False
            self._controller.play_track(track)
            return True

        return await self._run(apply)

    async def play_track(self, track: Track) -> None:
        await self._run(lambda: self._controller.play_track(track))

    async def toggle_play(self) -> None:
        await self._run(self._controller.toggle_play)

    async def play(self) -> None:
        await self._run(self._controller.play)

    async def pause(self) -> None:
        await self._run(self._controller.pause)

    async def next_track(self) -> None:
        await self._run(self._controller.next)

    async def previous_track(self) -> None:
        await self._run(self._controller.previous)

    async def clear(self) -> None:
        await self._run(self._controller.clear)

    async def set_loop_mode(self, mode: LoopMode | str) -> None:
        await self._run(lambda: self._controller.set_loop_mode(mode))

    async def toggle_loop_mode(self) -> LoopMode:
        def apply() -> LoopMode:
            self._controller.toggle_loop_mode()
            return self._controller.loop_mode

        return await self._run(apply)

    async def check_and_auto_next(self) -> None:
        await self._run(self._controller.check_and_auto_next)

    # Catalog

    async def toggle_favorite(self, track_id: str) -> bool:
        return await self._run(lambda: self._catalog.toggle_favorite(track_id))

    async def clear_history(self) -> None:
        await self._run(self._catalog.clear_history)

    # Internals

    async def _run(self, operation: Callable[[], T]) -> T:
        async with self._lock:
            result = operation()
            events = self._pending[:]
            self._pending.clear()
            # Writes land in operation order.
            await self._persist(events)
        await self._flush(events)
        return result

    def _on_controller_event(self, event: object) -> None:
        self._pending.append(event)
        if isinstance(event, TrackChanged):
            self._catalog.add_to_history(event.now_playing.id)

    async def _persist(self, events: list[object]) -> None:
        if self._persistence is None:
            return
        for event in events:
            try:
                if isinstance(event, FavoriteAdded):
                    await self._persistence.add_to_category(
                        Category.FAVORITE, event.track_id
                    )
                elif isinstance(event, FavoriteRemoved):
                    await self._persistence.remove_from_category(
                        Category.FAVORITE, event.track_id
                    )
                elif isinstance(event, HistoryAdded):
                    await self._persistence.add_to_category(
                        Category.HISTORY, event.track_id
                    )
                elif isinstance(event, HistoryCleared):
                    await self._persistence.clear_category(Category.HISTORY)
            except Exception:
                # In-memory state stays authoritative for this session.
                logger.exception("Failed to persist %r", event)

    async def _flush(self, events: list[object]) -> None:
        for event in events:
            try:
                await self._emit_event(event)
            except Exception:
                logger.exception("Event subscriber failed for %r", event)

    async def _poll_auto_advance(self) -> None:
        """Tick the controller so drained tracks advance without user input."""
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self.check_and_auto_next()
            except Exception:  # pragma: no cover - output safety net
                logger.exception("Auto-advance tick failed.")
