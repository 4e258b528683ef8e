"""In-memory catalog of tracks with derived favorite/history views.

`CatalogStore` is the single owner of the canonical library. Readers receive
tuple snapshots, never live aliases, so a view handed to a `PlaybackOrdering`
stays stable while the store keeps mutating.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable, Sequence

from zotu.events import (
    FavoriteAdded,
    FavoriteRemoved,
    HistoryAdded,
    HistoryCleared,
    LibraryUpdated,
)
from zotu.models import Track

logger = logging.getLogger(__name__)

MAX_HISTORY = 100

Listener = Callable[[object], None]


class CatalogView(str, enum.Enum):
    """Which catalog collection feeds a playback ordering."""

    LIBRARY = "library"
    FAVORITE = "favorite"
    HISTORY = "history"
    SEARCH = "search"


class CatalogStore:
    """Owns the library plus favorites and most-recent-first history."""

    def __init__(
        self,
        library: Sequence[Track] | None = None,
        favorite_ids: Iterable[str] | None = None,
        history_ids: Iterable[str] | None = None,
        *,
        max_history: int = MAX_HISTORY,
    ) -> None:
        if max_history < 1:
            raise ValueError("max_history must be >= 1")
        self._max_history = max_history
        self._listeners: list[Listener] = []
        self._library: list[Track] = list(library or ())
        self._library_index = _build_index(self._library)

        saved_favorites = list(favorite_ids or ())
        saved_history = list(history_ids or ())

        # Ids persisted by an earlier session may no longer exist; drop them.
        self._favorites: list[Track] = []
        self._favorite_ids: set[str] = set()
        for track_id in saved_favorites:
            track = self.get_by_id(track_id)
            if track is None or track_id in self._favorite_ids:
                continue
            self._favorites.append(track)
            self._favorite_ids.add(track_id)

        self._history: list[Track] = []
        self._history_ids: set[str] = set()
        dropped_history = 0
        for track_id in saved_history:
            track = self.get_by_id(track_id)
            if track is None or track_id in self._history_ids:
                dropped_history += 1
                continue
            if len(self._history) >= self._max_history:
                break
            self._history.append(track)
            self._history_ids.add(track_id)

        dropped = len(saved_favorites) - len(self._favorites)
        if dropped > 0:
            logger.info("Dropped %d unknown favorite ids at load.", dropped)
        if dropped_history > 0:
            logger.info("Dropped %d unknown history ids at load.", dropped_history)

    # Observers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: object) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Catalog listener failed for %r", event)

    # Views

    def library(self) -> tuple[Track, ...]:
        return tuple(self._library)

    def favorites(self) -> tuple[Track, ...]:
        return tuple(self._favorites)

    def history(self) -> tuple[Track, ...]:
        return tuple(self._history)

    def favorite_ids(self) -> frozenset[str]:
        return frozenset(self._favorite_ids)

    def history_ids(self) -> list[str]:
        """Return history identities most-recent-first."""
        return [track.id for track in self._history]

    def search(self, query: str) -> tuple[Track, ...]:
        """Return library tracks whose title, artist or album contains `query`."""
        return tuple(track for track in self._library if track.matches(query))

    def tracks_for(
        self, view: CatalogView | str, query: str | None = None
    ) -> tuple[Track, ...]:
        """Resolve the collection that should feed a playback ordering."""
        view = CatalogView(view)
        if view is CatalogView.LIBRARY:
            return self.library()
        if view is CatalogView.FAVORITE:
            return self.favorites()
        if view is CatalogView.HISTORY:
            return self.history()
        return self.search(query or "")

    def __len__(self) -> int:
        return len(self._library)

    def get_by_id(self, track_id: str) -> Track | None:
        index = self._library_index.get(track_id)
        if index is None:
            return None
        return self._library[index]

    # Favorites

    def is_favorite(self, track_id: str) -> bool:
        return track_id in self._favorite_ids

    def add_to_favorites(self, track_id: str) -> bool:
        """Append a library track to favorites; False when known-favorite or unknown."""
        if track_id in self._favorite_ids:
            return False
        track = self.get_by_id(track_id)
        if track is None:
            return False
        self._favorites.append(track)
        self._favorite_ids.add(track_id)
        self._emit(FavoriteAdded(track_id))
        return True

    def remove_from_favorites(self, track_id: str) -> bool:
        if track_id not in self._favorite_ids:
            return False
        self._favorite_ids.discard(track_id)
        self._favorites = [track for track in self._favorites if track.id != track_id]
        self._emit(FavoriteRemoved(track_id))
        return True

    def toggle_favorite(self, track_id: str) -> bool:
        """Flip favorite membership; returns whether anything changed."""
        if self.is_favorite(track_id):
            return self.remove_from_favorites(track_id)
        return self.add_to_favorites(track_id)

    # History

    def add_to_history(self, track_id: str) -> bool:
        """Move or insert a library track at the front of history.

        A repeat listen moves the existing entry instead of duplicating it.
        The oldest entry is evicted once the view exceeds `max_history`.
        """
        track = self.get_by_id(track_id)
        if track is None:
            return False
        if track_id in self._history_ids:
            self._history = [item for item in self._history if item.id != track_id]
        else:
            self._history_ids.add(track_id)
        self._history.insert(0, track)
        if len(self._history) > self._max_history:
            evicted = self._history.pop()
            self._history_ids.discard(evicted.id)
        self._emit(HistoryAdded(track_id))
        return True

    def clear_history(self) -> None:
        self._history = []
        self._history_ids.clear()
        self._emit(HistoryCleared())

    # Library

    def update_library(self, new_tracks: Sequence[Track] | None) -> None:
        """Replace the library wholesale and purge views that went stale.

        Favorites and history keep their order; entries whose identity is gone
        from the new library are dropped, survivors are re-bound to the new
        track values.
        """
        self._library = list(new_tracks or ())
        self._library_index = _build_index(self._library)

        before = len(self._favorites) + len(self._history)
        self._favorites = self._rebind(self._favorites)
        self._favorite_ids = {track.id for track in self._favorites}
        self._history = self._rebind(self._history)
        self._history_ids = {track.id for track in self._history}
        purged = before - len(self._favorites) - len(self._history)
        if purged:
            logger.info("Purged %d stale favorite/history entries.", purged)
        self._emit(LibraryUpdated(size=len(self._library), purged=purged))

    def _rebind(self, tracks: list[Track]) -> list[Track]:
        rebound: list[Track] = []
        for track in tracks:
            current = self.get_by_id(track.id)
            if current is not None:
                rebound.append(current)
        return rebound


def _build_index(tracks: Sequence[Track]) -> dict[str, int]:
    index: dict[str, int] = {}
    for position, track in enumerate(tracks):
        # First occurrence wins for duplicated identities.
        index.setdefault(track.id, position)
    return index

