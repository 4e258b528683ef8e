"""Playable sequence over a snapshot of tracks with an independent shuffle order."""

from __future__ import annotations

import random
from collections.abc import Iterable

from zotu.models import Track


class PlaybackOrdering:
    """Ordered track snapshot plus identity index and shuffle permutation.

    The ordering does not know which catalog view produced its items and is
    rebuilt wholesale whenever the selection changes.
    """

    def __init__(
        self, items: Iterable[Track], *, rng: random.Random | None = None
    ) -> None:
        self._items: tuple[Track, ...] = tuple(items)
        self._position_index: dict[str, int] = {}
        for position, track in enumerate(self._items):
            self._position_index.setdefault(track.id, position)
        self._shuffle_order: list[int] = list(range(len(self._items)))
        self._rng = rng or random.Random()

    @classmethod
    def build(
        cls, items: Iterable[Track], *, rng: random.Random | None = None
    ) -> PlaybackOrdering:
        return cls(items, rng=rng)

    @property
    def items(self) -> tuple[Track, ...]:
        return self._items

    @property
    def shuffle_order(self) -> tuple[int, ...]:
        return tuple(self._shuffle_order)

    def shuffle(self) -> None:
        """Re-permute the shuffle order in place (uniform Fisher-Yates)."""
        self._rng.shuffle(self._shuffle_order)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, position: int) -> Track | None:
        if 0 <= position < len(self._items):
            return self._items[position]
        return None

    def position_of(self, track_id: str) -> int | None:
        return self._position_index.get(track_id)

    def shuffle_target(self, shuffle_position: int) -> int | None:
        """Map a shuffle position to the sequential position it plays."""
        if 0 <= shuffle_position < len(self._shuffle_order):
            return self._shuffle_order[shuffle_position]
        return None

    def shuffle_position_of(self, position: int) -> int | None:
        """Return where sequential `position` sits inside the shuffle order."""
        try:
            return self._shuffle_order.index(position)
        except ValueError:
            return None
