"""Audio output contracts consumed by `PlaybackController`.

The controller stays engine-agnostic: concrete outputs (fake/VLC) expose a
queue-style sink and a decoder that turns a file path into a playable source.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

Source = Any
Decoder = Callable[[Path], Source]


class DecodeError(Exception):
    """Raised by a decoder when a file cannot be opened or decoded."""


class AudioDeviceError(RuntimeError):
    """Raised when no audio device can be opened at startup."""


class AudioOutput(Protocol):
    """Single audio sink exclusively driven by the playback controller."""

    def stop(self) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def is_paused(self) -> bool: ...

    def queue_empty(self) -> bool: ...

    def append(self, source: Source) -> None: ...
