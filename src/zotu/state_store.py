"""JSON persistence for user settings.

Loading is tolerant of invalid or missing values: a corrupt or partially
written file degrades to defaults with a logged warning.
"""

from __future__ import annotations

import json
import logging
import math
from contextlib import suppress
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any
from uuid import uuid4

from zotu.runtime_config import (
    clamp_volume,
    normalize_backend,
    normalize_loop_mode,
    normalize_view,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppState:
    """Persisted settings loaded at startup and updated by CLI commands."""

    music_directory: str | None = None
    loop_mode: str = "list"
    volume: float = 0.5
    playback_backend: str = "vlc"
    log_level: str = "INFO"
    last_view: str = "library"


def _coerce_state(data: dict[str, Any]) -> AppState:
    def _float_or_default(value: Any, default: float) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        normalized = float(value)
        return normalized if math.isfinite(normalized) else default

    def _str_or_none(value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value
        return None

    log_level = data.get("log_level")
    return AppState(
        music_directory=_str_or_none(data.get("music_directory")),
        loop_mode=normalize_loop_mode(_str_or_none(data.get("loop_mode"))),
        volume=clamp_volume(_float_or_default(data.get("volume"), 0.5)),
        playback_backend=normalize_backend(
            _str_or_none(data.get("playback_backend"))
        ),
        log_level=log_level.upper() if isinstance(log_level, str) else "INFO",
        last_view=normalize_view(_str_or_none(data.get("last_view"))),
    )


def load_state(path: Path) -> AppState:
    """Load settings from disk, falling back to defaults."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("State file missing at %s; using defaults.", path)
        return AppState()
    except OSError as exc:
        logger.warning("Failed to read state file %s: %s; using defaults.", path, exc)
        return AppState()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("State file at %s is invalid JSON; using defaults.", path)
        return AppState()
    if not isinstance(data, dict):
        logger.warning("State file at %s is not a JSON object; using defaults.", path)
        return AppState()
    return _coerce_state(data)


def save_state(path: Path, state: AppState) -> None:
    """Persist state atomically via write-then-replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
    payload = json.dumps(asdict(state), indent=2, sort_keys=True)
    try:
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(path)
    finally:
        with suppress(OSError):
            tmp_path.unlink()


def update_state(path: Path, **changes: Any) -> AppState:
    """Load, apply `changes` and save; returns the stored state."""
    state = replace(load_state(path), **changes)
    save_state(path, state)
    return state
