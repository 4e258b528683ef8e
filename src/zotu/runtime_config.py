"""Normalization of CLI flags and persisted settings.

Invalid values fall back to defaults instead of failing, so a stale state file
or a typo never blocks startup.
"""

from __future__ import annotations

LOOP_MODES = ("list", "single", "random")
VIEWS = ("library", "favorite", "history", "search")
PLAYBACK_BACKENDS = ("vlc", "fake")
AUTO_ADVANCE_MIN_S = 0.05
AUTO_ADVANCE_MAX_S = 5.0


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def normalize_loop_mode(value: str | None) -> str:
    normalized = (value or "").strip().lower()
    return normalized if normalized in LOOP_MODES else "list"


def normalize_view(value: str | None) -> str:
    normalized = (value or "").strip().lower()
    if normalized == "favorites":
        normalized = "favorite"
    return normalized if normalized in VIEWS else "library"


def normalize_backend(value: str | None) -> str:
    normalized = (value or "").strip().lower()
    return normalized if normalized in PLAYBACK_BACKENDS else "vlc"


def clamp_volume(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def clamp_auto_advance_interval(value: float) -> float:
    """Clamp the auto-advance tick into [0.05, 5.0] seconds."""
    return max(AUTO_ADVANCE_MIN_S, min(AUTO_ADVANCE_MAX_S, float(value)))
