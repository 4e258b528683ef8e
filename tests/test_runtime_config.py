"""Tests for runtime config normalization."""

from __future__ import annotations

from zotu.cli import build_parser
from zotu.runtime_config import (
    clamp_auto_advance_interval,
    clamp_volume,
    normalize_backend,
    normalize_loop_mode,
    normalize_view,
    resolve_log_level,
)


def test_resolve_log_level_precedence_matrix() -> None:
    assert resolve_log_level(verbose=False, quiet=False) == "INFO"
    assert resolve_log_level(verbose=True, quiet=False) == "DEBUG"
    assert resolve_log_level(verbose=False, quiet=True) == "WARNING"
    assert resolve_log_level(verbose=True, quiet=True) == "WARNING"


def test_parser_flags_feed_log_resolution() -> None:
    args = build_parser().parse_args(
        ["--backend", "vlc", "--verbose", "--quiet", "doctor"]
    )
    assert args.backend == "vlc"
    assert resolve_log_level(verbose=args.verbose, quiet=args.quiet) == "WARNING"


def test_loop_mode_view_and_backend_normalization() -> None:
    assert normalize_loop_mode(" Random ") == "random"
    assert normalize_loop_mode("repeat") == "list"
    assert normalize_loop_mode(None) == "list"
    assert normalize_view("FAVORITES") == "favorite"
    assert normalize_view("history") == "history"
    assert normalize_view("playlists") == "library"
    assert normalize_backend("FAKE") == "fake"
    assert normalize_backend("") == "vlc"


def test_clamps() -> None:
    assert clamp_volume(-1) == 0.0
    assert clamp_volume(0.4) == 0.4
    assert clamp_volume(3) == 1.0
    assert clamp_auto_advance_interval(0) == 0.05
    assert clamp_auto_advance_interval(0.5) == 0.5
    assert clamp_auto_advance_interval(60) == 5.0
