"""Command-line interface for zotu."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from . import __version__
from .doctor import render_report, run_doctor
from .events import PlaybackFailed, TrackChanged
from .logging_utils import setup_logging
from .paths import AppPaths
from .runtime_config import (
    LOOP_MODES,
    VIEWS,
    clamp_volume,
    normalize_backend,
    normalize_loop_mode,
    normalize_view,
    resolve_log_level,
)
from .services.audio_output import AudioDeviceError, AudioOutput, Decoder
from .services.catalog_db import CatalogDatabase, Category, load_catalog_store
from .services.catalog_store import CatalogStore
from .services.fake_output import FakeAudioOutput, FakeDecoder
from .services.metadata_service import MetadataService
from .services.player_service import PlayerService
from .state_store import AppState, load_state, update_state
from .utils.time_format import format_duration
from .version import build_help_epilog

logger = logging.getLogger(__name__)

# Fake backend play length for tracks whose duration is unknown.
FAKE_DEFAULT_DURATION_S = 3.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zotu",
        description="Library-backed music player.",
        epilog=build_help_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument(
        "--data-dir", help="Override the per-user data and config directories"
    )
    parser.add_argument(
        "--backend",
        choices=("fake", "vlc"),
        help="Audio output to use (fake or vlc).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Scan a folder into the library")
    import_cmd.add_argument("folder", help="Folder to scan recursively")

    list_cmd = commands.add_parser("list", help="Print a catalog view")
    _add_view_arguments(list_cmd)

    favorite_cmd = commands.add_parser("favorite", help="Toggle a favorite")
    favorite_cmd.add_argument("track_id")

    commands.add_parser("clear-history", help="Forget listening history")

    play_cmd = commands.add_parser("play", help="Play a catalog view until Ctrl-C")
    _add_view_arguments(play_cmd)
    play_cmd.add_argument("--loop-mode", choices=LOOP_MODES)
    play_cmd.add_argument("--track", dest="track_id", help="Start from this track id")
    play_cmd.add_argument(
        "--volume", type=float, help="Output volume from 0.0 to 1.0 (saved)"
    )

    commands.add_parser("doctor", help="Check tag reader, audio output and storage")
    return parser


def _add_view_arguments(command: argparse.ArgumentParser) -> None:
    command.add_argument("--view", choices=VIEWS, help="Collection to use")
    command.add_argument("--search", help="Substring filter (implies --view search)")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    app_paths = AppPaths.resolve(args.data_dir)
    state = load_state(app_paths.state)
    if args.verbose or args.quiet:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
    else:
        level = state.log_level
    try:
        app_paths.ensure()
        setup_logging(
            log_dir=app_paths.logs,
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
        )
        logger.info("Starting zotu %s (%s)", __version__, args.command)
        return asyncio.run(_dispatch(args, app_paths, state))
    except AudioDeviceError as exc:
        logger.error("Audio device unavailable: %s", exc)
        print(
            f"Could not open an audio device: {exc}\n"
            "Next step: run `zotu doctor` or retry with --backend fake.",
            file=sys.stderr,
        )
        return 2
    except KeyboardInterrupt:
        return 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logger.exception("Unhandled error: %s", exc)
        print("Unexpected error. Re-run with --verbose for details.", file=sys.stderr)
        return 1


async def _dispatch(
    args: argparse.Namespace, app_paths: AppPaths, state: AppState
) -> int:
    backend = normalize_backend(args.backend or state.playback_backend)
    if args.command == "doctor":
        report = run_doctor(backend, app_paths.data)
        print(render_report(report))
        return report.exit_code

    db = CatalogDatabase(app_paths.db)
    await db.initialize()
    if args.command == "import":
        return await _cmd_import(db, Path(args.folder), app_paths)
    if args.command == "list":
        return await _cmd_list(db, args)
    if args.command == "favorite":
        return await _cmd_favorite(db, args.track_id)
    if args.command == "clear-history":
        removed = await db.clear_category(Category.HISTORY)
        print(f"Cleared {removed} history entries.")
        return 0
    return await _cmd_play(db, args, app_paths, state, backend)


async def _cmd_import(db: CatalogDatabase, folder: Path, app_paths: AppPaths) -> int:
    if not folder.expanduser().is_dir():
        print(f"Not a directory: {folder}", file=sys.stderr)
        return 2
    service = MetadataService(db, cover_dir=app_paths.covers)
    report = await service.import_folder(folder)
    print(
        f"Scanned {report.scanned} files: {len(report.imported)} imported, "
        f"{report.skipped} already known, {len(report.failures)} failed."
    )
    for failure in report.failures:
        print(f"  failed: {failure.path} ({failure.reason})", file=sys.stderr)
    update_state(app_paths.state, music_directory=str(folder.expanduser().resolve()))
    return 0


async def _cmd_list(db: CatalogDatabase, args: argparse.Namespace) -> int:
    catalog = await load_catalog_store(db)
    view, query = _selected_view(args)
    tracks = catalog.tracks_for(view, query)
    for track in tracks:
        marker = "*" if catalog.is_favorite(track.id) else " "
        print(
            f"{marker} {track.id}  {track.title} - {track.artist} "
            f"[{track.album}] {format_duration(track.duration)}"
        )
    if not tracks:
        print(f"No tracks in {view}.")
    return 0


async def _cmd_favorite(db: CatalogDatabase, track_id: str) -> int:
    catalog = await load_catalog_store(db)
    track = catalog.get_by_id(track_id)
    if track is None:
        print(f"Unknown track id: {track_id}", file=sys.stderr)
        return 1
    catalog.toggle_favorite(track_id)
    if catalog.is_favorite(track_id):
        await db.add_to_category(Category.FAVORITE, track_id)
        print(f"Added to favorites: {track.title}")
    else:
        await db.remove_from_category(Category.FAVORITE, track_id)
        print(f"Removed from favorites: {track.title}")
    return 0


async def _cmd_play(
    db: CatalogDatabase,
    args: argparse.Namespace,
    app_paths: AppPaths,
    state: AppState,
    backend: str,
) -> int:
    catalog = await load_catalog_store(db)
    view, query = _selected_view(args, default=state.last_view)
    loop_mode = normalize_loop_mode(args.loop_mode or state.loop_mode)
    volume = clamp_volume(args.volume if args.volume is not None else state.volume)
    output, decoder = _build_output(backend, catalog, volume)
    service = PlayerService(
        emit_event=_print_event,
        catalog=catalog,
        output=output,
        decoder=decoder,
        persistence=db,
        loop_mode=loop_mode,
    )
    await service.start()
    try:
        size = await service.select_view(view, query)
        if size == 0 and not args.track_id:
            print(f"Nothing to play in {view}.")
            return 0
        if args.track_id:
            if not await service.play_track_id(args.track_id):
                print(f"Unknown track id: {args.track_id}", file=sys.stderr)
                return 1
        else:
            await service.next_track()
        await asyncio.Event().wait()
    finally:
        final_mode = service.state.loop_mode.value
        await service.shutdown()
        release = getattr(output, "release", None)
        if callable(release):
            release()
        update_state(
            app_paths.state, loop_mode=final_mode, last_view=view, volume=volume
        )
    return 0


def _selected_view(
    args: argparse.Namespace, *, default: str = "library"
) -> tuple[str, str | None]:
    if args.search:
        return "search", args.search
    return normalize_view(args.view or default), None


def _build_output(
    backend: str, catalog: CatalogStore, volume: float
) -> tuple[AudioOutput, Decoder]:
    logger.info("Audio output selected: %s", backend)
    if backend == "vlc":
        from .services.vlc_output import VLCAudioOutput

        vlc_output = VLCAudioOutput(volume=clamp_volume(volume))
        return vlc_output, vlc_output.decode
    durations = {
        track.path: float(track.duration)
        for track in catalog.library()
        if track.duration > 0
    }
    decoder = FakeDecoder(
        durations=durations, default_duration_s=FAKE_DEFAULT_DURATION_S
    )
    return FakeAudioOutput(), decoder


async def _print_event(event: object) -> None:
    if isinstance(event, TrackChanged):
        now = event.now_playing
        length = format_duration(now.duration)
        print(f"Now playing: {now.artist} - {now.title} ({length})")
    elif isinstance(event, PlaybackFailed):
        print(f"Cannot play {event.path}: {event.reason}", file=sys.stderr)


if __name__ == "__main__":
    raise SystemExit(main())
