"""RomShelf — command-line entry point."""

import argparse
import sys
from pathlib import Path

from loguru import logger

from romshelf.config import Config
from romshelf.core.service import LibraryService
from romshelf.errors import LibraryError
from romshelf.logger import setup_logger
from romshelf.models.results import ScanLocation


def _parse_location(raw: str) -> ScanLocation:
    """``PATH`` or ``PATH::PLATFORM``."""
    path, sep, platform_id = raw.partition("::")
    return ScanLocation(path=path, platform_id=platform_id if sep else None)


def _print_progress(event) -> None:  # noqa: ANN001
    print(f"[{event.index + 1}/{event.total}] {event.status.value:<11} {event.title}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="romshelf", description=__doc__)
    parser.add_argument("--data-dir", type=Path, help="Override the data directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug console logging")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Reconcile ROM folders into the library")
    scan.add_argument(
        "locations", nargs="*",
        help="PATH or PATH::PLATFORM (defaults to the saved scan folders)",
    )
    scan.add_argument("--save", action="store_true", help="Remember the given folders")

    sub.add_parser("list", help="List library games")

    launch = sub.add_parser("launch", help="Launch a game")
    launch.add_argument("game_id")
    launch.add_argument("--emulator", help="Emulator id to use instead of the defaults")

    scrape = sub.add_parser("scrape", help="Fetch catalog metadata")
    scrape.add_argument("game_ids", nargs="*", help="Games to scrape (default: library)")
    scrape.add_argument("--all", action="store_true", help="Include games that have metadata")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    # ---- 1. Config ----
    config = Config(data_dir=args.data_dir)

    # ---- 2. Logger ----
    setup_logger(level="DEBUG" if args.verbose else "INFO")
    logger.info("RomShelf starting… data dir: {}", config.data_dir)

    # ---- 3. Core services ----
    service = LibraryService(config)
    limit = config.error_display_limit

    try:
        if args.command == "scan":
            locations = [_parse_location(raw) for raw in args.locations]
            if args.save:
                for loc in locations:
                    config.add_scan_folder(loc.path, loc.platform_id)
            outcome = (
                service.scan_library(locations) if locations
                else service.scan_saved_folders()
            )
            print(
                f"Found {outcome.games_found}, added {outcome.games_added}, "
                f"updated {outcome.games_updated}"
            )
            for line in outcome.display_errors(limit):
                print(f"  ! {line}")
            return 1 if outcome.errors else 0

        if args.command == "list":
            for game in sorted(service.store.get_all_games(), key=lambda g: g.title.lower()):
                fav = "*" if game.is_favorite else " "
                print(f"{fav} {game.id}  [{game.platform_id}] {game.title}")
            return 0

        if args.command == "launch":
            if args.emulator:
                result = service.launch_game_with_emulator(args.game_id, args.emulator)
            else:
                result = service.launch_game(args.game_id)
            if result.success:
                print(f"Launched (pid {result.pid})")
                return 0
            print(f"Launch failed: {result.error}")
            for emu in result.candidates:
                print(f"  candidate: {emu.id}  {emu.name}")
            return 1

        if args.command == "scrape":
            if args.game_ids:
                result = service.scrape_games(args.game_ids, on_progress=_print_progress)
            else:
                result = service.scrape_library_metadata(
                    only_missing=not args.all, on_progress=_print_progress
                )
            print(f"{result.successful}/{result.total} scraped, {result.failed} failed")
            for line in result.display_errors(limit):
                print(f"  ! {line}")
            return 1 if result.failed else 0
    except LibraryError as e:
        logger.error("{}", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
