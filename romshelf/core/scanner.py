"""Scan reconciler — merges scanned ROM folders into the library.

For every scan location the reconciler walks the folder tree, lets the
folder-format matchers claim multi-file games first, matches the
remaining files against the platform catalog by extension, and then
adds or updates library entries.

Reconciliation is idempotent: a ROM path already in the library is an
*update*, never a second entry, so rescanning an unchanged folder adds
nothing.  Per-file problems are collected into
:attr:`ScanOutcome.errors` and never stop the scan.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Callable

from loguru import logger

from romshelf.core.library import LibraryStore, normalize_rom_path
from romshelf.errors import InputError, StorageError
from romshelf.matchers.base import FolderMatcher, MatchedGame
from romshelf.matchers.matcher_manager import MatcherManager
from romshelf.models.game import GameCreate, GameUpdate
from romshelf.models.platform import Platform, detect_platform_from_path
from romshelf.models.results import ScanLocation, ScanOutcome

_TAG_RE = re.compile(r"\s*(\([^)]*\)|\[[^\]]*\]|\{[^}]*\})")


def clean_rom_title(stem: str) -> str:
    """Strip ROM-set tags like ``(USA)``, ``[!]`` and ``{Rev A}`` from *stem*."""
    clean = " ".join(_TAG_RE.sub("", stem).split())
    return clean or stem.strip() or "Unknown"


def extension_of(path: Path) -> str:
    return path.suffix.lower()


class ScanReconciler:
    """Reconciles scan locations against the library store."""

    def __init__(
        self,
        store: LibraryStore,
        matchers: MatcherManager | None = None,
    ) -> None:
        self._store = store
        self._matchers = matchers

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reconcile(
        self,
        locations: list[ScanLocation],
        on_location: Callable[[int, int, str], None] | None = None,
    ) -> ScanOutcome:
        """Scan *locations* in order and persist new or updated games.

        ``on_location(index, total, path)`` is called before each
        location is walked.  A :class:`StorageError` from the store is
        fatal and propagates; games persisted before it stay persisted.
        """
        outcome = ScanOutcome()
        platforms = {p.id: p for p in self._store.get_all_platforms()}
        ext_owners = self._build_extension_map(platforms.values())

        for index, location in enumerate(locations):
            if on_location is not None:
                on_location(index, len(locations), location.path)
            self._scan_location(location, platforms, ext_owners, outcome)

        logger.info(
            "Scan finished: found={} added={} updated={} errors={}",
            outcome.games_found, outcome.games_added,
            outcome.games_updated, len(outcome.errors),
        )
        return outcome

    def get_rom_info(self, rom_path: str | Path) -> tuple[str, str] | None:
        """Return ``(clean title, platform id)`` for a single ROM file, if known."""
        path = Path(rom_path)
        if not path.is_file():
            return None
        ext = extension_of(path)
        if not ext:
            return None
        for platform in self._store.get_all_platforms():
            if platform.accepts(ext):
                return clean_rom_title(path.stem), platform.id
        return None

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _scan_location(
        self,
        location: ScanLocation,
        platforms: dict[str, Platform],
        ext_owners: dict[str, list[str]],
        outcome: ScanOutcome,
    ) -> None:
        if not location.path or not location.path.strip():
            outcome.errors.append("Invalid scan location: empty path")
            return
        if location.platform_id and location.platform_id not in platforms:
            outcome.errors.append(
                f"Unknown platform '{location.platform_id}' for {location.path}"
            )
            return

        root = Path(location.path).expanduser()
        if not root.exists():
            outcome.errors.append(f"Path does not exist: {root}")
            return

        logger.info(
            "Scanning {} (platform override: {})", root, location.platform_id or "-"
        )
        if root.is_file():
            self._reconcile_file(root, location, ext_owners, outcome)
            return

        consumed: set[str] = set()
        visited: set[str] = set()

        def _on_walk_error(err: OSError) -> None:
            outcome.errors.append(f"Cannot read {err.filename}: {err.strerror}")

        for dirpath, dirnames, filenames in os.walk(
            root, onerror=_on_walk_error, followlinks=True
        ):
            directory = Path(dirpath)
            real = os.path.realpath(dirpath)
            if real in visited:
                # Symlink loop
                dirnames[:] = []
                continue
            visited.add(real)
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))

            claimed = self._claim_directory(directory, outcome)
            if claimed is not None:
                dirnames[:] = []
                self._reconcile_candidate(claimed, location, ext_owners, outcome)
                continue

            names = sorted(
                f for f in filenames
                if not f.startswith(".")
                and normalize_rom_path(directory / f) not in consumed
            )
            for game in self._claim_files(directory, names, consumed, outcome):
                self._reconcile_candidate(game, location, ext_owners, outcome)

            for name in names:
                file_path = directory / name
                if normalize_rom_path(file_path) in consumed:
                    continue
                self._reconcile_file(file_path, location, ext_owners, outcome)

    def _claim_directory(
        self, directory: Path, outcome: ScanOutcome
    ) -> MatchedGame | None:
        for matcher in self._iter_matchers():
            try:
                game = matcher.claim_directory(directory)
            except OSError as e:
                outcome.errors.append(f"{matcher.name}: cannot inspect {directory}: {e}")
                continue
            if game is not None:
                logger.debug("{} claimed directory {}", matcher.name, directory)
                return game
        return None

    def _claim_files(
        self,
        directory: Path,
        names: list[str],
        consumed: set[str],
        outcome: ScanOutcome,
    ) -> list[MatchedGame]:
        games: list[MatchedGame] = []
        for matcher in self._iter_matchers():
            remaining = [
                n for n in names if normalize_rom_path(directory / n) not in consumed
            ]
            if not remaining:
                break
            try:
                found, used = matcher.claim_files(directory, remaining)
            except OSError as e:
                outcome.errors.append(f"{matcher.name}: cannot read files in {directory}: {e}")
                continue
            games.extend(found)
            consumed.update(normalize_rom_path(p) for p in used)
        return games

    def _iter_matchers(self) -> list[FolderMatcher]:
        if self._matchers is None:
            return []
        return self._matchers.get_all_matchers()

    # ------------------------------------------------------------------
    # Reconcile
    # ------------------------------------------------------------------

    def _reconcile_file(
        self,
        file_path: Path,
        location: ScanLocation,
        ext_owners: dict[str, list[str]],
        outcome: ScanOutcome,
    ) -> None:
        ext = extension_of(file_path)
        if not location.platform_id and ext not in ext_owners:
            return
        self._reconcile_candidate(
            MatchedGame(rom_path=file_path), location, ext_owners, outcome
        )

    def _reconcile_candidate(
        self,
        candidate: MatchedGame,
        location: ScanLocation,
        ext_owners: dict[str, list[str]],
        outcome: ScanOutcome,
    ) -> None:
        path = candidate.rom_path
        outcome.games_found += 1

        platform_id = self._resolve_platform(candidate, location, ext_owners)
        if platform_id is None:
            owners = ext_owners.get(extension_of(path), [])
            outcome.errors.append(
                f"Ambiguous platform for {path}: {', '.join(owners)}"
            )
            return

        try:
            existing = self._store.get_game_by_path(path)
            if existing is not None:
                if location.platform_id and existing.platform_id != platform_id:
                    self._store.update_game(existing.id, GameUpdate(platform_id=platform_id))
                    logger.info(
                        "Re-assigned {} from {} to {}",
                        existing.title, existing.platform_id, platform_id,
                    )
                outcome.games_updated += 1
                return

            title = candidate.title or clean_rom_title(
                path.name if path.is_dir() else path.stem
            )
            self._store.add_game(GameCreate(title=title, rom_path=str(path), platform_id=platform_id))
            outcome.games_added += 1
        except StorageError:
            raise
        except (InputError, OSError) as e:
            logger.warning("Failed to add {}: {}", path, e)
            outcome.errors.append(f"Failed to add {path}: {e}")

    @staticmethod
    def _resolve_platform(
        candidate: MatchedGame,
        location: ScanLocation,
        ext_owners: dict[str, list[str]],
    ) -> str | None:
        if location.platform_id:
            return location.platform_id
        if candidate.platform_id:
            return candidate.platform_id
        owners = ext_owners.get(extension_of(candidate.rom_path), [])
        if len(owners) == 1:
            return owners[0]
        if not owners:
            return None
        return detect_platform_from_path(str(candidate.rom_path), set(owners))

    @staticmethod
    def _build_extension_map(platforms) -> dict[str, list[str]]:  # noqa: ANN001
        """Map each extension to the platforms that accept it, in catalog order."""
        owners: dict[str, list[str]] = {}
        for platform in platforms:
            for ext in platform.file_extensions:
                owners.setdefault(ext.lower(), []).append(platform.id)
        return owners
