"""Library service — the command surface the UI (or CLI) talks to.

Each public method corresponds to one command.  Single-item commands
raise :class:`~romshelf.errors.LibraryError` subclasses straight to the
caller; bulk commands return a :class:`BatchResult` with the per-game
failures as data.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from romshelf.config import Config
from romshelf.core.batch import (
    BatchOrchestrator,
    DeleteOperation,
    ProgressFn,
    ScrapeOperation,
)
from romshelf.core.launcher import Launcher, SpawnFn, validate_emulator_path
from romshelf.core.library import LibraryStore
from romshelf.core.metadata import MetadataScraper, needs_metadata
from romshelf.core.resolver import EmulatorResolver
from romshelf.core.retroarch import (
    RetroArchCore,
    get_default_retroarch_cores_path,
    scan_retroarch_cores,
)
from romshelf.core.scanner import ScanReconciler
from romshelf.core.selection import SelectionTracker
from romshelf.errors import InputError
from romshelf.matchers.matcher_manager import MatcherManager
from romshelf.models.batch import BatchJob, BatchResult, CancellationToken
from romshelf.models.emulator import Emulator, EmulatorCreate
from romshelf.models.game import Game, GameCreate, GameUpdate
from romshelf.models.results import (
    CatalogSearchResult,
    LaunchResult,
    ScanLocation,
    ScanOutcome,
    ScrapeResult,
)
from romshelf.scraper.igdb import HttpFn, IgdbClient


class LibraryService:
    """Wires the store, reconciler, resolver, launcher and batch runner together."""

    def __init__(
        self,
        config: Config,
        store: LibraryStore | None = None,
        matchers: MatcherManager | None = None,
        spawn: SpawnFn | None = None,
        http: HttpFn | None = None,
        on_reload: Callable[[], None] | None = None,
    ) -> None:
        self._cfg = config
        self._http = http
        self.store = store or LibraryStore(config.library_path)
        self.selection = SelectionTracker()

        if matchers is None:
            matchers = MatcherManager()
            matchers.discover()
        self.reconciler = ScanReconciler(self.store, matchers)
        self.resolver = EmulatorResolver(self.store)
        self.launcher = Launcher(self.store, self.resolver, spawn=spawn)
        self.scraper = MetadataScraper(self.store, self._igdb_client, config.covers_dir)
        self.batch = BatchOrchestrator(self.store, on_reload=on_reload)

        self._igdb: IgdbClient | None = None
        self._igdb_key: tuple[str, str] | None = None

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def scan_library(self, locations: list[ScanLocation | dict]) -> ScanOutcome:
        parsed = [
            loc if isinstance(loc, ScanLocation) else ScanLocation.from_dict(loc)
            for loc in locations
        ]
        return self.reconciler.reconcile(parsed)

    def scan_saved_folders(self) -> ScanOutcome:
        return self.scan_library(self._cfg.scan_folders)

    def get_rom_info(self, rom_path: str) -> tuple[str, str] | None:
        return self.reconciler.get_rom_info(rom_path)

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    def add_game(self, data: GameCreate) -> Game:
        return self.store.add_game(data)

    def update_game(self, game_id: str, updates: GameUpdate) -> None:
        self.store.update_game(game_id, updates)

    def delete_game(self, game_id: str) -> None:
        self.store.delete_game(game_id)
        self.selection.prune({g.id for g in self.store.get_all_games()})

    def toggle_favorite(self, game_id: str) -> bool:
        return self.store.toggle_favorite(game_id)

    def set_custom_cover_art(self, game_id: str, image_path: str | Path) -> str:
        """Copy *image_path* into the covers folder as the game's cover.

        Returns the stored cover path.
        """
        game = self.store.require_game(game_id)
        source = Path(image_path).expanduser()
        if not source.is_file():
            raise InputError(f"Image not found: {source}")

        covers = self._cfg.covers_dir
        covers.mkdir(parents=True, exist_ok=True)
        dest = covers / f"{game.id}{source.suffix.lower() or '.jpg'}"
        # A previous cover in another format would otherwise linger
        for old in covers.glob(f"{game.id}.*"):
            if old != dest:
                old.unlink(missing_ok=True)
        shutil.copyfile(source, dest)
        self.store.update_game(game.id, GameUpdate(cover_art_path=str(dest)))
        logger.info("Custom cover for '{}': {}", game.title, dest)
        return str(dest)

    def set_default_emulator(self, platform_id: str, emulator_id: str) -> None:
        self.store.set_default_emulator(platform_id, emulator_id)

    # ------------------------------------------------------------------
    # Launching
    # ------------------------------------------------------------------

    def launch_game(self, game_id: str) -> LaunchResult:
        return self.launcher.launch_game(game_id)

    def launch_game_with_emulator(self, game_id: str, emulator_id: str) -> LaunchResult:
        return self.launcher.launch_game_with_emulator(game_id, emulator_id)

    def end_game_session(self, game_id: str) -> int:
        return self.launcher.end_game_session(game_id)

    @staticmethod
    def validate_emulator_path(path: str | Path) -> bool:
        return validate_emulator_path(path)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def search_metadata_catalog(
        self, query: str, platform_id: str | None = None
    ) -> list[CatalogSearchResult]:
        return self.scraper.search(query, platform_id)

    def scrape_game_metadata(
        self, game_id: str, external_id: int | None = None
    ) -> ScrapeResult:
        return self.scraper.scrape_game(game_id, external_id)

    def validate_catalog_credentials(self) -> bool:
        return self._igdb_client().validate_credentials()

    # ------------------------------------------------------------------
    # Bulk actions
    # ------------------------------------------------------------------

    def delete_games(
        self,
        game_ids: list[str],
        token: CancellationToken | None = None,
        on_progress: ProgressFn | None = None,
    ) -> BatchResult:
        result = self.batch.run(
            BatchJob(list(game_ids)), DeleteOperation(self.store), token, on_progress
        )
        self.selection.prune({g.id for g in self.store.get_all_games()})
        return result

    def scrape_games(
        self,
        game_ids: list[str],
        token: CancellationToken | None = None,
        on_progress: ProgressFn | None = None,
    ) -> BatchResult:
        return self.batch.run(
            BatchJob(list(game_ids)), ScrapeOperation(self.scraper), token, on_progress
        )

    def scrape_library_metadata(
        self,
        only_missing: bool | None = None,
        token: CancellationToken | None = None,
        on_progress: ProgressFn | None = None,
    ) -> BatchResult:
        """Scrape the whole library, or only games lacking metadata."""
        if only_missing is None:
            only_missing = self._cfg.scrape_only_missing
        games = self.store.get_all_games()
        if only_missing:
            games = [g for g in games if needs_metadata(g)]
        logger.info("Library scrape: {} games (only missing: {})", len(games), only_missing)
        return self.scrape_games([g.id for g in games], token, on_progress)

    # ------------------------------------------------------------------
    # RetroArch
    # ------------------------------------------------------------------

    @staticmethod
    def get_default_retroarch_cores_path() -> str | None:
        path = get_default_retroarch_cores_path()
        return str(path) if path else None

    def scan_retroarch_cores(self, cores_dir: str | Path | None = None) -> list[RetroArchCore]:
        """List installed cores; defaults to the saved or OS cores folder."""
        cores_dir = cores_dir or self._cfg.get("retroarch_cores_path") or get_default_retroarch_cores_path()
        if not cores_dir:
            raise InputError("No RetroArch cores folder configured")
        return scan_retroarch_cores(cores_dir)

    def import_retroarch_cores(
        self,
        retroarch_path: str | Path,
        cores: list[RetroArchCore],
        platform_ids: dict[str, list[str]] | None = None,
    ) -> list[Emulator]:
        """Add one emulator per core; cores already configured are skipped.

        *platform_ids* overrides the suggested platforms per core file name.
        A core with no known platform is skipped.
        """
        if not str(retroarch_path).strip():
            raise InputError("RetroArch executable path is required")
        overrides = platform_ids or {}
        known = {p.id for p in self.store.get_all_platforms()}
        existing = [e.launch_arguments for e in self.store.get_all_emulators()]

        added: list[Emulator] = []
        for core in cores:
            if any(core.full_path in args for args in existing):
                logger.debug("Core {} is already configured", core.file_name)
                continue
            wanted = overrides.get(core.file_name, core.suggested_platform_ids)
            supported = [p for p in wanted if p in known]
            if not supported:
                logger.warning("Skipping core {}: no known platform", core.file_name)
                continue
            added.append(self.store.add_emulator(EmulatorCreate(
                name=f"RetroArch ({core.display_name})",
                executable_path=str(retroarch_path),
                launch_arguments=core.launch_arguments,
                supported_platform_ids=supported,
            )))
        self._cfg.set("retroarch_path", str(retroarch_path))
        logger.info("Imported {} RetroArch cores", len(added))
        return added

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str) -> Any:
        return self._cfg.get(key)

    def set_setting(self, key: str, value: Any) -> None:
        self._cfg.set(key, value)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _igdb_client(self) -> IgdbClient:
        """Return a cached client; a credential change builds a new one."""
        key = (self._cfg.igdb_client_id, self._cfg.igdb_client_secret)
        if self._igdb is None or self._igdb_key != key:
            self._igdb = IgdbClient(*key, http=self._http)
            self._igdb_key = key
        return self._igdb
