"""Metadata enrichment — fills library games from the external catalog."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from loguru import logger

from romshelf.core.library import LibraryStore
from romshelf.core.scanner import clean_rom_title
from romshelf.errors import CatalogError, LibraryError, StorageError
from romshelf.models.game import Game, GameUpdate
from romshelf.models.results import CatalogSearchResult, ScrapeResult
from romshelf.scraper.igdb import IgdbClient


def needs_metadata(game: Game) -> bool:
    """True when a game still lacks a description or a cover."""
    return not game.description or not game.cover_art_path


class MetadataScraper:
    """Fetches catalog metadata for games and merges it into the library."""

    def __init__(
        self,
        store: LibraryStore,
        client_factory: Callable[[], IgdbClient],
        covers_dir: Path,
    ) -> None:
        self._store = store
        self._client_factory = client_factory
        self._covers_dir = covers_dir

    def search(self, query: str, platform_id: str | None = None) -> list[CatalogSearchResult]:
        return self._client_factory().search_games(query, platform_id)

    def scrape_game(self, game_id: str, external_id: int | None = None) -> ScrapeResult:
        """Scrape one game, reporting failure in the result instead of raising.

        A :class:`StorageError` still propagates.
        """
        try:
            game = self._store.require_game(game_id)
            fields = self.apply_metadata(game, external_id)
        except StorageError:
            raise
        except LibraryError as e:
            logger.warning("Scrape failed for {}: {}", game_id, e)
            return ScrapeResult(success=False, game_id=game_id, error=str(e))
        return ScrapeResult(success=True, game_id=game_id, fields_updated=fields)

    def apply_metadata(self, game: Game, external_id: int | None = None) -> list[str]:
        """Fetch metadata for *game* and write every field the catalog has.

        Raises :class:`CatalogError` when nothing matches or the catalog
        is unreachable.  Returns the names of the fields written.
        """
        client = self._client_factory()
        if external_id is None:
            query = clean_rom_title(game.title)
            hits = client.search_games(query, game.platform_id)
            if not hits:
                raise CatalogError(f"No match found for '{game.title}'")
            external_id = hits[0].external_id
            logger.debug("Auto-matched '{}' to {} ({})", game.title, hits[0].name, external_id)

        meta = client.get_game_metadata(external_id)
        updates = GameUpdate(
            description=meta.summary or None,
            release_date=meta.release_date or None,
            genre=meta.genres or None,
            developer=meta.developer or None,
            publisher=meta.publisher or None,
            screenshots=meta.screenshot_urls or None,
        )
        if meta.cover_url:
            dest = self._covers_dir / f"{game.id}.jpg"
            try:
                client.download_image(meta.cover_url, dest)
                updates.cover_art_path = str(dest)
            except (CatalogError, OSError) as e:
                # Text metadata is still worth keeping without the cover
                logger.warning("Cover download failed for '{}': {}", game.title, e)

        written = self._store.update_game(game.id, updates)
        logger.info("Scraped '{}': {}", game.title, ", ".join(written) or "nothing new")
        return written
