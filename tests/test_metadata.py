import pytest

from romshelf.core.metadata import MetadataScraper, needs_metadata
from romshelf.errors import CatalogError
from romshelf.models.game import Game, GameCreate, GameUpdate

from conftest import FakeCatalog


@pytest.fixture
def game(store):
    return store.add_game(GameCreate(
        title="Super Mario World (USA)", rom_path="/roms/smw.sfc", platform_id="snes"
    ))


def test_needs_metadata():
    game = Game(title="x", rom_path="/x", platform_id="nes")
    assert needs_metadata(game)
    game.description = "text"
    assert needs_metadata(game)
    game.cover_art_path = "/covers/x.jpg"
    assert not needs_metadata(game)


def test_scrape_fills_fields_and_cover(tmp_path, store, game):
    catalog = FakeCatalog(cover_url="https://images.example/cover.jpg")
    scraper = MetadataScraper(store, lambda: catalog, tmp_path / "covers")

    result = scraper.scrape_game(game.id)

    assert result.success
    assert catalog.searches == [("Super Mario World", "snes")]
    saved = store.get_game(game.id)
    assert saved.description == "Summary 1"
    assert saved.publisher == "Nintendo"
    assert saved.cover_art_path == str(tmp_path / "covers" / f"{game.id}.jpg")
    assert "cover_art_path" in result.fields_updated


def test_explicit_external_id_skips_search(tmp_path, store, game):
    catalog = FakeCatalog()
    scraper = MetadataScraper(store, lambda: catalog, tmp_path / "covers")

    scraper.scrape_game(game.id, external_id=42)

    assert catalog.searches == []
    assert store.get_game(game.id).description == "Summary 42"


def test_failed_cover_download_keeps_text(tmp_path, store, game):
    class NoCovers(FakeCatalog):
        def download_image(self, url, dest):
            raise CatalogError("Failed to download image: 404")

    scraper = MetadataScraper(
        store, lambda: NoCovers(cover_url="https://x/c.jpg"), tmp_path / "covers"
    )

    assert scraper.scrape_game(game.id).success
    saved = store.get_game(game.id)
    assert saved.description == "Summary 1"
    assert saved.cover_art_path is None


def test_no_match_is_reported_not_raised(tmp_path, store, game):
    class Empty(FakeCatalog):
        def search_games(self, query, platform_id=None):
            return []

    scraper = MetadataScraper(store, Empty, tmp_path / "covers")
    result = scraper.scrape_game(game.id)

    assert not result.success
    assert "No match" in result.error


def test_unknown_game(tmp_path, store):
    scraper = MetadataScraper(store, FakeCatalog, tmp_path / "covers")
    assert not scraper.scrape_game("ghost").success


def test_existing_user_fields_are_overwritten_only_where_catalog_has_data(tmp_path, store, game):
    store.update_game(game.id, GameUpdate(genre=["Mine"], developer="Me"))

    class Sparse(FakeCatalog):
        def get_game_metadata(self, external_id):
            meta = super().get_game_metadata(external_id)
            meta.developer = None
            return meta

    MetadataScraper(store, Sparse, tmp_path / "covers").scrape_game(game.id)

    saved = store.get_game(game.id)
    assert saved.developer == "Me"
    assert saved.genre == ["Platform"]
