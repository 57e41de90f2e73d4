import pytest

from romshelf.config import Config
from romshelf.core.library import LibraryStore
from romshelf.matchers.matcher_manager import MatcherManager
from romshelf.models.emulator import EmulatorCreate
from romshelf.models.results import CatalogMetadata, CatalogSearchResult


@pytest.fixture
def config(tmp_path):
    Config.reset()
    cfg = Config(data_dir=tmp_path / "data")
    yield cfg
    Config.reset()


@pytest.fixture
def store(tmp_path):
    return LibraryStore(tmp_path / "data" / "library.json")


@pytest.fixture
def matchers():
    mm = MatcherManager()
    mm.discover()
    return mm


@pytest.fixture
def make_emulator(store):
    def _make(name, platforms, args="{rom}", exe=None):
        return store.add_emulator(EmulatorCreate(
            name=name,
            executable_path=exe or f"/opt/{name.lower()}/bin/{name.lower()}",
            launch_arguments=args,
            supported_platform_ids=list(platforms),
        ))
    return _make


def touch(path, data=b"rom"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


class FakeCatalog:
    """Stands in for IgdbClient; ``failures`` maps titles to raised errors."""

    def __init__(self, failures=None, cover_url=None):
        self.failures = dict(failures or {})
        self.cover_url = cover_url
        self.searches = []
        self.downloads = []

    def search_games(self, query, platform_id=None):
        self.searches.append((query, platform_id))
        if query in self.failures:
            raise self.failures[query]
        return [CatalogSearchResult(external_id=len(self.searches), name=query)]

    def get_game_metadata(self, external_id):
        return CatalogMetadata(
            external_id=external_id,
            name=f"game {external_id}",
            summary=f"Summary {external_id}",
            release_date="1994-03-19",
            genres=["Platform"],
            developer="Nintendo R&D1",
            publisher="Nintendo",
            cover_url=self.cover_url,
        )

    def download_image(self, url, dest):
        self.downloads.append(url)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"\xff\xd8jpeg")
        return dest
