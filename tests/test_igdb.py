import io
import json
import urllib.error

import pytest

from romshelf.errors import CatalogError
from romshelf.scraper.igdb import GAMES_URL, TOKEN_URL, IgdbClient, get_igdb_platform_id


class FakeHttp:
    """Replays canned IGDB responses and records every request."""

    def __init__(self, games=None, expires_in=3600):
        self.games = games or []
        self.expires_in = expires_in
        self.requests = []

    def __call__(self, req):
        self.requests.append(req)
        if req.full_url == TOKEN_URL:
            return json.dumps({
                "access_token": f"tok{len(self.token_requests)}",
                "expires_in": self.expires_in,
            }).encode("utf-8")
        if req.full_url == GAMES_URL:
            return json.dumps(self.games).encode("utf-8")
        return b"image-bytes"

    @property
    def token_requests(self):
        return [r for r in self.requests if r.full_url == TOKEN_URL]

    @property
    def game_requests(self):
        return [r for r in self.requests if r.full_url == GAMES_URL]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _client(http, clock=None):
    return IgdbClient("client", "secret", http=http, clock=clock or FakeClock())


def test_missing_credentials_rejected():
    with pytest.raises(CatalogError):
        IgdbClient("", "secret")


def test_token_is_cached_until_near_expiry():
    http, clock = FakeHttp(), FakeClock()
    client = _client(http, clock)

    client.search_games("Metroid")
    client.search_games("Zelda")
    assert len(http.token_requests) == 1

    clock.now = 3600 - 59
    client.search_games("Kirby")
    assert len(http.token_requests) == 2
    assert http.game_requests[-1].get_header("Authorization") == "Bearer tok2"


def test_search_ranks_exact_name_then_earliest_release():
    http = FakeHttp(games=[
        {"id": 2, "name": "Metroid Prime", "first_release_date": 1037059200},
        {"id": 4, "name": "Metroid Dread"},
        {"id": 3, "name": "Metroid II", "first_release_date": 667785600},
        {"id": 1, "name": "metroid", "first_release_date": 523238400,
         "cover": {"image_id": "co1abc"}},
    ])

    results = _client(http).search_games("Metroid", "nes")

    assert [r.external_id for r in results] == [1, 3, 2, 4]
    assert results[0].release_date == "1986-08-01"
    assert results[0].cover_url.endswith("/co1abc.jpg")
    body = http.game_requests[0].data.decode("utf-8")
    assert 'search "Metroid"' in body
    assert "where platforms = (18);" in body


def test_unknown_platform_is_not_filtered():
    http = FakeHttp()
    _client(http).search_games("Doom", "not-a-platform")
    assert "where platforms" not in http.game_requests[0].data.decode("utf-8")


def test_metadata_picks_first_developer_and_publisher():
    http = FakeHttp(games=[{
        "id": 1026,
        "name": "The Legend of Zelda: A Link to the Past",
        "summary": "Link returns.",
        "first_release_date": 690681600,
        "genres": [{"name": "Adventure"}, {"name": "Role-playing (RPG)"}],
        "involved_companies": [
            {"company": {"name": "Nintendo EAD"}, "developer": True, "publisher": False},
            {"company": {"name": "Nintendo"}, "developer": False, "publisher": True},
        ],
        "screenshots": [{"image_id": f"sc{i}"} for i in range(8)],
    }])

    meta = _client(http).get_game_metadata(1026)

    assert meta.developer == "Nintendo EAD"
    assert meta.publisher == "Nintendo"
    assert meta.genres == ["Adventure", "Role-playing (RPG)"]
    assert meta.release_date == "1991-11-21"
    assert len(meta.screenshot_urls) == 5
    assert meta.cover_url is None


def test_metadata_for_missing_game():
    with pytest.raises(CatalogError):
        _client(FakeHttp(games=[])).get_game_metadata(99)


def test_http_error_becomes_catalog_error():
    def http(req):
        raise urllib.error.HTTPError(req.full_url, 401, "Unauthorized", {}, io.BytesIO(b"invalid client"))

    client = _client(http)
    with pytest.raises(CatalogError, match="401"):
        client.search_games("Metroid")
    assert not client.validate_credentials()


def test_download_image_writes_file(tmp_path):
    dest = tmp_path / "covers" / "g1.jpg"
    _client(FakeHttp()).download_image("https://images.example/x.jpg", dest)
    assert dest.read_bytes() == b"image-bytes"


def test_platform_mapping():
    assert get_igdb_platform_id("snes") == 19
    assert get_igdb_platform_id("nope") is None
