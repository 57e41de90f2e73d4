"""IGDB metadata catalog client.

Authentication uses the Twitch client-credentials flow; the access
token is cached until shortly before it expires.  Queries are written
in IGDB's Apicalypse syntax and POSTed as plain text.
"""

from __future__ import annotations

import json
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from romshelf.errors import CatalogError
from romshelf.models.results import CatalogMetadata, CatalogSearchResult

TOKEN_URL = "https://id.twitch.tv/oauth2/token"
GAMES_URL = "https://api.igdb.com/v4/games"
_COVER_URL = "https://images.igdb.com/igdb/image/upload/t_cover_big/{image_id}.jpg"
_SCREENSHOT_URL = "https://images.igdb.com/igdb/image/upload/t_screenshot_big/{image_id}.jpg"

SEARCH_LIMIT = 20
MAX_SCREENSHOTS = 5
TOKEN_SAFETY_MARGIN = 60
HTTP_TIMEOUT = 20

HttpFn = Callable[[urllib.request.Request], bytes]

# Our platform ids -> IGDB platform ids (https://api-docs.igdb.com/#platform)
IGDB_PLATFORM_IDS: dict[str, int] = {
    # Nintendo
    "nes": 18, "famicom": 99, "snes": 19, "n64": 4, "gamecube": 21,
    "wii": 5, "wiiu": 41, "switch": 130, "gb": 33, "gbc": 22, "gba": 24,
    "nds": 20, "3ds": 37, "virtualboy": 87,
    # Sony
    "ps1": 7, "ps2": 8, "ps3": 9, "ps4": 48, "psp": 38, "vita": 46,
    # Sega
    "genesis": 29, "megadrive": 29, "mastersystem": 64, "sms": 64,
    "gamegear": 35, "saturn": 32, "dreamcast": 23, "segacd": 78, "32x": 30,
    # Microsoft
    "xbox": 11, "xbox360": 12, "xboxone": 49,
    # Atari
    "atari2600": 59, "atari7800": 60, "atarijaguar": 62, "atarilynx": 61,
    # SNK
    "neogeo": 80, "neogeocd": 136, "ngp": 119, "ngpc": 120,
    # NEC
    "pcengine": 86, "pce": 86, "tg16": 86, "pcfx": 274,
    # Other
    "arcade": 52, "dos": 13, "windows": 6, "pc": 6, "3do": 50,
    "wonderswan": 57, "wonderswancolor": 123, "msx": 27, "msx2": 53,
    "coleco": 68, "intellivision": 67,
}


def get_igdb_platform_id(platform_id: str) -> int | None:
    return IGDB_PLATFORM_IDS.get(platform_id)


def _urlopen_bytes(request: urllib.request.Request) -> bytes:
    with urllib.request.urlopen(request, timeout=HTTP_TIMEOUT) as resp:
        return resp.read()


def _format_date(timestamp: int | None) -> str | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")


def _escape(query: str) -> str:
    return query.replace("\\", "\\\\").replace('"', '\\"')


def rank_results(results: list[CatalogSearchResult], query: str) -> list[CatalogSearchResult]:
    """Exact (case-insensitive) name matches first, then earliest release."""
    q = query.strip().lower()

    def key(r: CatalogSearchResult) -> tuple[int, int, str]:
        exact = 0 if r.name.lower() == q else 1
        if r.release_date:
            return exact, 0, r.release_date
        return exact, 1, ""

    return sorted(results, key=key)


class IgdbClient:
    """Thin IGDB v4 client with OAuth token caching."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        http: HttpFn | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not client_id or not client_secret:
            raise CatalogError("IGDB credentials are not configured")
        self._client_id = client_id
        self._client_secret = client_secret
        self._http = http or _urlopen_bytes
        self._clock = clock
        self._token: str | None = None
        self._token_expires = 0.0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _get_token(self) -> str:
        with self._lock:
            if self._token and self._token_expires > self._clock():
                return self._token

            body = urllib.parse.urlencode({
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "grant_type": "client_credentials",
            }).encode("utf-8")
            req = urllib.request.Request(TOKEN_URL, data=body, method="POST")
            data = self._request_json(req, "Token request")
            try:
                token = data["access_token"]
                expires_in = int(data["expires_in"])
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(f"Failed to parse token response: {e}") from e

            self._token = token
            self._token_expires = self._clock() + max(0, expires_in - TOKEN_SAFETY_MARGIN)
            logger.debug("IGDB token refreshed, valid for {}s", expires_in)
            return token

    def validate_credentials(self) -> bool:
        try:
            self._get_token()
        except CatalogError as e:
            logger.warning("IGDB credential check failed: {}", e)
            return False
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search_games(
        self, query: str, platform_id: str | None = None
    ) -> list[CatalogSearchResult]:
        """Search by name, optionally restricted to one platform."""
        fields = "name, summary, first_release_date, cover.image_id, platforms.name"
        body = f'search "{_escape(query)}"; fields {fields};'
        igdb_platform = get_igdb_platform_id(platform_id) if platform_id else None
        if igdb_platform is not None:
            body += f" where platforms = ({igdb_platform});"
        body += f" limit {SEARCH_LIMIT};"

        games = self._query(body)
        logger.info(
            "IGDB search for '{}' (platform: {}) found {} results",
            query, platform_id, len(games),
        )
        results = [
            CatalogSearchResult(
                external_id=int(g["id"]),
                name=g.get("name", ""),
                release_date=_format_date(g.get("first_release_date")),
                cover_url=self._cover_url(g),
                platforms=[p.get("name", "") for p in g.get("platforms") or []],
                summary=g.get("summary"),
            )
            for g in games
        ]
        return rank_results(results, query)

    def get_game_metadata(self, external_id: int) -> CatalogMetadata:
        body = (
            "fields name, summary, first_release_date, cover.image_id, "
            "screenshots.image_id, genres.name, involved_companies.company.name, "
            "involved_companies.developer, involved_companies.publisher; "
            f"where id = {int(external_id)};"
        )
        games = self._query(body)
        if not games:
            raise CatalogError(f"Game {external_id} not found on IGDB")
        g = games[0]

        developer = publisher = None
        for ic in g.get("involved_companies") or []:
            name = (ic.get("company") or {}).get("name")
            if ic.get("developer") and developer is None:
                developer = name
            if ic.get("publisher") and publisher is None:
                publisher = name

        screenshots = [
            _SCREENSHOT_URL.format(image_id=s["image_id"])
            for s in (g.get("screenshots") or [])[:MAX_SCREENSHOTS]
            if s.get("image_id")
        ]
        return CatalogMetadata(
            external_id=int(g["id"]),
            name=g.get("name", ""),
            summary=g.get("summary"),
            release_date=_format_date(g.get("first_release_date")),
            genres=[x.get("name", "") for x in g.get("genres") or []],
            developer=developer,
            publisher=publisher,
            cover_url=self._cover_url(g),
            screenshot_urls=screenshots,
        )

    def download_image(self, url: str, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        req = urllib.request.Request(url, headers={"User-Agent": "RomShelf"})
        try:
            data = self._http(req)
        except (urllib.error.URLError, OSError) as e:
            raise CatalogError(f"Failed to download image: {e}") from e
        dest.write_bytes(data)
        logger.debug("Downloaded {} -> {}", url, dest)
        return dest

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _cover_url(game: dict[str, Any]) -> str | None:
        cover = game.get("cover") or {}
        image_id = cover.get("image_id")
        return _COVER_URL.format(image_id=image_id) if image_id else None

    def _query(self, body: str) -> list[dict[str, Any]]:
        token = self._get_token()
        req = urllib.request.Request(
            GAMES_URL,
            data=body.encode("utf-8"),
            method="POST",
            headers={
                "Client-ID": self._client_id,
                "Authorization": f"Bearer {token}",
                "Content-Type": "text/plain",
                "Accept": "application/json",
            },
        )
        data = self._request_json(req, "IGDB request")
        if not isinstance(data, list):
            raise CatalogError("Unexpected IGDB response")
        return data

    def _request_json(self, req: urllib.request.Request, what: str) -> Any:
        try:
            raw = self._http(req)
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace") if e.fp else ""
            raise CatalogError(f"{what} failed ({e.code}): {detail}") from e
        except (urllib.error.URLError, OSError) as e:
            raise CatalogError(f"{what} failed: {e}") from e
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise CatalogError(f"Failed to parse {what.lower()} response: {e}") from e
