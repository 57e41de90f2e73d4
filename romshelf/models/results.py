"""Result records returned across the command boundary."""

from __future__ import annotations

from dataclasses import dataclass, field

from romshelf.models.emulator import Emulator


def truncate_errors(errors: list[str], limit: int = 5) -> list[str]:
    """Cap *errors* at *limit* lines, adding an "...and N more" marker."""
    if limit <= 0 or len(errors) <= limit:
        return list(errors)
    hidden = len(errors) - limit
    return list(errors[:limit]) + [f"...and {hidden} more"]


@dataclass
class ScanLocation:
    """A folder to reconcile, optionally pinned to one platform."""

    path: str
    platform_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ScanLocation:
        return cls(path=data.get("path", ""), platform_id=data.get("platform_id") or None)


@dataclass
class ScanOutcome:
    """Counts and non-fatal errors from one reconciliation run."""

    games_found: int = 0
    games_added: int = 0
    games_updated: int = 0
    errors: list[str] = field(default_factory=list)

    def display_errors(self, limit: int = 5) -> list[str]:
        return truncate_errors(self.errors, limit)

    def to_dict(self) -> dict:
        return {
            "games_found": self.games_found,
            "games_added": self.games_added,
            "games_updated": self.games_updated,
            "errors": list(self.errors),
        }


@dataclass
class LaunchResult:
    """Outcome of a launch request.

    When no emulator could be resolved, ``candidates`` holds the
    emulators that support the game's platform (possibly empty).
    ``emulator_id`` is the emulator that was actually chosen, which can
    differ from a requested one when the game has a preferred emulator.
    """

    success: bool
    pid: int | None = None
    error: str | None = None
    candidates: list[Emulator] = field(default_factory=list)
    emulator_id: str | None = None


@dataclass
class ScrapeResult:
    """Outcome of fetching catalog metadata for one game."""

    success: bool
    game_id: str
    fields_updated: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class CatalogSearchResult:
    """One ranked hit from the metadata catalog."""

    external_id: int
    name: str
    release_date: str | None = None
    cover_url: str | None = None
    platforms: list[str] = field(default_factory=list)
    summary: str | None = None


@dataclass
class CatalogMetadata:
    """Full metadata for one catalog entry."""

    external_id: int
    name: str
    summary: str | None = None
    release_date: str | None = None
    genres: list[str] = field(default_factory=list)
    developer: str | None = None
    publisher: str | None = None
    cover_url: str | None = None
    screenshot_urls: list[str] = field(default_factory=list)
