"""Data models for library games, collections and play sessions."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


@dataclass
class Game:
    """One library-tracked title."""

    title: str
    rom_path: str
    """Absolute path to the ROM file (or folder, for folder-format games)."""

    platform_id: str
    id: str = field(default_factory=_new_id)
    cover_art_path: str | None = None
    background_path: str | None = None
    screenshots: list[str] = field(default_factory=list)
    description: str | None = None
    release_date: str | None = None
    genre: list[str] = field(default_factory=list)
    developer: str | None = None
    publisher: str | None = None
    total_play_time_seconds: int = 0
    last_played: str | None = None
    is_favorite: bool = False
    preferred_emulator_id: str | None = None
    collection_ids: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict) -> Game:
        return cls(
            id=data.get("id") or _new_id(),
            title=data.get("title", ""),
            rom_path=data.get("rom_path", ""),
            platform_id=data.get("platform_id", ""),
            cover_art_path=data.get("cover_art_path"),
            background_path=data.get("background_path"),
            screenshots=list(data.get("screenshots", [])),
            description=data.get("description"),
            release_date=data.get("release_date"),
            genre=list(data.get("genre", [])),
            developer=data.get("developer"),
            publisher=data.get("publisher"),
            total_play_time_seconds=int(data.get("total_play_time_seconds", 0)),
            last_played=data.get("last_played"),
            is_favorite=bool(data.get("is_favorite", False)),
            preferred_emulator_id=data.get("preferred_emulator_id"),
            collection_ids=list(data.get("collection_ids", [])),
            created_at=data.get("created_at") or _now(),
        )


@dataclass
class GameCreate:
    """Input for manually adding a game."""

    title: str
    rom_path: str
    platform_id: str
    cover_art_path: str | None = None
    description: str | None = None


@dataclass
class GameUpdate:
    """Sparse set of field changes for a game.

    ``None`` means "leave untouched"; every other value replaces the
    stored one, so an empty string or empty list clears a field.
    """

    title: str | None = None
    platform_id: str | None = None
    cover_art_path: str | None = None
    background_path: str | None = None
    screenshots: list[str] | None = None
    description: str | None = None
    release_date: str | None = None
    genre: list[str] | None = None
    developer: str | None = None
    publisher: str | None = None
    is_favorite: bool | None = None
    preferred_emulator_id: str | None = None

    def changed_fields(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]

    def apply_to(self, game: Game) -> list[str]:
        """Merge the set fields onto *game*; return the names that were written."""
        written = self.changed_fields()
        for name in written:
            value = getattr(self, name)
            setattr(game, name, list(value) if isinstance(value, list) else value)
        return written


@dataclass
class Collection:
    """User-created group of games."""

    name: str
    id: str = field(default_factory=_new_id)
    game_ids: list[str] = field(default_factory=list)
    cover_game_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "game_ids": list(self.game_ids),
            "cover_game_id": self.cover_game_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Collection:
        return cls(
            id=data.get("id") or _new_id(),
            name=data.get("name", ""),
            game_ids=list(data.get("game_ids", [])),
            cover_game_id=data.get("cover_game_id"),
        )


@dataclass
class CollectionUpdate:
    name: str | None = None
    game_ids: list[str] | None = None
    cover_game_id: str | None = None


@dataclass
class PlaySession:
    """One launch of a game, closed when the emulator exits."""

    game_id: str
    id: str = field(default_factory=_new_id)
    start_time: str = field(default_factory=_now)
    end_time: str | None = None
    duration_seconds: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "game_id": self.game_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_seconds": self.duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PlaySession:
        return cls(
            id=data.get("id") or _new_id(),
            game_id=data.get("game_id", ""),
            start_time=data.get("start_time") or _now(),
            end_time=data.get("end_time"),
            duration_seconds=int(data.get("duration_seconds", 0)),
        )
