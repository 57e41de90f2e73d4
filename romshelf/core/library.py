"""JSON-backed library store — the single writer for games, platforms and emulators.

Layout of ``library.json``::

    {
        "version": 1,
        "games": [...],
        "platforms": [...],
        "emulators": [...],
        "collections": [...],
        "play_sessions": [...]
    }

Every mutation rewrites the file atomically (temp file + ``os.replace``)
before returning, so a crash never leaves a half-written library and an
error after item *k* of a batch keeps items 1..k on disk.
"""

from __future__ import annotations

import copy
import functools
import json
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, TypeVar

from loguru import logger

from romshelf.errors import (
    DuplicateGameError,
    EmulatorNotFoundError,
    GameNotFoundError,
    InputError,
    NotFoundError,
    PlatformNotFoundError,
    StorageError,
)
from romshelf.models.emulator import (
    DEFAULT_LAUNCH_ARGUMENTS,
    Emulator,
    EmulatorCreate,
    EmulatorUpdate,
)
from romshelf.models.game import (
    Collection,
    CollectionUpdate,
    Game,
    GameCreate,
    GameUpdate,
    PlaySession,
)
from romshelf.models.platform import Platform, default_platforms

SCHEMA_VERSION = 1

T = TypeVar("T")


def normalize_rom_path(path: str | Path) -> str:
    """Return the comparison key for a ROM path.

    Absolute, symlinks resolved, and case-folded on case-insensitive
    filesystems (``os.path.normcase``).
    """
    return os.path.normcase(os.path.realpath(os.path.expanduser(str(path))))


def _locked(method: Callable[..., T]) -> Callable[..., T]:
    """Serialize a store method on the instance lock."""

    @functools.wraps(method)
    def wrapper(self: LibraryStore, *args: Any, **kwargs: Any) -> T:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class LibraryStore:
    """Persistent library model.  All writes go through this class.

    Scan and batch workers mutate the store off the UI thread, so every
    public method holds a reentrant lock for its whole duration.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()
        self._games: dict[str, Game] = {}
        self._platforms: dict[str, Platform] = {}
        self._emulators: dict[str, Emulator] = {}
        self._collections: dict[str, Collection] = {}
        self._sessions: dict[str, PlaySession] = {}
        self._path_index: dict[str, str] = {}
        self._load()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._path

    @_locked
    def reload(self) -> None:
        """Re-read the library from disk, discarding in-memory state."""
        self._load()
        logger.debug("Library reloaded: {} games", len(self._games))

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    @_locked
    def get_all_games(self) -> list[Game]:
        return [copy.deepcopy(g) for g in self._games.values()]

    @_locked
    def get_game(self, game_id: str) -> Game | None:
        game = self._games.get(game_id)
        return copy.deepcopy(game) if game else None

    @_locked
    def require_game(self, game_id: str) -> Game:
        game = self.get_game(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    @_locked
    def get_game_by_path(self, rom_path: str | Path) -> Game | None:
        game_id = self._path_index.get(normalize_rom_path(rom_path))
        return self.get_game(game_id) if game_id else None

    @_locked
    def add_game(self, data: GameCreate) -> Game:
        """Validate and insert a new game.  Nothing is written on rejection."""
        title = (data.title or "").strip()
        if not title:
            raise InputError("Title is required")
        if not data.rom_path:
            raise InputError("ROM path is required")
        if not data.platform_id:
            raise InputError("Platform is required")
        if data.platform_id not in self._platforms:
            raise InputError(f"Unknown platform: {data.platform_id}")

        key = normalize_rom_path(data.rom_path)
        existing = self._path_index.get(key)
        if existing:
            raise DuplicateGameError(data.rom_path, existing)

        game = Game(
            title=title,
            rom_path=os.path.abspath(os.path.expanduser(data.rom_path)),
            platform_id=data.platform_id,
            cover_art_path=data.cover_art_path,
            description=data.description,
        )
        self._games[game.id] = game
        self._path_index[key] = game.id
        self._save()
        logger.info("Added game '{}' ({}) -> {}", game.title, game.platform_id, game.id)
        return copy.deepcopy(game)

    @_locked
    def update_game(self, game_id: str, updates: GameUpdate) -> list[str]:
        """Apply a sparse patch; return the names of the fields written."""
        game = self._games.get(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        if updates.title is not None and not updates.title.strip():
            raise InputError("Title cannot be empty")
        if updates.platform_id is not None and updates.platform_id not in self._platforms:
            raise InputError(f"Unknown platform: {updates.platform_id}")
        if (
            updates.preferred_emulator_id
            and updates.preferred_emulator_id not in self._emulators
        ):
            raise EmulatorNotFoundError(updates.preferred_emulator_id)

        written = updates.apply_to(game)
        if game.preferred_emulator_id == "":
            game.preferred_emulator_id = None
        if written:
            self._save()
            logger.debug("Updated game {}: {}", game_id, written)
        return written

    @_locked
    def delete_game(self, game_id: str) -> None:
        if game_id not in self._games:
            raise GameNotFoundError(game_id)
        self._remove_game(game_id)
        self._save()
        logger.info("Deleted game {}", game_id)

    @_locked
    def delete_games(self, game_ids: list[str]) -> int:
        """Delete every existing id in one write; unknown ids are skipped."""
        deleted = 0
        for game_id in game_ids:
            if game_id in self._games:
                self._remove_game(game_id)
                deleted += 1
        if deleted:
            self._save()
        logger.info("Deleted {} of {} games", deleted, len(game_ids))
        return deleted

    @_locked
    def toggle_favorite(self, game_id: str) -> bool:
        game = self._games.get(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        game.is_favorite = not game.is_favorite
        self._save()
        return game.is_favorite

    @_locked
    def add_play_time(self, game_id: str, seconds: int) -> None:
        game = self._games.get(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        game.total_play_time_seconds += max(0, int(seconds))
        game.last_played = datetime.now().isoformat(timespec="seconds")
        self._save()

    # ------------------------------------------------------------------
    # Platforms
    # ------------------------------------------------------------------

    @_locked
    def get_all_platforms(self) -> list[Platform]:
        return [copy.deepcopy(p) for p in self._platforms.values()]

    @_locked
    def get_platform(self, platform_id: str) -> Platform | None:
        platform = self._platforms.get(platform_id)
        return copy.deepcopy(platform) if platform else None

    @_locked
    def set_default_emulator(self, platform_id: str, emulator_id: str | None) -> None:
        """Bind (or with ``None``, unbind) a platform's default emulator."""
        platform = self._platforms.get(platform_id)
        if platform is None:
            raise PlatformNotFoundError(platform_id)
        if emulator_id:
            emulator = self._emulators.get(emulator_id)
            if emulator is None:
                raise EmulatorNotFoundError(emulator_id)
            if not emulator.supports(platform_id):
                raise InputError(
                    f"Emulator '{emulator.name}' does not support {platform.display_name}"
                )
        platform.default_emulator_id = emulator_id or None
        self._save()
        logger.info("Default emulator for {} set to {}", platform_id, emulator_id)

    # ------------------------------------------------------------------
    # Emulators
    # ------------------------------------------------------------------

    @_locked
    def get_all_emulators(self) -> list[Emulator]:
        return [copy.deepcopy(e) for e in self._emulators.values()]

    @_locked
    def get_emulator(self, emulator_id: str) -> Emulator | None:
        emulator = self._emulators.get(emulator_id)
        return copy.deepcopy(emulator) if emulator else None

    @_locked
    def add_emulator(self, data: EmulatorCreate) -> Emulator:
        if not (data.name or "").strip():
            raise InputError("Emulator name is required")
        if not data.executable_path:
            raise InputError("Executable path is required")
        template = (
            DEFAULT_LAUNCH_ARGUMENTS
            if data.launch_arguments is None
            else data.launch_arguments
        )
        if not template.strip():
            raise InputError("Launch arguments cannot be empty")
        self._check_platform_ids(data.supported_platform_ids)

        emulator = Emulator(
            name=data.name.strip(),
            executable_path=data.executable_path,
            launch_arguments=template,
            supported_platform_ids=list(data.supported_platform_ids),
        )
        self._emulators[emulator.id] = emulator
        self._save()
        logger.info("Added emulator '{}' -> {}", emulator.name, emulator.id)
        return copy.deepcopy(emulator)

    @_locked
    def update_emulator(self, emulator_id: str, updates: EmulatorUpdate) -> None:
        emulator = self._emulators.get(emulator_id)
        if emulator is None:
            raise EmulatorNotFoundError(emulator_id)
        if updates.launch_arguments is not None and not updates.launch_arguments.strip():
            raise InputError("Launch arguments cannot be empty")
        if updates.supported_platform_ids is not None:
            self._check_platform_ids(updates.supported_platform_ids)

        if updates.name is not None:
            emulator.name = updates.name
        if updates.executable_path is not None:
            emulator.executable_path = updates.executable_path
        if updates.launch_arguments is not None:
            emulator.launch_arguments = updates.launch_arguments
        if updates.supported_platform_ids is not None:
            emulator.supported_platform_ids = list(updates.supported_platform_ids)
            # A default binding must stay within the emulator's capabilities
            for platform in self._platforms.values():
                if (
                    platform.default_emulator_id == emulator_id
                    and not emulator.supports(platform.id)
                ):
                    platform.default_emulator_id = None
                    logger.info("Cleared default emulator for {}", platform.id)
        self._save()

    @_locked
    def delete_emulator(self, emulator_id: str) -> None:
        if emulator_id not in self._emulators:
            raise EmulatorNotFoundError(emulator_id)
        del self._emulators[emulator_id]
        for platform in self._platforms.values():
            if platform.default_emulator_id == emulator_id:
                platform.default_emulator_id = None
        for game in self._games.values():
            if game.preferred_emulator_id == emulator_id:
                game.preferred_emulator_id = None
        self._save()
        logger.info("Deleted emulator {}", emulator_id)

    @_locked
    def emulators_for_platform(self, platform_id: str) -> list[Emulator]:
        return [
            copy.deepcopy(e)
            for e in self._emulators.values()
            if e.supports(platform_id)
        ]

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    @_locked
    def get_all_collections(self) -> list[Collection]:
        return [copy.deepcopy(c) for c in self._collections.values()]

    @_locked
    def add_collection(self, name: str) -> Collection:
        if not (name or "").strip():
            raise InputError("Collection name is required")
        collection = Collection(name=name.strip())
        self._collections[collection.id] = collection
        self._save()
        return copy.deepcopy(collection)

    @_locked
    def update_collection(self, collection_id: str, updates: CollectionUpdate) -> None:
        collection = self._collections.get(collection_id)
        if collection is None:
            raise NotFoundError(f"Collection not found: {collection_id}")
        if updates.name is not None:
            if not updates.name.strip():
                raise InputError("Collection name cannot be empty")
            collection.name = updates.name.strip()
        if updates.game_ids is not None:
            missing = [gid for gid in updates.game_ids if gid not in self._games]
            if missing:
                raise GameNotFoundError(missing[0])
            for game in self._games.values():
                if collection_id in game.collection_ids:
                    game.collection_ids.remove(collection_id)
            collection.game_ids = list(dict.fromkeys(updates.game_ids))
            for gid in collection.game_ids:
                self._games[gid].collection_ids.append(collection_id)
        if updates.cover_game_id is not None:
            collection.cover_game_id = updates.cover_game_id or None
        self._save()

    @_locked
    def delete_collection(self, collection_id: str) -> None:
        if self._collections.pop(collection_id, None) is None:
            raise NotFoundError(f"Collection not found: {collection_id}")
        for game in self._games.values():
            if collection_id in game.collection_ids:
                game.collection_ids.remove(collection_id)
        self._save()

    # ------------------------------------------------------------------
    # Play sessions
    # ------------------------------------------------------------------

    @_locked
    def start_session(self, game_id: str) -> PlaySession:
        if game_id not in self._games:
            raise GameNotFoundError(game_id)
        session = PlaySession(game_id=game_id)
        self._sessions[session.id] = session
        self._save()
        return copy.deepcopy(session)

    @_locked
    def end_session(self, session_id: str, duration_seconds: int) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Play session not found: {session_id}")
        session.end_time = datetime.now().isoformat(timespec="seconds")
        session.duration_seconds = max(0, int(duration_seconds))
        self._save()

    @_locked
    def get_play_sessions(self, game_id: str) -> list[PlaySession]:
        sessions = [s for s in self._sessions.values() if s.game_id == game_id]
        sessions.sort(key=lambda s: s.start_time, reverse=True)
        return [copy.deepcopy(s) for s in sessions]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_platform_ids(self, platform_ids: list[str]) -> None:
        unknown = [pid for pid in platform_ids if pid not in self._platforms]
        if unknown:
            raise InputError(f"Unknown platform(s): {', '.join(unknown)}")

    def _remove_game(self, game_id: str) -> None:
        game = self._games.pop(game_id)
        self._path_index.pop(normalize_rom_path(game.rom_path), None)
        for collection in self._collections.values():
            if game_id in collection.game_ids:
                collection.game_ids.remove(game_id)
            if collection.cover_game_id == game_id:
                collection.cover_game_id = None
        self._sessions = {
            sid: s for sid, s in self._sessions.items() if s.game_id != game_id
        }

    def _load(self) -> None:
        """Parse the file into fresh tables, then swap them in at once.

        A failed read leaves the current in-memory library untouched.
        """
        data: dict = {}
        if self._path.exists():
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                raise StorageError(f"Cannot read library {self._path}: {e}") from e
            if not isinstance(data, dict):
                raise StorageError(f"Cannot read library {self._path}: not a JSON object")

        try:
            platforms = {p.id: p for p in map(Platform.from_dict, data.get("platforms", []))}
            emulators = {e.id: e for e in map(Emulator.from_dict, data.get("emulators", []))}
            games = {g.id: g for g in map(Game.from_dict, data.get("games", []))}
            collections = {
                c.id: c for c in map(Collection.from_dict, data.get("collections", []))
            }
            sessions = {
                s.id: s for s in map(PlaySession.from_dict, data.get("play_sessions", []))
            }
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed record in library {self._path}: {e!r}") from e

        seeded = 0
        for platform in default_platforms():
            if platform.id not in platforms:
                platforms[platform.id] = platform
                seeded += 1

        self._platforms = platforms
        self._emulators = emulators
        self._games = games
        self._collections = collections
        self._sessions = sessions
        self._path_index = {normalize_rom_path(g.rom_path): g.id for g in games.values()}

        if seeded:
            logger.info("Seeded {} platforms into {}", seeded, self._path)
            self._save()

    def _save(self) -> None:
        data = {
            "version": SCHEMA_VERSION,
            "games": [g.to_dict() for g in self._games.values()],
            "platforms": [p.to_dict() for p in self._platforms.values()],
            "emulators": [e.to_dict() for e in self._emulators.values()],
            "collections": [c.to_dict() for c in self._collections.values()],
            "play_sessions": [s.to_dict() for s in self._sessions.values()],
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=".library-", suffix=".json", dir=str(self._path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=4, ensure_ascii=False)
                os.replace(tmp, self._path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            logger.error("Failed to save library {}: {}", self._path, e)
            raise StorageError(f"Cannot write library {self._path}: {e}") from e
