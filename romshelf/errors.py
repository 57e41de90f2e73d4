"""Exception hierarchy shared by the library core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from romshelf.models.emulator import Emulator
    from romshelf.models.game import Game


class LibraryError(Exception):
    """Base class for every error raised by the library core."""


class InputError(LibraryError, ValueError):
    """Rejected input; nothing was persisted."""


class DuplicateGameError(InputError):
    """A game with the same ROM path is already in the library."""

    def __init__(self, rom_path: str, existing_id: str) -> None:
        super().__init__(f"Game already in library: {rom_path}")
        self.rom_path = rom_path
        self.existing_id = existing_id


class NotFoundError(LibraryError, LookupError):
    """A referenced record does not exist."""


class GameNotFoundError(NotFoundError):
    def __init__(self, game_id: str) -> None:
        super().__init__(f"Game not found: {game_id}")
        self.game_id = game_id


class EmulatorNotFoundError(NotFoundError):
    def __init__(self, emulator_id: str) -> None:
        super().__init__(f"Emulator not found: {emulator_id}")
        self.emulator_id = emulator_id


class PlatformNotFoundError(NotFoundError):
    def __init__(self, platform_id: str) -> None:
        super().__init__(f"Platform not found: {platform_id}")
        self.platform_id = platform_id


class NoEmulatorError(LibraryError):
    """No emulator could be resolved for a game.

    ``candidates`` lists every configured emulator whose supported
    platforms include the game's platform, so the caller can offer a
    manual pick or send the user to the emulator settings.
    """

    def __init__(self, game: Game, candidates: list[Emulator]) -> None:
        super().__init__(
            f"No emulator configured for '{game.title}' ({game.platform_id})"
        )
        self.game = game
        self.candidates = candidates


class CatalogError(LibraryError):
    """The metadata catalog could not be reached or had no match."""


class StorageError(LibraryError):
    """The library file could not be read or written."""
