"""Emulator resolution and launch-argument templating.

Resolution order for a game, first match wins:

1. The game's own preferred emulator, if it still exists.
2. An emulator explicitly picked by the caller (manual override).
3. The platform's default emulator, if it is set and still valid.
4. Otherwise :class:`NoEmulatorError`, carrying every emulator that
   supports the game's platform so the caller can offer a choice.
"""

from __future__ import annotations

import shlex

from loguru import logger

from romshelf.core.library import LibraryStore
from romshelf.errors import NoEmulatorError
from romshelf.models.emulator import Emulator, LaunchTarget
from romshelf.models.game import Game

TOKEN_ROM = "{rom}"
TOKEN_TITLE = "{title}"


def render_arguments(template: str, game: Game) -> str:
    """Substitute ``{rom}`` and ``{title}`` in *template*.

    Any other ``{...}`` token is left as-is.
    """
    return template.replace(TOKEN_ROM, game.rom_path).replace(TOKEN_TITLE, game.title)


def split_arguments(template: str, game: Game) -> list[str]:
    """Split *template* shell-style, then substitute tokens per argument.

    Splitting before substitution keeps a ROM path with spaces in one
    argument without the user having to quote ``{rom}``.
    """
    try:
        parts = shlex.split(template)
    except ValueError:
        # Unbalanced quotes
        parts = template.split()
    return [render_arguments(part, game) for part in parts]


class EmulatorResolver:
    """Picks the program and arguments used to run a library game."""

    def __init__(self, store: LibraryStore) -> None:
        self._store = store

    def resolve(self, game_id: str, emulator_id: str | None = None) -> LaunchTarget:
        """Resolve the launch target for *game_id*.

        Raises :class:`GameNotFoundError` for an unknown game and
        :class:`NoEmulatorError` when the fallback chain finds nothing.
        An explicit *emulator_id* that no longer exists falls through to
        the platform default like a dangling preferred emulator does.
        """
        game = self._store.require_game(game_id)
        emulator = self._pick(game, emulator_id)
        target = LaunchTarget(
            emulator=emulator,
            program=emulator.executable_path,
            arguments=render_arguments(emulator.launch_arguments, game),
            argv=[emulator.executable_path, *split_arguments(emulator.launch_arguments, game)],
        )
        logger.debug("Resolved '{}' -> {} {}", game.title, target.program, target.arguments)
        return target

    def candidates_for(self, game: Game) -> list[Emulator]:
        return self._store.emulators_for_platform(game.platform_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _pick(self, game: Game, emulator_id: str | None) -> Emulator:
        if game.preferred_emulator_id:
            preferred = self._store.get_emulator(game.preferred_emulator_id)
            if preferred is not None:
                return preferred
            logger.warning(
                "Preferred emulator {} of '{}' no longer exists",
                game.preferred_emulator_id, game.title,
            )

        if emulator_id:
            chosen = self._store.get_emulator(emulator_id)
            if chosen is not None:
                return chosen
            logger.warning("Requested emulator {} no longer exists", emulator_id)

        platform = self._store.get_platform(game.platform_id)
        if platform is not None and platform.default_emulator_id:
            default = self._store.get_emulator(platform.default_emulator_id)
            if default is not None and default.supports(game.platform_id):
                return default
            logger.warning(
                "Default emulator {} for {} is not valid",
                platform.default_emulator_id, game.platform_id,
            )

        raise NoEmulatorError(game, self.candidates_for(game))
