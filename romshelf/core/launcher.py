"""Game launcher — spawns the resolved emulator and tracks play sessions."""

from __future__ import annotations

import os
import platform
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from loguru import logger

from romshelf.core.library import LibraryStore
from romshelf.core.resolver import EmulatorResolver
from romshelf.errors import LibraryError, NoEmulatorError
from romshelf.models.results import LaunchResult

SpawnFn = Callable[[Sequence[str]], "subprocess.Popen"]


def validate_emulator_path(path: str | Path) -> bool:
    """Return True if *path* is an existing file the OS would execute."""
    p = Path(path)
    if not p.is_file():
        return False
    if platform.system() == "Windows":
        return True
    return os.access(p, os.X_OK)


def _default_spawn(argv: Sequence[str]) -> subprocess.Popen:
    return subprocess.Popen(list(argv))


@dataclass
class ActiveSession:
    session_id: str
    game_id: str
    started: float
    pid: int | None = None


class Launcher:
    """Launches games and keeps one open play session per running game."""

    def __init__(
        self,
        store: LibraryStore,
        resolver: EmulatorResolver,
        spawn: SpawnFn | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._spawn = spawn or _default_spawn
        self._clock = clock
        self._active: dict[str, ActiveSession] = {}

    @property
    def active_game_ids(self) -> list[str]:
        return list(self._active)

    def launch_game(self, game_id: str) -> LaunchResult:
        """Launch with the game's preferred or platform-default emulator.

        An unresolvable game is not an exception here: the result is
        unsuccessful and lists the candidate emulators for a manual pick.
        """
        return self._resolve_and_launch(game_id, None)

    def launch_game_with_emulator(self, game_id: str, emulator_id: str) -> LaunchResult:
        """Launch with an explicitly chosen emulator.

        The game's preferred emulator still wins; ``emulator_id`` on the
        result tells the caller which emulator actually ran.
        """
        return self._resolve_and_launch(game_id, emulator_id)

    def end_game_session(self, game_id: str) -> int:
        """Close the game's open session; return the seconds played (0 if none)."""
        session = self._active.pop(game_id, None)
        if session is None:
            return 0
        duration = int(self._clock() - session.started)
        self._store.end_session(session.session_id, duration)
        self._store.add_play_time(game_id, duration)
        logger.info("Session for {} ended after {}s", game_id, duration)
        return duration

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve_and_launch(self, game_id: str, emulator_id: str | None) -> LaunchResult:
        try:
            target = self._resolver.resolve(game_id, emulator_id)
        except NoEmulatorError as e:
            logger.warning("{} ({} candidates)", e, len(e.candidates))
            return LaunchResult(success=False, error=str(e), candidates=e.candidates)
        if emulator_id and target.emulator.id != emulator_id:
            logger.info(
                "Launching {} with {} instead of requested {}",
                game_id, target.emulator.id, emulator_id,
            )
        result = self._launch(game_id, target.argv)
        result.emulator_id = target.emulator.id
        return result

    def _launch(self, game_id: str, argv: list[str]) -> LaunchResult:
        program = argv[0]
        logger.info("Launching {}", argv)
        try:
            proc = self._spawn(argv)
        except OSError as e:
            logger.error("Failed to launch {}: {}", program, e)
            return LaunchResult(success=False, error=str(e))

        pid = getattr(proc, "pid", None)
        try:
            session = self._store.start_session(game_id)
        except LibraryError as e:
            # The game is running; losing the session only loses play time
            logger.error("Failed to create play session for {}: {}", game_id, e)
        else:
            self._active[game_id] = ActiveSession(
                session_id=session.id,
                game_id=game_id,
                started=self._clock(),
                pid=pid,
            )
        return LaunchResult(success=True, pid=pid)
