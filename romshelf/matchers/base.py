"""Abstract base class for folder-format matchers.

Some titles are not a single ROM file: a PS3 game is a directory tree,
a Wii U title is a ``code/ content/ meta/`` triple, a multi-disc PS1
game is several ``.cue`` files tied together by a playlist.  Matchers
recognise these shapes during a scan so that one physical game becomes
exactly one library entry.

A matcher can work at two levels:

* :meth:`FolderMatcher.claim_directory` — the whole directory is one
  game.  The scanner stops descending into a claimed directory.
* :meth:`FolderMatcher.claim_files` — some files in a directory belong
  together.  Consumed files are not matched by extension afterwards.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass
class MatchedGame:
    """A game recognised by a matcher, before platform resolution."""

    rom_path: Path
    """File or directory recorded as the game's ROM path."""

    title: str | None = None
    """Title read from the game's own metadata, if any."""

    platform_id: str | None = None
    """Platform implied by the format, or ``None`` to resolve by extension."""


class FolderMatcher(ABC):
    """Base class every folder-format matcher must implement."""

    priority: int = 100
    """Lower runs first; a matcher that groups other formats must precede them."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name of the matcher (e.g. 'ps3')."""
        ...

    def claim_directory(self, directory: Path) -> MatchedGame | None:
        """Return a game if *directory* as a whole is one title."""
        return None

    def claim_files(
        self,
        directory: Path,
        filenames: list[str],
    ) -> tuple[list[MatchedGame], set[Path]]:
        """Group related files of *directory* into games.

        Returns the games found and every path they consume (including
        the game's own ROM path).  The default claims nothing.
        """
        return [], set()
