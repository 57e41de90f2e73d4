"""M3U playlist matcher — a multi-disc playlist is one game, not one per disc."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from romshelf.matchers.base import FolderMatcher, MatchedGame
from romshelf.matchers.cue.matcher import read_cue_tracks


def read_playlist(playlist: Path) -> list[Path]:
    """Return the entries of an ``.m3u`` file resolved against its folder.

    Blank lines and ``#`` comments/directives are skipped.
    """
    entries: list[Path] = []
    with open(playlist, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            entry = Path(line)
            if not entry.is_absolute():
                entry = playlist.parent / entry
            entries.append(entry)
    return entries


class M3uMatcher(FolderMatcher):
    """Runs before the CUE matcher so listed discs are grouped, not split."""

    priority = 10

    @property
    def name(self) -> str:
        return "m3u"

    def claim_files(
        self,
        directory: Path,
        filenames: list[str],
    ) -> tuple[list[MatchedGame], set[Path]]:
        games: list[MatchedGame] = []
        consumed: set[Path] = set()
        for filename in filenames:
            if not filename.lower().endswith(".m3u"):
                continue
            playlist = directory / filename
            entries = read_playlist(playlist)
            logger.debug("Playlist {} lists {} discs", playlist.name, len(entries))
            games.append(MatchedGame(rom_path=playlist))
            consumed.add(playlist)
            for entry in entries:
                consumed.add(entry)
                if entry.suffix.lower() == ".cue" and entry.is_file():
                    consumed.update(read_cue_tracks(entry))
        return games, consumed
