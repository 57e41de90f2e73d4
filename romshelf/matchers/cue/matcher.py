"""CUE sheet matcher — a ``.cue`` and the track files it names are one game."""

from __future__ import annotations

import re
from pathlib import Path

from loguru import logger

from romshelf.matchers.base import FolderMatcher, MatchedGame

# FILE "Track 01.bin" BINARY  /  FILE track.bin BINARY
_FILE_LINE = re.compile(r'^\s*FILE\s+(?:"([^"]+)"|(\S+))', re.IGNORECASE)


def read_cue_tracks(cue: Path) -> list[Path]:
    """Return the track files referenced by *cue*, resolved against its folder."""
    tracks: list[Path] = []
    with open(cue, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            m = _FILE_LINE.match(line)
            if not m:
                continue
            track = Path(m.group(1) or m.group(2))
            if not track.is_absolute():
                track = cue.parent / track
            if track not in tracks:
                tracks.append(track)
    return tracks


class CueMatcher(FolderMatcher):

    @property
    def name(self) -> str:
        return "cue"

    def claim_files(
        self,
        directory: Path,
        filenames: list[str],
    ) -> tuple[list[MatchedGame], set[Path]]:
        games: list[MatchedGame] = []
        consumed: set[Path] = set()
        for filename in filenames:
            if not filename.lower().endswith(".cue"):
                continue
            cue = directory / filename
            tracks = read_cue_tracks(cue)
            logger.debug("{} references {} tracks", cue.name, len(tracks))
            games.append(MatchedGame(rom_path=cue))
            consumed.add(cue)
            consumed.update(tracks)
        return games, consumed
