"""PS3 folder-format matcher — a ``PS3_GAME`` tree is one game."""

from __future__ import annotations

import struct
from pathlib import Path

from loguru import logger

from romshelf.matchers.base import FolderMatcher, MatchedGame

SFO_MAGIC = b"\x00PSF"
SFO_FMT_UTF8 = 0x0204


def read_sfo_title(sfo_path: Path) -> str | None:
    """Read the ``TITLE`` key from a ``PARAM.SFO`` file.

    Layout:
      - 4 bytes: magic "\\0PSF"
      - 4 bytes: version
      - 4 bytes: key table offset (u32 little-endian)
      - 4 bytes: data table offset (u32 little-endian)
      - 4 bytes: entry count (u32 little-endian)
      - 16 bytes per entry: key offset (u16), format (u16),
        data length (u32), max length (u32), data offset (u32)
    """
    try:
        blob = sfo_path.read_bytes()
    except OSError as e:
        logger.debug("Cannot read {}: {}", sfo_path, e)
        return None
    if len(blob) < 20 or blob[:4] != SFO_MAGIC:
        return None
    key_table, data_table, count = struct.unpack_from("<III", blob, 8)
    for i in range(count):
        offset = 20 + i * 16
        if offset + 16 > len(blob):
            break
        key_off, fmt, length, _max_len, data_off = struct.unpack_from(
            "<HHIII", blob, offset
        )
        key_start = key_table + key_off
        key_end = blob.find(b"\x00", key_start)
        if key_end < 0:
            break
        if blob[key_start:key_end] != b"TITLE" or fmt != SFO_FMT_UTF8:
            continue
        start = data_table + data_off
        raw = blob[start:start + length].split(b"\x00", 1)[0]
        title = raw.decode("utf-8", errors="replace").strip()
        return title or None
    return None


class Ps3Matcher(FolderMatcher):
    """Disc rips and installed games keep their data under ``PS3_GAME/``."""

    @property
    def name(self) -> str:
        return "ps3"

    def claim_directory(self, directory: Path) -> MatchedGame | None:
        game_dir = directory / "PS3_GAME"
        if not game_dir.is_dir() and not (directory / "PS3_DISC.SFB").is_file():
            return None
        title = read_sfo_title(game_dir / "PARAM.SFO")
        return MatchedGame(rom_path=directory, title=title, platform_id="ps3")
