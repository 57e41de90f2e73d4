"""Wii U folder-format matcher — a ``code/ content/ meta/`` triple is one game."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from loguru import logger

from romshelf.matchers.base import FolderMatcher, MatchedGame

REQUIRED_DIRS = ("code", "content", "meta")


def read_meta_title(meta_xml: Path) -> str | None:
    """Return ``longname_en`` (or ``shortname_en``) from ``meta/meta.xml``."""
    if not meta_xml.is_file():
        return None
    try:
        root = ET.parse(meta_xml).getroot()
    except (ET.ParseError, OSError) as e:
        logger.debug("Cannot parse {}: {}", meta_xml, e)
        return None
    for tag in ("longname_en", "shortname_en"):
        node = root.find(tag)
        if node is not None and node.text and node.text.strip():
            # Long names use a newline between title and subtitle
            return " ".join(node.text.split())
    return None


class WiiUMatcher(FolderMatcher):

    @property
    def name(self) -> str:
        return "wiiu"

    def claim_directory(self, directory: Path) -> MatchedGame | None:
        if not all((directory / d).is_dir() for d in REQUIRED_DIRS):
            return None
        title = read_meta_title(directory / "meta" / "meta.xml")
        return MatchedGame(rom_path=directory, title=title, platform_id="wiiu")
