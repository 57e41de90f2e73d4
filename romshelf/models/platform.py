"""Platform catalog — ids, manufacturers, accepted extensions and folder hints."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Platform:
    """A gaming platform the library can hold games for."""

    id: str
    display_name: str
    manufacturer: str
    file_extensions: list[str] = field(default_factory=list)
    """Accepted extensions, lower-case with a leading dot.  Empty means
    the platform is manual-only and is never auto-scanned."""

    color: str = "#00f5ff"
    icon_path: str | None = None
    default_emulator_id: str | None = None

    @property
    def is_manual_only(self) -> bool:
        return not self.file_extensions

    def accepts(self, extension: str) -> bool:
        return extension.lower() in self.file_extensions

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "manufacturer": self.manufacturer,
            "file_extensions": list(self.file_extensions),
            "color": self.color,
            "icon_path": self.icon_path,
            "default_emulator_id": self.default_emulator_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Platform:
        return cls(
            id=data["id"],
            display_name=data.get("display_name", data["id"]),
            manufacturer=data.get("manufacturer", ""),
            file_extensions=[e.lower() for e in data.get("file_extensions", [])],
            color=data.get("color", "#00f5ff"),
            icon_path=data.get("icon_path"),
            default_emulator_id=data.get("default_emulator_id"),
        )


# (id, display name, manufacturer, extensions, accent colour)
_CATALOG: list[tuple[str, str, str, list[str], str]] = [
    ("nes", "NES", "Nintendo", [".nes", ".unf"], "#e60012"),
    ("snes", "SNES", "Nintendo", [".sfc", ".smc"], "#7b5aa6"),
    ("n64", "Nintendo 64", "Nintendo", [".n64", ".z64", ".v64"], "#009e60"),
    ("gamecube", "GameCube", "Nintendo", [".iso", ".gcz", ".rvz"], "#6a5acd"),
    ("wii", "Wii", "Nintendo", [".iso", ".wbfs", ".rvz", ".wad"], "#00a0dc"),
    ("wiiu", "Wii U", "Nintendo", [], "#009ac7"),
    ("switch", "Nintendo Switch", "Nintendo", [".nsp", ".xci"], "#e60012"),
    ("gb", "Game Boy", "Nintendo", [".gb"], "#8b956d"),
    ("gbc", "Game Boy Color", "Nintendo", [".gbc"], "#6b5b95"),
    ("gba", "Game Boy Advance", "Nintendo", [".gba"], "#5b5ea6"),
    ("nds", "Nintendo DS", "Nintendo", [".nds"], "#c0c0c0"),
    ("3ds", "Nintendo 3DS", "Nintendo", [".3ds", ".cia"], "#ce1141"),
    ("virtualboy", "Virtual Boy", "Nintendo", [".vb", ".vboy"], "#e60012"),
    ("ps1", "PlayStation", "Sony", [".cue", ".chd", ".iso", ".m3u"], "#003087"),
    ("ps2", "PlayStation 2", "Sony", [".iso", ".chd", ".m3u"], "#003087"),
    ("ps3", "PlayStation 3", "Sony", [], "#003087"),
    ("psp", "PlayStation Portable", "Sony", [".iso", ".cso"], "#003087"),
    ("vita", "PlayStation Vita", "Sony", [".vpk", ".zip"], "#003087"),
    ("genesis", "Sega Genesis", "Sega", [".md", ".gen", ".bin"], "#0060a8"),
    ("saturn", "Sega Saturn", "Sega", [".iso", ".cue", ".chd", ".m3u"], "#0060a8"),
    ("dreamcast", "Dreamcast", "Sega", [".cue", ".cdi", ".chd"], "#ff6600"),
    ("mastersystem", "Master System", "Sega", [".sms"], "#0060a8"),
    ("gamegear", "Game Gear", "Sega", [".gg"], "#0060a8"),
    ("xbox", "Xbox", "Microsoft", [".iso"], "#107c10"),
    ("xbox360", "Xbox 360", "Microsoft", [".iso", ".stfs"], "#107c10"),
    ("arcade", "Arcade", "Various", [".zip"], "#ff00ff"),
    ("dos", "DOS", "PC", [".exe", ".com"], "#00ff00"),
    ("scummvm", "ScummVM", "PC", [], "#8b4513"),
    ("windows", "Windows", "PC", [], "#0078d4"),
    ("atari2600", "Atari 2600", "Atari", [".a26", ".bin"], "#ff0000"),
    ("atari7800", "Atari 7800", "Atari", [".a78", ".bin"], "#ff0000"),
    ("atarijaguar", "Atari Jaguar", "Atari", [".j64", ".jag", ".rom"], "#ff0000"),
    ("3do", "3DO", "Panasonic", [".iso", ".chd", ".cue", ".m3u"], "#d4af37"),
    ("neogeo", "Neo Geo", "SNK", [".zip"], "#ffd700"),
    ("pcengine", "PC Engine", "NEC", [".pce"], "#ff4500"),
]


def default_platforms() -> list[Platform]:
    """Return fresh copies of the built-in platform catalog."""
    return [
        Platform(
            id=pid,
            display_name=name,
            manufacturer=maker,
            file_extensions=list(exts),
            color=color,
        )
        for pid, name, maker, exts, color in _CATALOG
    ]


def group_by_manufacturer(platforms: list[Platform]) -> dict[str, list[Platform]]:
    grouped: dict[str, list[Platform]] = {}
    for p in platforms:
        grouped.setdefault(p.manufacturer, []).append(p)
    return grouped


# Folder-name keywords that identify a platform.  Order matters: the
# first platform with a matching keyword wins.
PLATFORM_HINTS: list[tuple[str, list[str]]] = [
    ("ps2", ["ps2", "playstation 2", "playstation2", "sony ps2"]),
    ("ps1", ["ps1", "psx", "playstation 1", "playstation1", "psone"]),
    ("psp", ["psp", "playstation portable"]),
    ("ps3", ["ps3", "playstation 3", "playstation3"]),
    ("vita", ["vita", "psvita", "ps vita"]),
    ("gamecube", ["gamecube", "gcn", "ngc", "nintendo gamecube"]),
    ("wiiu", ["wiiu", "wii u"]),
    ("wii", ["wii", "nintendo wii"]),
    ("switch", ["switch", "nintendo switch", "nx"]),
    ("n64", ["n64", "nintendo 64", "nintendo64"]),
    ("snes", ["snes", "super nintendo", "super nes", "sfc"]),
    ("nes", ["nes", "nintendo entertainment", "famicom"]),
    ("gba", ["gba", "gameboy advance", "game boy advance"]),
    ("gbc", ["gbc", "gameboy color", "game boy color"]),
    ("gb", ["gameboy", "game boy"]),
    ("nds", ["nds", "nintendo ds", "ds"]),
    ("3ds", ["3ds", "nintendo 3ds"]),
    ("genesis", ["genesis", "mega drive", "megadrive", "sega genesis"]),
    ("saturn", ["saturn", "sega saturn"]),
    ("dreamcast", ["dreamcast", "sega dreamcast"]),
    ("xbox", ["xbox", "original xbox"]),
    ("xbox360", ["xbox 360", "xbox360", "x360"]),
    ("arcade", ["arcade", "mame", "fba", "fbneo"]),
]


def _part_matches(part: str, keyword: str) -> bool:
    return (
        part == keyword
        or f"{keyword} " in part
        or f" {keyword}" in part
        or part.startswith(f"{keyword}_")
        or part.endswith(f"_{keyword}")
    )


def detect_platform_from_path(
    path: str,
    allowed: set[str] | None = None,
) -> str | None:
    """Guess a platform id from folder names in *path*.

    Only platforms in *allowed* are considered when it is given, so a
    ``.iso`` under ``Games/PS2/`` resolves to ``ps2`` but a hint for a
    platform that cannot own the file is ignored.
    """
    parts = [p for p in path.lower().replace("\\", "/").split("/") if p]
    for platform_id, keywords in PLATFORM_HINTS:
        if allowed is not None and platform_id not in allowed:
            continue
        for keyword in keywords:
            if any(_part_matches(part, keyword) for part in parts):
                return platform_id
    return None
