"""RetroArch core discovery — turns installed libretro cores into emulators.

Each ``*_libretro`` library found in the cores folder becomes one
emulator entry that runs RetroArch with ``-L <core>``.
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

CORE_SUFFIX = "_libretro"
CORE_EXTENSIONS = (".so", ".dll", ".dylib")

# Checked in order, first hit wins ('mesen-s' must precede 'mesen').
CORE_PLATFORM_HINTS: list[tuple[str, list[str]]] = [
    ("snes9x", ["snes"]),
    ("bsnes", ["snes"]),
    ("mesen-s", ["snes"]),
    ("mesen", ["nes"]),
    ("nestopia", ["nes"]),
    ("fceumm", ["nes"]),
    ("quicknes", ["nes"]),
    ("mupen64plus", ["n64"]),
    ("parallel-n64", ["n64"]),
    ("mgba", ["gba", "gbc", "gb"]),
    ("vba-m", ["gba", "gbc", "gb"]),
    ("gambatte", ["gbc", "gb"]),
    ("sameboy", ["gbc", "gb"]),
    ("melonds", ["nds"]),
    ("desmume", ["nds"]),
    ("pcsx-rearmed", ["ps1"]),
    ("mednafen-psx", ["ps1"]),
    ("beetle-psx", ["ps1"]),
    ("swanstation", ["ps1"]),
    ("genesis-plus-gx", ["genesis", "mastersystem", "gamegear"]),
    ("picodrive", ["genesis", "mastersystem"]),
    ("blastem", ["genesis"]),
    ("flycast", ["dreamcast"]),
    ("redream", ["dreamcast"]),
    ("beetle-saturn", ["saturn"]),
    ("yabause", ["saturn"]),
    ("ppsspp", ["psp"]),
    ("dolphin", ["gamecube", "wii"]),
    ("citra", ["3ds"]),
    ("fbneo", ["arcade"]),
    ("mame", ["arcade"]),
]


@dataclass
class RetroArchCore:
    """A libretro core library found on disk."""

    file_name: str
    full_path: str
    display_name: str
    suggested_platform_ids: list[str] = field(default_factory=list)

    @property
    def launch_arguments(self) -> str:
        return f'-L "{self.full_path}" {{rom}}'


def get_default_retroarch_cores_path() -> Path | None:
    """Return the usual cores folder for this OS, or None if it is absent."""
    system = platform.system()
    home = Path.home()
    if system == "Windows":
        appdata = Path(os.environ.get("APPDATA") or home / "AppData" / "Roaming")
        candidates = [
            appdata / "RetroArch" / "cores",
            Path("C:/RetroArch-Win64/cores"),
            Path("C:/RetroArch/cores"),
            home / "scoop" / "apps" / "retroarch" / "current" / "cores",
        ]
    elif system == "Darwin":
        candidates = [home / "Library" / "Application Support" / "RetroArch" / "cores"]
    else:
        candidates = [
            home / ".config" / "retroarch" / "cores",
            home / ".var" / "app" / "org.libretro.RetroArch" / "config" / "retroarch" / "cores",
            home / "snap" / "retroarch" / "current" / ".config" / "retroarch" / "cores",
            Path("/usr/lib/libretro"),
            Path("/usr/lib/x86_64-linux-gnu/libretro"),
        ]
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    return None


def core_display_name(file_name: str) -> str:
    """``genesis_plus_gx_libretro.dll`` -> ``genesis plus gx``."""
    stem = Path(file_name).stem
    if stem.lower().endswith(CORE_SUFFIX):
        stem = stem[: -len(CORE_SUFFIX)]
    return stem.replace("_", " ").strip()


def suggest_platforms(core_name: str) -> list[str]:
    key = core_name.lower().replace("_", "-").replace(" ", "-")
    for hint, platform_ids in CORE_PLATFORM_HINTS:
        if hint in key:
            return list(platform_ids)
    return []


def scan_retroarch_cores(cores_dir: str | Path) -> list[RetroArchCore]:
    """List the libretro cores in *cores_dir*, sorted by display name.

    Raises ``FileNotFoundError`` if the folder does not exist.
    """
    root = Path(cores_dir).expanduser()
    if not root.is_dir():
        raise FileNotFoundError(f"Cores folder not found: {root}")

    cores: list[RetroArchCore] = []
    for entry in root.iterdir():
        if not entry.is_file():
            continue
        if entry.suffix.lower() not in CORE_EXTENSIONS:
            continue
        if not entry.stem.lower().endswith(CORE_SUFFIX):
            continue
        name = core_display_name(entry.name)
        cores.append(RetroArchCore(
            file_name=entry.name,
            full_path=str(entry),
            display_name=name,
            suggested_platform_ids=suggest_platforms(name),
        ))
    cores.sort(key=lambda c: c.display_name.lower())
    logger.info("Found {} RetroArch cores in {}", len(cores), root)
    return cores
