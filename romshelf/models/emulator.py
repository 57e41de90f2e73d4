"""Data model for configured emulators."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


DEFAULT_LAUNCH_ARGUMENTS = "{rom}"


@dataclass
class Emulator:
    """A user-configured external program that can run games."""

    name: str
    """Display name of the emulator (e.g. 'PCSX2', 'RetroArch (snes9x)')."""

    executable_path: str
    """Path to the emulator executable."""

    launch_arguments: str = DEFAULT_LAUNCH_ARGUMENTS
    """Argument template; ``{rom}`` and ``{title}`` are substituted at launch."""

    supported_platform_ids: list[str] = field(default_factory=list)
    """Platform ids this emulator can run (e.g. ['ps2'], ['nes', 'snes'])."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def supports(self, platform_id: str) -> bool:
        return platform_id in self.supported_platform_ids

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "executable_path": self.executable_path,
            "launch_arguments": self.launch_arguments,
            "supported_platform_ids": list(self.supported_platform_ids),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Emulator:
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            name=data.get("name", ""),
            executable_path=data.get("executable_path", ""),
            launch_arguments=data.get("launch_arguments") or DEFAULT_LAUNCH_ARGUMENTS,
            supported_platform_ids=list(data.get("supported_platform_ids", [])),
        )


@dataclass
class EmulatorCreate:
    name: str
    executable_path: str
    launch_arguments: str | None = None
    supported_platform_ids: list[str] = field(default_factory=list)


@dataclass
class EmulatorUpdate:
    name: str | None = None
    executable_path: str | None = None
    launch_arguments: str | None = None
    supported_platform_ids: list[str] | None = None


@dataclass
class LaunchTarget:
    """Concrete program + arguments produced by the resolver.

    ``arguments`` is the rendered template for display; ``argv`` is what
    gets spawned, with each substituted value kept as one argument.
    """

    emulator: Emulator
    program: str
    arguments: str
    argv: list[str] = field(default_factory=list)
