"""RomShelf settings — a JSON file in the per-user data directory.

Besides the typed properties below, any string key can be stored with
:meth:`Config.set`, so a front end can keep its own preferences here.
"""

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from loguru import logger

APP_DIR_NAME = "RomShelf"
DATA_DIR_ENV = "ROMSHELF_DATA_DIR"


def _default_data_dir() -> Path:
    """``$ROMSHELF_DATA_DIR`` if set, else the platform's per-user app dir."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif system == "Darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")
    return base / APP_DIR_NAME


_DEFAULTS: dict[str, Any] = {
    "library_path": "",
    "covers_path": "",
    "scan_folders": [],
    "igdb_client_id": "",
    "igdb_client_secret": "",
    "error_display_limit": 5,
    "scrape_only_missing": True,
    "retroarch_path": "",
    "retroarch_cores_path": "",
}


class Config:
    """Process-wide settings; the first construction decides the data dir."""

    _instance: Optional["Config"] = None
    _data: dict[str, Any]
    _path: Path
    _data_dir: Path

    def __new__(
        cls,
        config_path: Optional[Path] = None,
        data_dir: Optional[Path] = None,
    ) -> "Config":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._ready = False
            cls._instance = instance
        return cls._instance

    def __init__(
        self,
        config_path: Optional[Path] = None,
        data_dir: Optional[Path] = None,
    ) -> None:
        if self._ready:  # type: ignore[has-type]
            return
        self._ready = True
        self._data_dir = Path(data_dir) if data_dir else _default_data_dir()
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._path = Path(config_path) if config_path else self._data_dir / "settings.json"
        self._data = {**_DEFAULTS, "scan_folders": []}
        self._load()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def library_path(self) -> Path:
        return self._path_setting("library_path", "library.json")

    @property
    def covers_dir(self) -> Path:
        return self._path_setting("covers_path", "covers")

    @property
    def scan_folders(self) -> list[dict[str, str]]:
        """Saved scan locations as ``{"path": ..., "platform_id": ...}`` dicts."""
        return list(self._data.get("scan_folders", []))

    @property
    def igdb_client_id(self) -> str:
        return self._data.get("igdb_client_id", "")

    @property
    def igdb_client_secret(self) -> str:
        return self._data.get("igdb_client_secret", "")

    @property
    def has_igdb_credentials(self) -> bool:
        return bool(self.igdb_client_id and self.igdb_client_secret)

    @property
    def error_display_limit(self) -> int:
        return int(self._data.get("error_display_limit", 5))

    @property
    def scrape_only_missing(self) -> bool:
        return bool(self._data.get("scrape_only_missing", True))

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def add_scan_folder(self, path: str, platform_id: str | None = None) -> None:
        """Remember a scan location; re-adding a path replaces its override."""
        folders = [f for f in self.scan_folders if f.get("path") != path]
        entry = {"path": path}
        if platform_id:
            entry["platform_id"] = platform_id
        folders.append(entry)
        self._data["scan_folders"] = folders
        self._save()

    def remove_scan_folder(self, path: str) -> None:
        self._data["scan_folders"] = [
            f for f in self.scan_folders if f.get("path") != path
        ]
        self._save()

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _path_setting(self, key: str, fallback: str) -> Path:
        """A user-set path, or *fallback* inside the data dir."""
        value = self._data.get(key) or ""
        return Path(value).expanduser() if value else self._data_dir / fallback

    def _load(self) -> None:
        """Merge the saved file over the defaults; a bad file is ignored."""
        if not self._path.is_file():
            return
        try:
            saved = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable config {}: {}", self._path, e)
            return
        if not isinstance(saved, dict):
            logger.warning("Ignoring config {}: top level is not an object", self._path)
            return

        folders = saved.pop("scan_folders", [])
        self._data.update(saved)
        self._data["scan_folders"] = [
            f for f in folders if isinstance(f, dict) and f.get("path")
        ] if isinstance(folders, list) else []
        logger.info("Settings loaded from {}", self._path)

    def _save(self) -> None:
        """Write atomically; a failed write keeps the in-memory values."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=".config-", suffix=".json", dir=str(self._path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, indent=4, ensure_ascii=False)
                os.replace(tmp, self._path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save settings to {}: {}", self._path, e)

    @classmethod
    def reset(cls) -> None:
        """Drop the shared instance so the next ``Config()`` reloads from disk."""
        cls._instance = None
