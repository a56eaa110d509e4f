"""Where rosterlink keeps its mapping database and roster HTTP cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

APP_DIR_NAME: Final[str] = "rosterlink"
DATABASE_FILENAME: Final[str] = "rosterlink.db"
HTTP_CACHE_FILENAME: Final[str] = "roster_http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory; created on first use."""

    data_dir: Path

    def path_for(self, filename: str) -> Path:
        data_dir = self.data_dir.expanduser().resolve()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / filename

    def database_path(self) -> Path:
        return self.path_for(DATABASE_FILENAME)

    def http_cache_path(self) -> Path:
        return self.path_for(HTTP_CACHE_FILENAME)


def _platform_data_dir() -> Path:
    if os.name == "nt":
        base = optional_env_var("LOCALAPPDATA")
        return Path(base or Path.home() / "AppData" / "Local") / APP_DIR_NAME
    base = optional_env_var("XDG_DATA_HOME")
    return Path(base or Path.home() / ".local" / "share") / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    configured = optional_env_var("ROSTERLINK_DATA_DIR")
    return StorageConfig(data_dir=Path(configured) if configured else _platform_data_dir())


def get_database_uri() -> str:
    """``DATABASE_URI`` wins; otherwise a SQLite file in the data directory."""

    configured = optional_env_var("DATABASE_URI")
    if configured:
        return configured
    return f"sqlite+pysqlite:///{get_storage_config().database_path()}"


def get_http_cache_path() -> Path:
    return get_storage_config().http_cache_path()
