"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

APP_DIR_NAME: Final[str] = "bootkeep"
DEFAULT_DB_FILENAME: Final[str] = "baseline.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"
MANIFEST_DIR_NAME: Final[str] = "manifests"
SYSTEM_MANIFEST_DIR: Final[Path] = Path("/usr/share") / APP_DIR_NAME / MANIFEST_DIR_NAME


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    manifest_dir: Path
    system_manifest_dir: Path = SYSTEM_MANIFEST_DIR
    database_filename: str = DEFAULT_DB_FILENAME
    http_cache_filename: str = HTTP_CACHE_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def resolve_manifest_dir(self) -> Path:
        return self.manifest_dir.expanduser().resolve()

    def resolve_system_manifest_dir(self) -> Path:
        return self.system_manifest_dir.expanduser().resolve()

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def http_cache_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.http_cache_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _xdg_dir(variable: str, fallback: Path) -> Path:
    base = os.getenv(variable)
    base_path = Path(base) if base else fallback
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def _default_data_dir() -> Path:
    return _xdg_dir("XDG_DATA_HOME", Path.home() / ".local" / "share")


def _default_manifest_dir() -> Path:
    return _xdg_dir("XDG_CONFIG_HOME", Path.home() / ".config") / MANIFEST_DIR_NAME


def get_storage_config() -> StorageConfig:
    data_dir = optional_env_var("BOOTKEEP_DATA_DIR")
    manifest_dir = optional_env_var("BOOTKEEP_MANIFEST_DIR")
    system_manifest_dir = optional_env_var("BOOTKEEP_SYSTEM_MANIFEST_DIR")
    return StorageConfig(
        data_dir=Path(data_dir) if data_dir else _default_data_dir(),
        manifest_dir=Path(manifest_dir) if manifest_dir else _default_manifest_dir(),
        system_manifest_dir=(
            Path(system_manifest_dir) if system_manifest_dir else SYSTEM_MANIFEST_DIR
        ),
    )


def get_database_uri() -> str:
    """Compute the baseline database URI, respecting overrides."""

    return get_database_config().uri


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    env_uri = optional_env_var("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri())
