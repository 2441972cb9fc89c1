from __future__ import annotations

import logging
from pathlib import Path

import pytest

from bootkeep.config import (
    ConfigurationError,
    InvalidConfigValueError,
    MissingConfigurationError,
    configure_logging,
    get_adapter_config,
    get_database_config,
    get_engine_config,
    get_storage_config,
    require_env_vars,
)
from bootkeep.config.env import env_bool, env_int, env_list


def test_require_env_vars_reports_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRESENT_VAR", "value")
    monkeypatch.setenv("BLANK_VAR", "   ")
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as excinfo:
        require_env_vars(["PRESENT_VAR", "MISSING_VAR", "BLANK_VAR"])

    assert str(excinfo.value) == "Missing configuration for: BLANK_VAR, MISSING_VAR"


def test_env_int_validates_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOTKEEP_PARALLELISM", "many")
    with pytest.raises(ConfigurationError, match="must be an integer"):
        env_int("BOOTKEEP_PARALLELISM", 4)

    monkeypatch.setenv("BOOTKEEP_PARALLELISM", "0")
    with pytest.raises(ConfigurationError, match="at least 1"):
        env_int("BOOTKEEP_PARALLELISM", 4, minimum=1)


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("Yes", True), ("off", False)])
def test_env_bool_accepts_common_spellings(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool  # noqa: FBT001
) -> None:
    monkeypatch.setenv("BOOTKEEP_ALL_OR_NOTHING", raw)

    assert env_bool("BOOTKEEP_ALL_OR_NOTHING") is expected


def test_env_list_splits_on_commas(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOTKEEP_DCONF_PATHS", "/org/gnome/, ,/org/freedesktop/")

    assert env_list("BOOTKEEP_DCONF_PATHS", ()) == ("/org/gnome/", "/org/freedesktop/")


def test_engine_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    names = ("BOOTKEEP_PARALLELISM", "BOOTKEEP_ALL_OR_NOTHING", "BOOTKEEP_STAGED_OBSERVED_ONLY")
    for name in names:
        monkeypatch.delenv(name, raising=False)

    config = get_engine_config()

    assert config.parallelism == 4
    assert config.all_or_nothing is False
    assert config.staged_observed_only == "untracked"


def test_engine_config_rejects_unknown_observed_only_mode(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("BOOTKEEP_STAGED_OBSERVED_ONLY", "conflict")

    with pytest.raises(InvalidConfigValueError, match="BOOTKEEP_STAGED_OBSERVED_ONLY") as excinfo:
        get_engine_config()

    assert excinfo.value.variable == "BOOTKEEP_STAGED_OBSERVED_ONLY"
    assert excinfo.value.value == "conflict"


def test_storage_config_honours_overrides(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("BOOTKEEP_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("BOOTKEEP_MANIFEST_DIR", str(tmp_path / "manifests"))
    monkeypatch.setenv("BOOTKEEP_SYSTEM_MANIFEST_DIR", str(tmp_path / "image"))
    monkeypatch.delenv("DATABASE_URI", raising=False)

    storage = get_storage_config()

    assert storage.resolve_manifest_dir() == (tmp_path / "manifests").resolve()
    assert storage.resolve_system_manifest_dir() == (tmp_path / "image").resolve()
    assert get_database_config(storage=storage).uri == (
        f"sqlite+pysqlite:///{(tmp_path / 'data').resolve() / 'baseline.db'}"
    )
    assert (tmp_path / "data").is_dir()


def test_storage_config_follows_xdg_directories(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("BOOTKEEP_DATA_DIR", raising=False)
    monkeypatch.delenv("BOOTKEEP_MANIFEST_DIR", raising=False)
    monkeypatch.delenv("BOOTKEEP_SYSTEM_MANIFEST_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "share"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))

    storage = get_storage_config()

    assert storage.resolve_data_dir() == (tmp_path / "share" / "bootkeep").resolve()
    assert storage.resolve_manifest_dir() == (
        tmp_path / "config" / "bootkeep" / "manifests"
    ).resolve()
    assert storage.system_manifest_dir == Path("/usr/share/bootkeep/manifests")


def test_database_uri_override_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"


def test_adapter_config_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOTKEEP_ADAPTER_TIMEOUT", "12.5")
    monkeypatch.setenv("BOOTKEEP_APPIMAGE_DIR", "/opt/appimages")
    monkeypatch.delenv("BOOTKEEP_DCONF_PATHS", raising=False)

    config = get_adapter_config()

    assert config.timeout_seconds == 12.5
    assert config.appimage_dir == Path("/opt/appimages")
    assert config.dconf_paths == ("/org/gnome/",)


@pytest.mark.parametrize(("verbose", "level"), [(False, logging.INFO), (True, logging.DEBUG)])
def test_configure_logging_picks_level_and_format(
    monkeypatch: pytest.MonkeyPatch, verbose: bool, level: int  # noqa: FBT001
) -> None:
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging(verbose=verbose, force=verbose)

    (kwargs,) = calls
    assert kwargs["level"] == level
    assert kwargs["force"] is verbose
    assert ("%(threadName)s" in str(kwargs["format"])) is verbose
