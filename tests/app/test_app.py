from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from bootkeep.adapters.github import GitHubReleasesClient
from bootkeep.app import (
    add_item,
    build_engine,
    build_registry,
    default_manifest_store,
    pass_policy,
    reconcile,
)
from bootkeep.config import AdapterConfig, EngineConfig, StorageConfig, get_github_config
from bootkeep.domain.model import Item, SubsystemTier
from bootkeep.domain.reconciliation import (
    Classification,
    Operation,
    OutcomeStatus,
    SubsystemRegistry,
)
from tests.helpers.subsystems import FakeAdapter, FakeCommandRunner, convergent

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from bootkeep.adapters.manifest import JsonManifestStore
    from bootkeep.adapters.sqlalchemy.unit_of_work import SqlAlchemyBaselineUnitOfWork


def test_registry_lists_every_ecosystem_atomic_first(tmp_path: Path) -> None:
    registry = build_registry(
        runner=FakeCommandRunner(),
        adapter_config=AdapterConfig(appimage_dir=tmp_path),
        releases=GitHubReleasesClient(config=get_github_config()),
    )

    assert [(s.id, s.tier) for s in registry] == [
        ("system", SubsystemTier.ATOMIC),
        ("upstream", SubsystemTier.ATOMIC),
        ("shim", SubsystemTier.ATOMIC),
        ("extension", SubsystemTier.CONVERGENT),
        ("flatpak", SubsystemTier.CONVERGENT),
        ("dconf", SubsystemTier.CONVERGENT),
        ("distrobox", SubsystemTier.CONVERGENT),
        ("appimage", SubsystemTier.CONVERGENT),
        ("homebrew", SubsystemTier.CONVERGENT),
    ]
    assert all(s.staged_reader is not None for s in registry if s.tier is SubsystemTier.ATOMIC)


def test_pass_policy_follows_engine_config() -> None:
    policy = pass_policy(
        EngineConfig(parallelism=8, all_or_nothing=True, staged_observed_only="added")
    )

    assert policy.parallelism == 8
    assert policy.all_or_nothing is True
    assert policy.observed_only is Classification.ADDED


def test_reconcile_and_add_run_through_a_wired_engine(
    sqlite_unit_of_work: Callable[[], SqlAlchemyBaselineUnitOfWork],
    manifest_store: JsonManifestStore,
) -> None:
    adapter = FakeAdapter([Item("fd")])
    engine = build_engine(
        registry=SubsystemRegistry([convergent("homebrew", adapter)]),
        manifest_store=manifest_store,
        unit_of_work_factory=sqlite_unit_of_work,
        engine_config=EngineConfig(parallelism=1),
    )

    captured = reconcile(Operation.CAPTURE, engine=engine)
    outcome = add_item("homebrew", Item("bat"), engine=engine)

    assert captured.committed == ("homebrew",)
    assert outcome.status is OutcomeStatus.OK
    assert set(manifest_store.load("homebrew")) == {"fd", "bat"}


def test_reconcile_rejects_single_item_operations(
    sqlite_unit_of_work: Callable[[], SqlAlchemyBaselineUnitOfWork],
    manifest_store: JsonManifestStore,
) -> None:
    engine = build_engine(
        registry=SubsystemRegistry([convergent("homebrew")]),
        manifest_store=manifest_store,
        unit_of_work_factory=sqlite_unit_of_work,
        engine_config=EngineConfig(),
    )

    with pytest.raises(ValueError, match="not a pass-level operation"):
        reconcile(Operation.ADD, engine=engine)


def test_default_manifest_store_layers_user_over_system(tmp_path: Path) -> None:
    store = default_manifest_store(
        StorageConfig(
            data_dir=tmp_path / "data",
            manifest_dir=tmp_path / "user",
            system_manifest_dir=tmp_path / "image",
        )
    )

    assert store.directory == (tmp_path / "user").resolve()
    assert store.system_directory == (tmp_path / "image").resolve()
