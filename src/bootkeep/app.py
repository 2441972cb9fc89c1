"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from bootkeep.adapters.commands import SubprocessCommandRunner
from bootkeep.adapters.deployments import DeploymentInspector
from bootkeep.adapters.ecosystems import (
    AppImageAdapter,
    DconfAdapter,
    DistroboxAdapter,
    FlatpakAdapter,
    GnomeExtensionsAdapter,
    HomebrewAdapter,
    HostShimsAdapter,
    RpmOstreePackagesAdapter,
    UpstreamBinariesAdapter,
)
from bootkeep.adapters.github import GitHubReleasesClient
from bootkeep.adapters.manifest import JsonManifestStore
from bootkeep.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyBaselineUnitOfWork,
    is_started,
    startup,
)
from bootkeep.config import (
    get_adapter_config,
    get_engine_config,
    get_github_config,
    get_storage_config,
)
from bootkeep.domain.model import SubsystemTier
from bootkeep.domain.ports.unit_of_work import BaselineUnitOfWork
from bootkeep.domain.reconciliation import (
    Classification,
    Operation,
    PassPolicy,
    ReconciliationEngine,
    Subsystem,
    SubsystemRegistry,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootkeep.config import AdapterConfig, EngineConfig, StorageConfig
    from bootkeep.domain.model import Item, ItemId, SubsystemId
    from bootkeep.domain.ports import CommandRunner, ManifestStore
    from bootkeep.domain.reconciliation import (
        AggregateReport,
        CancellationToken,
        SubsystemOutcome,
    )

UnitOfWorkFactory = Callable[[], BaselineUnitOfWork]


log = getLogger(__name__)


def build_registry(
    *,
    runner: CommandRunner | None = None,
    adapter_config: AdapterConfig | None = None,
    releases: GitHubReleasesClient | None = None,
    inspector: DeploymentInspector | None = None,
) -> SubsystemRegistry:
    """Register the built-in ecosystems, atomic ones first."""

    config = adapter_config or get_adapter_config()
    effective_runner = runner or SubprocessCommandRunner(timeout_seconds=config.timeout_seconds)
    effective_inspector = inspector or DeploymentInspector(effective_runner)
    effective_releases = releases or GitHubReleasesClient(config=get_github_config())

    packages = RpmOstreePackagesAdapter(effective_runner, effective_inspector)
    upstream = UpstreamBinariesAdapter(effective_inspector, lock_path=config.upstream_lock)
    shims = HostShimsAdapter(effective_inspector, shim_dir=config.shim_dir)

    atomic = SubsystemTier.ATOMIC
    convergent = SubsystemTier.CONVERGENT
    return SubsystemRegistry(
        [
            Subsystem(
                id="system",
                name="Base packages",
                tier=atomic,
                adapter=packages,
                staged_reader=packages,
            ),
            Subsystem(
                id="upstream",
                name="Upstream binaries",
                tier=atomic,
                adapter=upstream,
                staged_reader=upstream,
            ),
            Subsystem(
                id="shim", name="Host shims", tier=atomic, adapter=shims, staged_reader=shims
            ),
            Subsystem(
                id="extension",
                name="GNOME extensions",
                tier=convergent,
                adapter=GnomeExtensionsAdapter(effective_runner),
            ),
            Subsystem(
                id="flatpak",
                name="Flatpak apps",
                tier=convergent,
                adapter=FlatpakAdapter(effective_runner),
            ),
            Subsystem(
                id="dconf",
                name="Settings overlay",
                tier=convergent,
                adapter=DconfAdapter(effective_runner, prefixes=config.dconf_paths),
            ),
            Subsystem(
                id="distrobox",
                name="Toolbox containers",
                tier=convergent,
                adapter=DistroboxAdapter(effective_runner),
            ),
            Subsystem(
                id="appimage",
                name="AppImages",
                tier=convergent,
                adapter=AppImageAdapter(
                    directory=config.appimage_dir, releases=effective_releases
                ),
            ),
            Subsystem(
                id="homebrew",
                name="Homebrew",
                tier=convergent,
                adapter=HomebrewAdapter(effective_runner),
            ),
        ]
    )


def pass_policy(config: EngineConfig | None = None) -> PassPolicy:
    effective = config or get_engine_config()
    return PassPolicy(
        parallelism=effective.parallelism,
        all_or_nothing=effective.all_or_nothing,
        observed_only=Classification(effective.staged_observed_only),
    )


def default_manifest_store(storage: StorageConfig | None = None) -> JsonManifestStore:
    """User manifests layered over the read-only ones shipped with the image."""

    config = storage or get_storage_config()
    return JsonManifestStore(
        config.resolve_manifest_dir(),
        system_directory=config.resolve_system_manifest_dir(),
    )


def build_engine(
    *,
    registry: SubsystemRegistry | None = None,
    manifest_store: ManifestStore | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    engine_config: EngineConfig | None = None,
) -> ReconciliationEngine:
    """Wire stores and subsystems into an engine and persist subsystem tiers."""

    if unit_of_work_factory is None and not is_started():
        startup()
    engine = ReconciliationEngine(
        registry=registry or build_registry(),
        manifests=manifest_store or default_manifest_store(),
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyBaselineUnitOfWork,
        policy=pass_policy(engine_config),
    )
    engine.register_tiers()
    return engine


def reconcile(
    operation: Operation,
    subsystem_ids: Iterable[SubsystemId] | None = None,
    *,
    dry_run: bool = False,
    force: bool = False,
    cancel: CancellationToken | None = None,
    engine: ReconciliationEngine | None = None,
) -> AggregateReport:
    """Run one pass-level verb over the selected (or all) subsystems."""

    effective = engine or build_engine()
    ids = list(subsystem_ids) if subsystem_ids else None
    log.info(
        "Reconciling: operation=%s, subsystems=%s, dry_run=%s, force=%s",
        operation,
        ids or "all",
        dry_run,
        force,
    )
    if operation is Operation.STAGED:
        return effective.staged(ids, cancel=cancel)
    if operation is Operation.DRIFT:
        return effective.drift(ids, cancel=cancel)
    if operation is Operation.CAPTURE:
        return effective.capture(ids, cancel=cancel)
    if operation is Operation.SYNC:
        return effective.sync(ids, dry_run=dry_run, cancel=cancel)
    if operation is Operation.BASELINE:
        return effective.baseline(ids, force=force, cancel=cancel)
    raise ValueError(f"{operation} is not a pass-level operation")


def add_item(
    subsystem_id: SubsystemId,
    item: Item,
    *,
    defer: bool = False,
    engine: ReconciliationEngine | None = None,
) -> SubsystemOutcome:
    effective = engine or build_engine()
    log.info("Adding %s to %s (defer=%s)", item.describe(), subsystem_id, defer)
    return effective.add(subsystem_id, item, defer=defer)


def remove_item(
    subsystem_id: SubsystemId,
    item_id: ItemId,
    *,
    defer: bool = False,
    engine: ReconciliationEngine | None = None,
) -> SubsystemOutcome:
    effective = engine or build_engine()
    log.info("Removing %s from %s (defer=%s)", item_id, subsystem_id, defer)
    return effective.remove(subsystem_id, item_id, defer=defer)
