"""Subsystems: one backend adapter plus its tier, exposing the uniform verbs.

A subsystem never touches the stores. Each verb receives the snapshots taken
at pass start and returns its report together with a ``PendingCommit`` that the
engine applies once the subsystem's work has finished.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bootkeep.domain.errors import AdapterUnavailableError, BootkeepError, NotReconciledError
from bootkeep.domain.model import DuplicateItemError, ItemSet, SubsystemTier

from .contracts import (
    BaselineReport,
    BaselineSource,
    CaptureReport,
    Classification,
    MutationReport,
    Operation,
    SyncActionKind,
    SyncReport,
)
from .diff import differing_ids, drift_diff, staged_layer_diff, three_way_diff, two_way_diff
from .plan import plan_sync
from .policy import DEFERRED_MUTATION_TIERS, ensure_supported

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from bootkeep.domain.model import Item, ItemId, SubsystemId
    from bootkeep.domain.ports import BackendAdapter, StagedStateReader

    from .contracts import DiffReport, SyncAction

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class SubsystemSnapshot:
    """Declared and recorded state of one subsystem, read at pass start."""

    manifest: ItemSet
    baseline: ItemSet


@dataclass(frozen=True, slots=True, kw_only=True)
class PendingCommit:
    """Store writes produced by one subsystem operation."""

    manifest: ItemSet | None = None
    baseline: ItemSet | None = None
    baseline_upserts: tuple[Item, ...] = ()
    baseline_discards: tuple[ItemId, ...] = ()

    @property
    def is_empty(self) -> bool:
        return (
            self.manifest is None
            and self.baseline is None
            and not self.baseline_upserts
            and not self.baseline_discards
        )


NO_COMMIT = PendingCommit()


def _collect(subsystem_id: SubsystemId, items: Iterable[Item]) -> ItemSet:
    try:
        return ItemSet(items)
    except DuplicateItemError as exc:
        raise AdapterUnavailableError(
            f"Adapter for '{subsystem_id}' reported item '{exc.item_id}' twice"
        ) from exc


@dataclass(frozen=True, slots=True)
class Subsystem:
    """A package ecosystem registered with the reconciliation engine.

    Atomic subsystems bake their state into the bootable image and need a
    ``staged_reader`` for the pending layer; convergent subsystems apply
    state at runtime and have none.
    """

    id: SubsystemId
    name: str
    tier: SubsystemTier
    adapter: BackendAdapter
    staged_reader: StagedStateReader | None = None

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("Subsystem id must be a non-empty string")
        if self.tier is SubsystemTier.ATOMIC and self.staged_reader is None:
            raise ValueError(f"Atomic subsystem '{self.id}' needs a staged state reader")
        if self.tier is SubsystemTier.CONVERGENT and self.staged_reader is not None:
            raise ValueError(f"Convergent subsystem '{self.id}' cannot read a staged layer")

    # --- reads -------------------------------------------------------------

    def observe(self) -> ItemSet:
        return _collect(self.id, self.adapter.list())

    def read_staged(self) -> ItemSet | None:
        if self.staged_reader is None:
            return None
        items = self.staged_reader.read_staged()
        return None if items is None else _collect(self.id, items)

    def _booted_or_staged(self) -> tuple[ItemSet, BaselineSource]:
        staged = self.read_staged()
        if staged is None:
            return self.observe(), BaselineSource.BOOTED
        return staged, BaselineSource.STAGED

    def _observed(self) -> tuple[ItemSet, BaselineSource]:
        return self.observe(), BaselineSource.OBSERVED

    # --- verbs -------------------------------------------------------------

    def staged(
        self,
        snapshot: SubsystemSnapshot,
        *,
        observed_only: Classification = Classification.UNTRACKED,
    ) -> DiffReport:
        ensure_supported(self.id, self.tier, Operation.STAGED)
        if self.tier is SubsystemTier.ATOMIC:
            return staged_layer_diff(
                self.id, self.tier, booted=self.observe(), staged=self.read_staged()
            )
        return three_way_diff(
            self.id,
            self.tier,
            baseline=snapshot.baseline,
            manifest=snapshot.manifest,
            observed=self.observe(),
            observed_only=observed_only,
        )

    def drift(self, snapshot: SubsystemSnapshot) -> DiffReport:
        ensure_supported(self.id, self.tier, Operation.DRIFT)
        return drift_diff(
            self.id,
            self.tier,
            baseline=snapshot.baseline,
            manifest=snapshot.manifest,
            observed=self.observe(),
        )

    def capture(self, snapshot: SubsystemSnapshot) -> tuple[CaptureReport, PendingCommit]:
        """Record what the adapter reports as both the manifest and the baseline."""

        ensure_supported(self.id, self.tier, Operation.CAPTURE)
        observed = self.observe()
        changes = two_way_diff(self.id, self.tier, old=snapshot.manifest, new=observed)
        return (
            CaptureReport(items=observed, changes=changes),
            PendingCommit(manifest=observed, baseline=observed),
        )

    def baseline(
        self, snapshot: SubsystemSnapshot, *, force: bool = False
    ) -> tuple[BaselineReport, PendingCommit]:
        ensure_supported(self.id, self.tier, Operation.BASELINE)
        target, source = _BASELINE_TARGETS[self.tier](self)
        if not force:
            differing = differing_ids(snapshot.manifest, target)
            if differing:
                raise NotReconciledError(self.id, differing)
        return (
            BaselineReport(items=target, source=source, forced=force),
            PendingCommit(baseline=target),
        )

    def sync(
        self, snapshot: SubsystemSnapshot, *, dry_run: bool = False
    ) -> tuple[SyncReport, PendingCommit]:
        """Converge observed state to the manifest.

        Actions run one at a time; a failing action is recorded and the rest
        still run. Only successfully applied ids reach the baseline; a reinstall
        that removed the old version but failed to install the new one drops the
        id from the baseline instead.
        """

        ensure_supported(self.id, self.tier, Operation.SYNC)
        report = three_way_diff(
            self.id,
            self.tier,
            baseline=snapshot.baseline,
            manifest=snapshot.manifest,
            observed=self.observe(),
        )
        plan = plan_sync(report)
        result = SyncReport(plan=plan, dry_run=dry_run)
        if dry_run:
            return result, NO_COMMIT

        upserts: list[Item] = list(plan.settled)
        discards: list[ItemId] = list(plan.settled_removals)
        for action in plan.actions:
            removed = False
            try:
                removed = self._remove_step(action)
                self._install_step(action)
            except BootkeepError as exc:
                log.warning("%s: %s of %s failed: %s", self.id, action.kind, action.item_id, exc)
                result.failed.append((action, exc))
                if removed:
                    # The old version is gone; forget it so the next pass installs afresh.
                    discards.append(action.item_id)
                continue
            result.applied.append(action)
            if action.kind is SyncActionKind.UNINSTALL:
                discards.append(action.item_id)
            elif action.item is not None:
                upserts.append(action.item)
        return result, PendingCommit(
            baseline_upserts=tuple(upserts), baseline_discards=tuple(discards)
        )

    def _remove_step(self, action: SyncAction) -> bool:
        log.debug("%s: %s %s (%s)", self.id, action.kind, action.item_id, action.reason)
        if action.kind is not SyncActionKind.UNINSTALL and action.item is None:
            raise AdapterUnavailableError(f"No declared item to install for '{action.item_id}'")
        if action.kind is SyncActionKind.INSTALL:
            return False
        self.adapter.remove(action.item_id)
        return True

    def _install_step(self, action: SyncAction) -> None:
        if action.kind is not SyncActionKind.UNINSTALL and action.item is not None:
            self.adapter.install(action.item)

    def add(
        self, snapshot: SubsystemSnapshot, item: Item, *, defer: bool = False
    ) -> tuple[MutationReport, PendingCommit]:
        """Declare ``item``; convergent subsystems also install it unless deferred."""

        ensure_supported(self.id, self.tier, Operation.ADD)
        manifest = snapshot.manifest.with_item(item)
        deferred = defer or self.tier in DEFERRED_MUTATION_TIERS
        report = MutationReport(operation=Operation.ADD, item_id=item.id, deferred=deferred)
        if deferred:
            return report, PendingCommit(manifest=manifest)
        self.adapter.install(item)
        return report, PendingCommit(manifest=manifest, baseline_upserts=(item,))

    def remove(
        self, snapshot: SubsystemSnapshot, item_id: ItemId, *, defer: bool = False
    ) -> tuple[MutationReport, PendingCommit]:
        ensure_supported(self.id, self.tier, Operation.REMOVE)
        manifest = snapshot.manifest.without(item_id)
        deferred = defer or self.tier in DEFERRED_MUTATION_TIERS
        report = MutationReport(operation=Operation.REMOVE, item_id=item_id, deferred=deferred)
        if deferred:
            return report, PendingCommit(manifest=manifest)
        self.adapter.remove(item_id)
        return report, PendingCommit(manifest=manifest, baseline_discards=(item_id,))


_BASELINE_TARGETS: dict[SubsystemTier, Callable[[Subsystem], tuple[ItemSet, BaselineSource]]] = {
    SubsystemTier.ATOMIC: Subsystem._booted_or_staged,  # noqa: SLF001
    SubsystemTier.CONVERGENT: Subsystem._observed,  # noqa: SLF001
}
