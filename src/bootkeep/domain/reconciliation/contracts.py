"""Shared reconciliation contract components.

This module holds the verbs, the per-item classifications and the typed
reports that subsystems return and the engine aggregates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bootkeep.domain.errors import BootkeepError
    from bootkeep.domain.model import Item, ItemId, ItemSet, SubsystemId, SubsystemTier


class Operation(StrEnum):
    STAGED = "staged"
    SYNC = "sync"
    CAPTURE = "capture"
    DRIFT = "drift"
    BASELINE = "baseline"
    ADD = "add"
    REMOVE = "remove"


class Classification(StrEnum):
    """Where one item id stands after comparing two or three snapshots."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"
    PENDING_CHANGE = "pending-change"
    PENDING_REMOVAL = "pending-removal"
    DRIFTED = "drifted"
    UNTRACKED = "untracked"


class DiffMode(StrEnum):
    # previous manifest vs freshly captured one
    TWO_WAY = "two-way"
    # booted image vs pending image layer
    STAGED_LAYER = "staged-layer"
    # baseline, manifest and observed state
    THREE_WAY = "three-way"
    # observed vs manifest, annotated against the baseline
    DRIFT = "drift"


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemComparison:
    """One item id with every snapshot's view of it."""

    item_id: ItemId
    classification: Classification
    baseline: Item | None = None
    manifest: Item | None = None
    observed: Item | None = None
    staged: Item | None = None


@dataclass(slots=True, kw_only=True)
class DiffReport:
    """Classification of every item id of one subsystem.

    Each id appears in exactly one classification; the ids together are the
    union of the compared snapshots.
    """

    subsystem_id: SubsystemId
    tier: SubsystemTier
    mode: DiffMode
    comparisons: dict[ItemId, ItemComparison] = field(
        default_factory=dict["ItemId", "ItemComparison"]
    )
    drifted_from_baseline: frozenset[ItemId] = frozenset()
    pending_layer: bool | None = None

    def ids(self, classification: Classification) -> frozenset[ItemId]:
        return frozenset(
            item_id
            for item_id, comparison in self.comparisons.items()
            if comparison.classification is classification
        )

    def buckets(self) -> dict[Classification, tuple[ItemId, ...]]:
        """Return non-empty classifications in declaration order of ``Classification``."""

        grouped: dict[Classification, list[ItemId]] = {}
        for item_id, comparison in self.comparisons.items():
            grouped.setdefault(comparison.classification, []).append(item_id)
        return {
            classification: tuple(sorted(grouped[classification]))
            for classification in Classification
            if classification in grouped
        }

    @property
    def conflicts(self) -> tuple[ItemComparison, ...]:
        return tuple(
            comparison
            for comparison in self.comparisons.values()
            if comparison.classification is Classification.CONFLICT
        )

    @property
    def has_conflicts(self) -> bool:
        return any(
            comparison.classification is Classification.CONFLICT
            for comparison in self.comparisons.values()
        )

    @property
    def is_clean(self) -> bool:
        return all(
            comparison.classification is Classification.UNCHANGED
            for comparison in self.comparisons.values()
        )


class SyncActionKind(StrEnum):
    INSTALL = "install"
    REINSTALL = "reinstall"
    UNINSTALL = "uninstall"


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncAction:
    kind: SyncActionKind
    item_id: ItemId
    item: Item | None = None
    reason: Classification


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncPlan:
    """Actions that converge observed state to the manifest."""

    subsystem_id: SubsystemId
    actions: tuple[SyncAction, ...] = ()
    skipped_conflicts: tuple[ItemComparison, ...] = ()
    # agreed ids whose baseline entry is refreshed without any action
    settled: tuple[Item, ...] = ()
    settled_removals: tuple[ItemId, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.actions


@dataclass(slots=True, kw_only=True)
class SyncReport:
    plan: SyncPlan
    dry_run: bool = False
    applied: list[SyncAction] = field(default_factory=list["SyncAction"])
    failed: list[tuple[SyncAction, BootkeepError]] = field(
        default_factory=list[tuple["SyncAction", "BootkeepError"]]
    )

    @property
    def has_conflicts(self) -> bool:
        return bool(self.plan.skipped_conflicts)


@dataclass(slots=True, kw_only=True)
class CaptureReport:
    items: ItemSet
    changes: DiffReport


class BaselineSource(StrEnum):
    STAGED = "staged"
    BOOTED = "booted"
    OBSERVED = "observed"


@dataclass(slots=True, kw_only=True)
class BaselineReport:
    items: ItemSet
    source: BaselineSource
    forced: bool = False


@dataclass(slots=True, kw_only=True)
class MutationReport:
    operation: Operation
    item_id: ItemId
    deferred: bool


type OperationReport = DiffReport | SyncReport | CaptureReport | BaselineReport | MutationReport


class OutcomeStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"
    CANCELLED = "cancelled"


@dataclass(slots=True, kw_only=True)
class SubsystemOutcome:
    subsystem_id: SubsystemId
    name: str
    tier: SubsystemTier
    operation: Operation
    status: OutcomeStatus
    report: OperationReport | None = None
    error: BootkeepError | None = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    @property
    def has_conflicts(self) -> bool:
        report = self.report
        if isinstance(report, (DiffReport, SyncReport)):
            return report.has_conflicts
        return False


EXIT_OK = 0
EXIT_ATTENTION = 1
EXIT_CALLER_ERROR = 2


@dataclass(slots=True, kw_only=True)
class AggregateReport:
    """Outcomes of one reconciliation pass, in registry order."""

    operation: Operation
    outcomes: dict[SubsystemId, SubsystemOutcome] = field(
        default_factory=dict["SubsystemId", "SubsystemOutcome"]
    )
    committed: tuple[SubsystemId, ...] = ()

    def __iter__(self) -> Iterator[SubsystemOutcome]:
        return iter(self.outcomes.values())

    def by_status(self, status: OutcomeStatus) -> tuple[SubsystemOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes.values() if outcome.status is status)

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and all(
            outcome.status is OutcomeStatus.FAILED for outcome in self.outcomes.values()
        )

    @property
    def has_conflicts(self) -> bool:
        return any(outcome.has_conflicts for outcome in self.outcomes.values())

    @property
    def exit_code(self) -> int:
        """0 when clean, 1 on failures or conflicts, 2 on caller errors only."""

        attention = self.has_conflicts or any(
            outcome.status in {OutcomeStatus.FAILED, OutcomeStatus.CANCELLED}
            for outcome in self.outcomes.values()
        )
        if attention:
            return EXIT_ATTENTION
        if self.by_status(OutcomeStatus.UNSUPPORTED):
            return EXIT_CALLER_ERROR
        return EXIT_OK
