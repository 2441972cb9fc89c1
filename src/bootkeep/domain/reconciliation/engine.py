"""Orchestrator for reconciliation passes.

One pass runs one verb over the applicable subsystems of the registry:

1) select subsystems through the registry (tier legality applied)
2) snapshot manifest and baseline for each of them on the calling thread
3) run the per-subsystem work on a bounded thread pool
4) commit each subsystem's store writes as its work completes
5) aggregate outcomes and apply the pass-level failure policy

Subsystem-scoped errors become outcomes at step 3. A store write failing at
step 4 turns that subsystem's outcome into a failure; the other subsystems
still commit.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from bootkeep.domain.errors import (
    BootkeepError,
    PassCancelledError,
    ReconciliationFailedError,
    StoreCorruptError,
    StoreWriteError,
    TierChangedError,
    UnsupportedForTierError,
)

from .contracts import (
    AggregateReport,
    Operation,
    OutcomeStatus,
    SubsystemOutcome,
    SyncReport,
)
from .policy import PassPolicy
from .subsystem import NO_COMMIT, PendingCommit, SubsystemSnapshot

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from bootkeep.domain.model import Item, ItemId, SubsystemId
    from bootkeep.domain.ports import BaselineUnitOfWork, ManifestStore

    from .contracts import OperationReport
    from .registry import SubsystemRegistry
    from .subsystem import Subsystem

    type Work = Callable[[Subsystem, SubsystemSnapshot], tuple[OperationReport, PendingCommit]]

log = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe flag checked before each subsystem starts."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(slots=True)
class ReconciliationEngine:
    """Run reconciliation verbs across the registered subsystems."""

    registry: SubsystemRegistry
    manifests: ManifestStore
    unit_of_work_factory: Callable[[], BaselineUnitOfWork]
    policy: PassPolicy = field(default_factory=PassPolicy)

    def register_tiers(self) -> None:
        """Persist each subsystem's tier, refusing a tier that changed since."""

        with self.unit_of_work_factory() as uow:
            repository = uow.repositories.subsystems
            for subsystem in self.registry.all():
                persisted = repository.registered_tier(subsystem.id)
                if persisted is None:
                    log.info("Registering subsystem %s as %s", subsystem.id, subsystem.tier)
                    repository.register(subsystem.id, subsystem.tier)
                elif persisted is not subsystem.tier:
                    raise TierChangedError(
                        subsystem.id, registered=subsystem.tier, persisted=persisted
                    )
            uow.commit()

    # --- passes --------------------------------------------------------------

    def staged(
        self,
        subsystem_ids: Iterable[SubsystemId] | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> AggregateReport:
        observed_only = self.policy.observed_only
        return self._pass(
            Operation.STAGED,
            subsystem_ids,
            lambda s, snapshot: (s.staged(snapshot, observed_only=observed_only), NO_COMMIT),
            cancel,
        )

    def drift(
        self,
        subsystem_ids: Iterable[SubsystemId] | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> AggregateReport:
        return self._pass(
            Operation.DRIFT,
            subsystem_ids,
            lambda s, snapshot: (s.drift(snapshot), NO_COMMIT),
            cancel,
        )

    def capture(
        self,
        subsystem_ids: Iterable[SubsystemId] | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> AggregateReport:
        return self._pass(
            Operation.CAPTURE, subsystem_ids, lambda s, snapshot: s.capture(snapshot), cancel
        )

    def sync(
        self,
        subsystem_ids: Iterable[SubsystemId] | None = None,
        *,
        dry_run: bool = False,
        cancel: CancellationToken | None = None,
    ) -> AggregateReport:
        return self._pass(
            Operation.SYNC,
            subsystem_ids,
            lambda s, snapshot: s.sync(snapshot, dry_run=dry_run),
            cancel,
        )

    def baseline(
        self,
        subsystem_ids: Iterable[SubsystemId] | None = None,
        *,
        force: bool = False,
        cancel: CancellationToken | None = None,
    ) -> AggregateReport:
        return self._pass(
            Operation.BASELINE,
            subsystem_ids,
            lambda s, snapshot: s.baseline(snapshot, force=force),
            cancel,
        )

    # --- single-item mutations ----------------------------------------------

    def add(
        self, subsystem_id: SubsystemId, item: Item, *, defer: bool = False
    ) -> SubsystemOutcome:
        report = self._execute(
            Operation.ADD,
            (subsystem_id,),
            lambda s, snapshot: s.add(snapshot, item, defer=defer),
            None,
        )
        return report.outcomes[subsystem_id]

    def remove(
        self, subsystem_id: SubsystemId, item_id: ItemId, *, defer: bool = False
    ) -> SubsystemOutcome:
        report = self._execute(
            Operation.REMOVE,
            (subsystem_id,),
            lambda s, snapshot: s.remove(snapshot, item_id, defer=defer),
            None,
        )
        return report.outcomes[subsystem_id]

    # --- internals -----------------------------------------------------------

    def _pass(
        self,
        operation: Operation,
        subsystem_ids: Iterable[SubsystemId] | None,
        work: Work,
        cancel: CancellationToken | None,
    ) -> AggregateReport:
        report = self._execute(operation, subsystem_ids, work, cancel)
        if report.all_failed:
            raise ReconciliationFailedError(
                f"{operation} failed for every subsystem", report=report
            )
        return report

    def _execute(
        self,
        operation: Operation,
        subsystem_ids: Iterable[SubsystemId] | None,
        work: Work,
        cancel: CancellationToken | None,
    ) -> AggregateReport:
        applicable, unsupported = self.registry.select(operation, subsystem_ids)
        token = cancel or CancellationToken()
        log.info("Starting %s over %d subsystem(s)", operation, len(applicable))

        outcomes: dict[SubsystemId, SubsystemOutcome] = {}
        for subsystem in unsupported:
            outcomes[subsystem.id] = _outcome(
                subsystem,
                operation,
                OutcomeStatus.UNSUPPORTED,
                error=UnsupportedForTierError(subsystem.id, subsystem.tier, operation),
            )

        snapshots = self._snapshots(operation, applicable, outcomes)
        committed: list[SubsystemId] = []
        deferred: dict[SubsystemId, PendingCommit] = {}

        with ThreadPoolExecutor(
            max_workers=self.policy.parallelism, thread_name_prefix="bootkeep"
        ) as executor:
            futures = {
                executor.submit(self._attempt, subsystem, operation, snapshot, work, token): (
                    subsystem
                )
                for subsystem in applicable
                if (snapshot := snapshots.get(subsystem.id)) is not None
            }
            for future in as_completed(futures):
                subsystem = futures[future]
                if token.cancelled:
                    for pending in futures:
                        pending.cancel()
                if future.cancelled():
                    outcome, commit = _cancelled(subsystem, operation), NO_COMMIT
                else:
                    outcome, commit = future.result()
                outcomes[subsystem.id] = outcome
                log.info("%s %s: %s", operation, subsystem.id, outcome.status)
                if commit.is_empty:
                    continue
                if self.policy.all_or_nothing:
                    deferred[subsystem.id] = commit
                elif self._try_commit(subsystem.id, commit, outcomes):
                    committed.append(subsystem.id)

        report = AggregateReport(
            operation=operation,
            outcomes={s.id: outcomes[s.id] for s in self.registry.all() if s.id in outcomes},
        )
        if self.policy.all_or_nothing:
            rejected = [
                outcome
                for outcome in report
                if outcome.status in {OutcomeStatus.FAILED, OutcomeStatus.CANCELLED}
            ]
            if rejected:
                raise ReconciliationFailedError(
                    f"{operation} left {len(rejected)} subsystem(s) unreconciled; "
                    "nothing was committed",
                    report=report,
                )
            for subsystem_id, commit in deferred.items():
                if self._try_commit(subsystem_id, commit, report.outcomes):
                    committed.append(subsystem_id)
        report.committed = tuple(committed)
        log.info(
            "Finished %s: %d subsystem(s), %d committed",
            operation,
            len(report.outcomes),
            len(committed),
        )
        return report

    def _snapshots(
        self,
        operation: Operation,
        subsystems: tuple[Subsystem, ...],
        outcomes: dict[SubsystemId, SubsystemOutcome],
    ) -> dict[SubsystemId, SubsystemSnapshot]:
        snapshots: dict[SubsystemId, SubsystemSnapshot] = {}
        if not subsystems:
            return snapshots
        with self.unit_of_work_factory() as uow:
            baselines = uow.repositories.baselines
            for subsystem in subsystems:
                try:
                    snapshots[subsystem.id] = SubsystemSnapshot(
                        manifest=self.manifests.load(subsystem.id),
                        baseline=baselines.snapshot(subsystem.id),
                    )
                except StoreCorruptError as exc:
                    log.warning("Skipping %s for %s: %s", operation, subsystem.id, exc)
                    outcomes[subsystem.id] = _outcome(
                        subsystem, operation, OutcomeStatus.FAILED, error=exc
                    )
        return snapshots

    def _attempt(
        self,
        subsystem: Subsystem,
        operation: Operation,
        snapshot: SubsystemSnapshot,
        work: Work,
        token: CancellationToken,
    ) -> tuple[SubsystemOutcome, PendingCommit]:
        if token.cancelled:
            return _cancelled(subsystem, operation), NO_COMMIT
        try:
            report, commit = work(subsystem, snapshot)
        except UnsupportedForTierError as exc:
            return _outcome(subsystem, operation, OutcomeStatus.UNSUPPORTED, error=exc), NO_COMMIT
        except BootkeepError as exc:
            log.warning("%s failed for %s: %s", operation, subsystem.id, exc)
            return _outcome(subsystem, operation, OutcomeStatus.FAILED, error=exc), NO_COMMIT

        if isinstance(report, SyncReport) and report.failed:
            _action, first_error = report.failed[0]
            return (
                _outcome(
                    subsystem, operation, OutcomeStatus.FAILED, report=report, error=first_error
                ),
                commit,
            )
        return _outcome(subsystem, operation, OutcomeStatus.OK, report=report), commit

    def _try_commit(
        self,
        subsystem_id: SubsystemId,
        commit: PendingCommit,
        outcomes: dict[SubsystemId, SubsystemOutcome],
    ) -> bool:
        try:
            self._commit(subsystem_id, commit)
        except StoreWriteError as exc:
            log.error("%s", exc)
            outcomes[subsystem_id] = replace(
                outcomes[subsystem_id], status=OutcomeStatus.FAILED, error=exc
            )
            return False
        return True

    def _commit(self, subsystem_id: SubsystemId, commit: PendingCommit) -> None:
        """Write one subsystem's changes; the baseline only lands if the manifest did."""

        try:
            with self.unit_of_work_factory() as uow:
                baselines = uow.repositories.baselines
                if commit.baseline is not None:
                    baselines.replace(subsystem_id, commit.baseline)
                if commit.baseline_upserts:
                    baselines.upsert(subsystem_id, commit.baseline_upserts)
                if commit.baseline_discards:
                    baselines.discard(subsystem_id, commit.baseline_discards)
                if commit.manifest is not None:
                    self.manifests.save(subsystem_id, commit.manifest)
                uow.commit()
        except Exception as exc:
            raise StoreWriteError(subsystem_id, str(exc) or type(exc).__name__) from exc
        log.debug("Committed %s", subsystem_id)


def _cancelled(subsystem: Subsystem, operation: Operation) -> SubsystemOutcome:
    return _outcome(
        subsystem,
        operation,
        OutcomeStatus.CANCELLED,
        error=PassCancelledError(subsystem.id),
    )


def _outcome(
    subsystem: Subsystem,
    operation: Operation,
    status: OutcomeStatus,
    *,
    report: OperationReport | None = None,
    error: BootkeepError | None = None,
) -> SubsystemOutcome:
    return SubsystemOutcome(
        subsystem_id=subsystem.id,
        name=subsystem.name,
        tier=subsystem.tier,
        operation=operation,
        status=status,
        report=report,
        error=error,
    )
