"""Turn a three-way diff into the actions that converge a subsystem."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import Classification, SyncAction, SyncActionKind, SyncPlan

if TYPE_CHECKING:
    from bootkeep.domain.model import Item, ItemId

    from .contracts import DiffReport


_ACTION_FOR: dict[Classification, SyncActionKind] = {
    Classification.ADDED: SyncActionKind.INSTALL,
    Classification.REMOVED: SyncActionKind.INSTALL,
    Classification.PENDING_CHANGE: SyncActionKind.REINSTALL,
    Classification.DRIFTED: SyncActionKind.REINSTALL,
    Classification.PENDING_REMOVAL: SyncActionKind.UNINSTALL,
}


def plan_sync(report: DiffReport) -> SyncPlan:
    """Plan install, reinstall and uninstall actions for one subsystem.

    Conflicts are never resolved automatically; they are carried on the plan
    and left untouched. Untracked ids are not the manifest's business.
    Ids on which manifest and observed state already agree are listed as
    settled so the caller can bring the baseline up to date without acting.
    """

    actions: list[SyncAction] = []
    settled: list[Item] = []
    settled_removals: list[ItemId] = []
    for item_id in sorted(report.comparisons):
        comparison = report.comparisons[item_id]
        classification = comparison.classification
        if classification is Classification.UNCHANGED:
            if comparison.manifest is not None:
                if not _recorded(comparison.baseline, comparison.manifest):
                    settled.append(comparison.manifest)
            elif comparison.baseline is not None:
                settled_removals.append(item_id)
            continue
        kind = _ACTION_FOR.get(classification)
        if kind is None:
            continue
        actions.append(
            SyncAction(
                kind=kind,
                item_id=item_id,
                item=comparison.manifest,
                reason=classification,
            )
        )
    return SyncPlan(
        subsystem_id=report.subsystem_id,
        actions=tuple(actions),
        skipped_conflicts=report.conflicts,
        settled=tuple(settled),
        settled_removals=tuple(settled_removals),
    )


def _recorded(baseline: Item | None, manifest: Item) -> bool:
    return baseline is not None and baseline.same_as(manifest)
