"""Pure two-way and three-way comparisons over immutable item snapshots.

Three-way classification of one id, given its baseline ``b``, manifest ``m``
and observed ``o`` entries (absent entries compare equal only to absence, an
entry without a fingerprint matches any present entry):

- ``m == o``: unchanged, whatever the baseline says
- observed only: ``untracked`` (or ``added`` when requested)
- only the manifest moved away from ``b``: ``added``, ``pending-removal``
  or ``pending-change``
- only the observed state moved away from ``b``: ``removed`` or ``drifted``
- anything else: ``conflict``

The single-side rules require the other side to still equal the baseline, so
an id that qualifies for neither lands on ``conflict``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import Classification, DiffMode, DiffReport, ItemComparison

if TYPE_CHECKING:
    from bootkeep.domain.model import Item, ItemId, ItemSet, SubsystemId, SubsystemTier


def _same(left: Item | None, right: Item | None) -> bool:
    if left is None or right is None:
        return left is None and right is None
    return left.same_as(right)


def _union_ids(*snapshots: ItemSet) -> list[ItemId]:
    seen: dict[ItemId, None] = {}
    for snapshot in snapshots:
        for item_id in snapshot:
            seen.setdefault(item_id, None)
    return list(seen)


def classify_three_way(
    baseline: Item | None,
    manifest: Item | None,
    observed: Item | None,
    *,
    observed_only: Classification = Classification.UNTRACKED,
) -> Classification:
    if _same(manifest, observed):
        return Classification.UNCHANGED
    if baseline is None and manifest is None:
        return observed_only
    if _same(observed, baseline):
        if baseline is None:
            return Classification.ADDED
        if manifest is None:
            return Classification.PENDING_REMOVAL
        return Classification.PENDING_CHANGE
    if _same(manifest, baseline):
        if observed is None:
            return Classification.REMOVED
        return Classification.DRIFTED
    return Classification.CONFLICT


def classify_two_way(old: Item | None, new: Item | None) -> Classification:
    if old is None:
        return Classification.ADDED
    if new is None:
        return Classification.REMOVED
    if old.same_as(new):
        return Classification.UNCHANGED
    return Classification.MODIFIED


def three_way_diff(
    subsystem_id: SubsystemId,
    tier: SubsystemTier,
    *,
    baseline: ItemSet,
    manifest: ItemSet,
    observed: ItemSet,
    observed_only: Classification = Classification.UNTRACKED,
) -> DiffReport:
    """Classify every id of ``baseline`` ∪ ``manifest`` ∪ ``observed``."""

    if observed_only not in {Classification.UNTRACKED, Classification.ADDED}:
        raise ValueError(f"Observed-only ids cannot be classified as {observed_only}")

    comparisons: dict[ItemId, ItemComparison] = {}
    for item_id in _union_ids(manifest, observed, baseline):
        b, m, o = baseline.get(item_id), manifest.get(item_id), observed.get(item_id)
        comparisons[item_id] = ItemComparison(
            item_id=item_id,
            classification=classify_three_way(b, m, o, observed_only=observed_only),
            baseline=b,
            manifest=m,
            observed=o,
        )
    return DiffReport(
        subsystem_id=subsystem_id,
        tier=tier,
        mode=DiffMode.THREE_WAY,
        comparisons=comparisons,
    )


def drift_diff(
    subsystem_id: SubsystemId,
    tier: SubsystemTier,
    *,
    baseline: ItemSet,
    manifest: ItemSet,
    observed: ItemSet,
) -> DiffReport:
    """Compare observed state against the manifest, annotated against the baseline.

    ``drifted_from_baseline`` lists the ids that differ from the manifest and
    whose observed entry also moved away from the baseline, i.e. changes that
    did not come from a sync.
    """

    report = three_way_diff(
        subsystem_id,
        tier,
        baseline=baseline,
        manifest=manifest,
        observed=observed,
        observed_only=Classification.UNTRACKED,
    )
    report.mode = DiffMode.DRIFT
    report.drifted_from_baseline = frozenset(
        item_id
        for item_id, comparison in report.comparisons.items()
        if comparison.classification is not Classification.UNCHANGED
        and not _same(comparison.observed, comparison.baseline)
    )
    return report


def staged_layer_diff(
    subsystem_id: SubsystemId,
    tier: SubsystemTier,
    *,
    booted: ItemSet,
    staged: ItemSet | None,
) -> DiffReport:
    """Two-way diff of the booted image against the pending layer.

    Without a pending layer the booted state is compared with itself.
    """

    target = booted if staged is None else staged
    comparisons: dict[ItemId, ItemComparison] = {}
    for item_id in _union_ids(booted, target):
        old, new = booted.get(item_id), target.get(item_id)
        comparisons[item_id] = ItemComparison(
            item_id=item_id,
            classification=classify_two_way(old, new),
            observed=old,
            staged=new,
        )
    return DiffReport(
        subsystem_id=subsystem_id,
        tier=tier,
        mode=DiffMode.STAGED_LAYER,
        comparisons=comparisons,
        pending_layer=staged is not None,
    )


def two_way_diff(
    subsystem_id: SubsystemId,
    tier: SubsystemTier,
    *,
    old: ItemSet,
    new: ItemSet,
) -> DiffReport:
    """Manifest-to-manifest comparison used to summarise a capture."""

    comparisons = {
        item_id: ItemComparison(
            item_id=item_id,
            classification=classify_two_way(old.get(item_id), new.get(item_id)),
            baseline=old.get(item_id),
            manifest=new.get(item_id),
        )
        for item_id in _union_ids(old, new)
    }
    return DiffReport(
        subsystem_id=subsystem_id,
        tier=tier,
        mode=DiffMode.TWO_WAY,
        comparisons=comparisons,
    )


def differing_ids(left: ItemSet, right: ItemSet) -> tuple[ItemId, ...]:
    return tuple(
        item_id
        for item_id in _union_ids(left, right)
        if not _same(left.get(item_id), right.get(item_id))
    )
