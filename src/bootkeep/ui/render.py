"""Text and JSON renderings of reconciliation reports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bootkeep.domain.reconciliation import (
    BaselineReport,
    CaptureReport,
    Classification,
    DiffMode,
    DiffReport,
    MutationReport,
    SyncReport,
)

if TYPE_CHECKING:
    from bootkeep.domain.model import Item, ItemSet
    from bootkeep.domain.reconciliation import (
        AggregateReport,
        ItemComparison,
        OperationReport,
        SubsystemOutcome,
    )

_HEADERS = ("SUBSYSTEM", "TIER", "STATUS", "DETAIL")


def _fingerprint(item: Item | None) -> str:
    if item is None:
        return "<absent>"
    return item.fingerprint if item.fingerprint is not None else "<any>"


def _counts(report: DiffReport) -> str:
    buckets = report.buckets()
    changed = [
        f"{classification}={len(ids)}"
        for classification, ids in buckets.items()
        if classification is not Classification.UNCHANGED
    ]
    if not changed:
        suffix = " (no pending layer)" if report.pending_layer is False else ""
        return f"clean{suffix}"
    return " ".join(changed)


def describe(report: OperationReport | None) -> str:
    """One-line summary of a subsystem's report."""

    match report:
        case DiffReport():
            return _counts(report)
        case SyncReport(dry_run=True):
            planned = len(report.plan.actions)
            return f"planned {planned}, conflicts {len(report.plan.skipped_conflicts)}"
        case SyncReport():
            return (
                f"applied {len(report.applied)}, failed {len(report.failed)}, "
                f"conflicts {len(report.plan.skipped_conflicts)}"
            )
        case CaptureReport():
            return f"captured {len(report.items)} item(s); {_counts(report.changes)}"
        case BaselineReport():
            forced = " (forced)" if report.forced else ""
            return f"recorded {len(report.items)} item(s) from {report.source}{forced}"
        case MutationReport():
            deferred = " (deferred to manifest)" if report.deferred else ""
            return f"{report.operation} {report.item_id}{deferred}"
        case _:
            return ""


def _detail(outcome: SubsystemOutcome) -> str:
    if outcome.error is not None and not isinstance(outcome.report, SyncReport):
        return str(outcome.error)
    return describe(outcome.report)


def render_table(rows: list[tuple[str, ...]]) -> list[str]:
    widths = [max(len(row[column]) for row in rows) for column in range(len(rows[0]))]
    return [
        "  ".join(cell.ljust(width) for cell, width in zip(row, widths, strict=True)).rstrip()
        for row in rows
    ]


def _conflict_line(subsystem_id: str, comparison: ItemComparison) -> str:
    return (
        f"CONFLICT {subsystem_id}/{comparison.item_id}: "
        f"baseline={_fingerprint(comparison.baseline)} "
        f"manifest={_fingerprint(comparison.manifest)} "
        f"observed={_fingerprint(comparison.observed)}"
    )


def _diff_lines(report: DiffReport) -> list[str]:
    lines: list[str] = []
    for classification, ids in report.buckets().items():
        if classification in {Classification.UNCHANGED, Classification.CONFLICT}:
            continue
        lines.append(f"  {classification}: {', '.join(ids)}")
    if report.mode is DiffMode.DRIFT and report.drifted_from_baseline:
        lines.append(f"  diverged from baseline: {', '.join(sorted(report.drifted_from_baseline))}")
    return lines


def _sync_lines(report: SyncReport) -> list[str]:
    lines = [
        f"  {'would ' if report.dry_run else ''}{action.kind} {action.item_id} ({action.reason})"
        for action in report.plan.actions
    ]
    lines.extend(
        f"  failed {action.kind} {action.item_id}: {error}" for action, error in report.failed
    )
    return lines


def render_text(report: AggregateReport) -> str:
    """Summary table, then per-subsystem changes, then every conflict."""

    rows: list[tuple[str, ...]] = [_HEADERS]
    rows.extend(
        (outcome.subsystem_id, str(outcome.tier), str(outcome.status), _detail(outcome))
        for outcome in report
    )
    lines = render_table(rows)

    for outcome in report:
        detail: list[str] = []
        match outcome.report:
            case DiffReport() as diff:
                detail = _diff_lines(diff)
            case CaptureReport() as capture:
                detail = _diff_lines(capture.changes)
            case SyncReport() as sync:
                detail = _sync_lines(sync)
            case _:
                pass
        if detail:
            lines.append("")
            lines.append(f"{outcome.subsystem_id}:")
            lines.extend(detail)

    conflicts = [
        _conflict_line(outcome.subsystem_id, comparison)
        for outcome in report
        for comparison in _conflicts_of(outcome.report)
    ]
    if conflicts:
        lines.append("")
        lines.extend(conflicts)
    return "\n".join(lines)


def _conflicts_of(report: OperationReport | None) -> tuple[ItemComparison, ...]:
    if isinstance(report, DiffReport):
        return report.conflicts
    if isinstance(report, SyncReport):
        return report.plan.skipped_conflicts
    return ()


# JSON -----------------------------------------------------------------------


def _item_json(item: Item | None) -> dict[str, Any] | None:
    if item is None:
        return None
    return {"id": item.id, "fingerprint": item.fingerprint, "source": dict(item.source)}


def _items_json(items: ItemSet) -> list[dict[str, Any] | None]:
    return [_item_json(item) for item in items.values()]


def _diff_json(report: DiffReport) -> dict[str, Any]:
    return {
        "mode": str(report.mode),
        "buckets": {str(key): list(ids) for key, ids in report.buckets().items()},
        "conflicts": [
            {
                "id": comparison.item_id,
                "baseline": _item_json(comparison.baseline),
                "manifest": _item_json(comparison.manifest),
                "observed": _item_json(comparison.observed),
            }
            for comparison in report.conflicts
        ],
        "drifted_from_baseline": sorted(report.drifted_from_baseline),
        "pending_layer": report.pending_layer,
    }


def report_json(report: OperationReport | None) -> dict[str, Any] | None:
    match report:
        case None:
            return None
        case DiffReport():
            return _diff_json(report)
        case SyncReport():
            return {
                "dry_run": report.dry_run,
                "actions": [
                    {"kind": str(a.kind), "id": a.item_id, "reason": str(a.reason)}
                    for a in report.plan.actions
                ],
                "applied": [a.item_id for a in report.applied],
                "failed": [{"id": a.item_id, "error": str(e)} for a, e in report.failed],
                "conflicts": [c.item_id for c in report.plan.skipped_conflicts],
            }
        case CaptureReport():
            return {"items": _items_json(report.items), "changes": _diff_json(report.changes)}
        case BaselineReport():
            return {
                "items": _items_json(report.items),
                "source": str(report.source),
                "forced": report.forced,
            }
        case MutationReport():
            return {
                "operation": str(report.operation),
                "id": report.item_id,
                "deferred": report.deferred,
            }


def outcome_json(outcome: SubsystemOutcome) -> dict[str, Any]:
    return {
        "id": outcome.subsystem_id,
        "name": outcome.name,
        "tier": str(outcome.tier),
        "status": str(outcome.status),
        "error": None if outcome.error is None else str(outcome.error),
        "report": report_json(outcome.report),
    }


def aggregate_json(report: AggregateReport) -> dict[str, Any]:
    return {
        "operation": str(report.operation),
        "exit_code": report.exit_code,
        "committed": list(report.committed),
        "subsystems": [outcome_json(outcome) for outcome in report],
    }
