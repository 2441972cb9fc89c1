"""Reconciliation core shared by every package ecosystem.

Layered flow of one pass:
1) the registry selects subsystems legal for the verb
2) manifest and baseline are snapshotted at pass start
3) each subsystem observes its ecosystem through its adapter
4) pure diffs classify every item id
5) store writes are committed per subsystem
"""

from __future__ import annotations

from .contracts import (
    AggregateReport,
    BaselineReport,
    BaselineSource,
    CaptureReport,
    Classification,
    DiffMode,
    DiffReport,
    ItemComparison,
    MutationReport,
    Operation,
    OutcomeStatus,
    SubsystemOutcome,
    SyncAction,
    SyncActionKind,
    SyncPlan,
    SyncReport,
)
from .engine import CancellationToken, ReconciliationEngine
from .policy import PassPolicy, ensure_supported, supports
from .registry import SubsystemRegistry
from .subsystem import PendingCommit, Subsystem, SubsystemSnapshot

__all__ = [
    "AggregateReport",
    "BaselineReport",
    "BaselineSource",
    "CancellationToken",
    "CaptureReport",
    "Classification",
    "DiffMode",
    "DiffReport",
    "ItemComparison",
    "MutationReport",
    "Operation",
    "OutcomeStatus",
    "PassPolicy",
    "PendingCommit",
    "ReconciliationEngine",
    "Subsystem",
    "SubsystemOutcome",
    "SubsystemRegistry",
    "SubsystemSnapshot",
    "SyncAction",
    "SyncActionKind",
    "SyncPlan",
    "SyncReport",
    "ensure_supported",
    "supports",
]
