"""Error kinds raised by the reconciliation core and its adapters.

Subsystem-scoped errors (adapter failures, unsupported operations, corrupt
persisted state) are caught at the engine's aggregation boundary and turned
into per-subsystem outcomes. Registry errors are raised at startup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bootkeep.domain.model import SubsystemTier
    from bootkeep.domain.reconciliation.contracts import AggregateReport, Operation


class BootkeepError(Exception):
    """Base class for all domain errors."""


class RegistryError(BootkeepError):
    """Raised when the subsystem registry cannot be constructed."""


class DuplicateSubsystemError(RegistryError):
    def __init__(self, subsystem_id: str) -> None:
        super().__init__(f"Subsystem '{subsystem_id}' is already registered")
        self.subsystem_id = subsystem_id


class TierChangedError(RegistryError):
    def __init__(
        self, subsystem_id: str, *, registered: SubsystemTier, persisted: SubsystemTier
    ) -> None:
        super().__init__(
            f"Subsystem '{subsystem_id}' was registered as {persisted} "
            f"and cannot become {registered}"
        )
        self.subsystem_id = subsystem_id
        self.registered = registered
        self.persisted = persisted


class SubsystemNotFoundError(BootkeepError):
    def __init__(self, subsystem_id: str) -> None:
        super().__init__(f"Unknown subsystem '{subsystem_id}'")
        self.subsystem_id = subsystem_id


class UnsupportedForTierError(BootkeepError):
    def __init__(self, subsystem_id: str, tier: SubsystemTier, operation: Operation) -> None:
        super().__init__(f"'{operation}' is not supported for {tier} subsystem '{subsystem_id}'")
        self.subsystem_id = subsystem_id
        self.tier = tier
        self.operation = operation


class AdapterError(BootkeepError):
    """Raised when a backend adapter cannot query or mutate its ecosystem."""


class AdapterUnavailableError(AdapterError):
    """Backend tool is missing, failed, or produced output we cannot parse."""


class AdapterTimeoutError(AdapterError):
    def __init__(self, command: str, timeout_seconds: float) -> None:
        super().__init__(f"'{command}' did not finish within {timeout_seconds:g}s")
        self.command = command
        self.timeout_seconds = timeout_seconds


class StoreCorruptError(BootkeepError):
    """Persisted state for a subsystem could not be parsed."""

    def __init__(self, subsystem_id: str, detail: str) -> None:
        super().__init__(f"{self.kind} for '{subsystem_id}' is corrupt: {detail}")
        self.subsystem_id = subsystem_id
        self.detail = detail

    kind = "Stored state"


class ManifestCorruptError(StoreCorruptError):
    kind = "Manifest"


class BaselineCorruptError(StoreCorruptError):
    kind = "Baseline"


class StoreWriteError(BootkeepError):
    """Writing a subsystem's manifest or baseline failed after its work finished."""

    def __init__(self, subsystem_id: str, detail: str) -> None:
        super().__init__(f"Could not save state for '{subsystem_id}': {detail}")
        self.subsystem_id = subsystem_id
        self.detail = detail


class NotReconciledError(BootkeepError):
    """Raised when re-baselining a subsystem whose manifest disagrees with reality."""

    def __init__(self, subsystem_id: str, differing: tuple[str, ...]) -> None:
        preview = ", ".join(differing[:5])
        more = "" if len(differing) <= 5 else f" (+{len(differing) - 5} more)"
        super().__init__(
            f"Manifest for '{subsystem_id}' differs from current state ({preview}{more}); "
            "use force to record the baseline anyway"
        )
        self.subsystem_id = subsystem_id
        self.differing = differing


class PassCancelledError(BootkeepError):
    def __init__(self, subsystem_id: str) -> None:
        super().__init__(f"Reconciliation of '{subsystem_id}' was cancelled before it started")
        self.subsystem_id = subsystem_id


class ReconciliationFailedError(BootkeepError):
    """Raised when the aggregate failure policy rejects a whole pass."""

    def __init__(self, message: str, *, report: AggregateReport) -> None:
        super().__init__(message)
        self.report = report
