"""Tier legality for reconciliation verbs.

Every subsystem of a tier supports the same verbs; ecosystems differ only in
their adapter, so legality is a table lookup rather than per-subsystem logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from bootkeep.domain.errors import UnsupportedForTierError
from bootkeep.domain.model import SubsystemTier

from .contracts import Classification, Operation

if TYPE_CHECKING:
    from bootkeep.domain.model import SubsystemId


SUPPORTED_OPERATIONS: dict[SubsystemTier, frozenset[Operation]] = {
    SubsystemTier.ATOMIC: frozenset(
        {
            Operation.STAGED,
            Operation.CAPTURE,
            Operation.BASELINE,
            Operation.ADD,
            Operation.REMOVE,
        }
    ),
    SubsystemTier.CONVERGENT: frozenset(Operation),
}

# add/remove on these tiers only record the change in the manifest
DEFERRED_MUTATION_TIERS: frozenset[SubsystemTier] = frozenset({SubsystemTier.ATOMIC})


def supports(tier: SubsystemTier, operation: Operation) -> bool:
    return operation in SUPPORTED_OPERATIONS[tier]


def ensure_supported(subsystem_id: SubsystemId, tier: SubsystemTier, operation: Operation) -> None:
    if not supports(tier, operation):
        raise UnsupportedForTierError(subsystem_id, tier, operation)


@dataclass(frozen=True, slots=True, kw_only=True)
class PassPolicy:
    """Knobs shared by every subsystem within one pass."""

    parallelism: int = 4
    all_or_nothing: bool = False
    # classification of observed-only ids in a convergent staged diff
    observed_only: Classification = Classification.UNTRACKED

    def __post_init__(self) -> None:
        if self.parallelism < 1:
            raise ValueError("parallelism must be at least 1")
        if self.observed_only not in {Classification.UNTRACKED, Classification.ADDED}:
            raise ValueError(f"Observed-only ids cannot be classified as {self.observed_only}")
