"""Ports for persisting declared and reconciled state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootkeep.domain.model import Item, ItemId, ItemSet, SubsystemId, SubsystemTier


@runtime_checkable
class ManifestStore(Protocol):
    """Load and persist the declared items of one subsystem at a time.

    ``save`` must replace the subsystem's declaration atomically.
    """

    def load(self, subsystem_id: SubsystemId) -> ItemSet: ...

    def save(self, subsystem_id: SubsystemId, items: ItemSet) -> None: ...


@runtime_checkable
class BaselineRepository(Protocol):
    """Persistence contract for last-known-reconciled snapshots."""

    def snapshot(self, subsystem_id: SubsystemId) -> ItemSet: ...

    def replace(self, subsystem_id: SubsystemId, items: ItemSet) -> None: ...

    def upsert(self, subsystem_id: SubsystemId, items: Iterable[Item]) -> None: ...

    def discard(self, subsystem_id: SubsystemId, item_ids: Iterable[ItemId]) -> None: ...


@runtime_checkable
class SubsystemRepository(Protocol):
    """Persistence contract for subsystem registrations (id and tier)."""

    def registered_tier(self, subsystem_id: SubsystemId) -> SubsystemTier | None: ...

    def register(self, subsystem_id: SubsystemId, tier: SubsystemTier) -> None: ...
