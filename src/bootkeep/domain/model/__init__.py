"""Domain model for declared, observed and recorded package state."""

from __future__ import annotations

from .enums import SubsystemTier
from .items import (
    DuplicateItemError,
    Item,
    ItemId,
    ItemSet,
    SubsystemId,
)

__all__ = [
    "DuplicateItemError",
    "Item",
    "ItemId",
    "ItemSet",
    "SubsystemId",
    "SubsystemTier",
]
