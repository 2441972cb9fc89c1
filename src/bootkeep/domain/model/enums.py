"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SubsystemTier(StrEnum):
    """How an ecosystem's state reaches the running system."""

    # baked into the bootable image; changes need a rebuild and a reboot
    ATOMIC = "atomic"
    # lives at runtime; changes apply immediately
    CONVERGENT = "convergent"
