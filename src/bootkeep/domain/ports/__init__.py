"""Domain port definitions for adapters."""

from __future__ import annotations

from .backend import (
    BackendAdapter,
    CommandOptions,
    CommandResult,
    CommandRunner,
    StagedStateReader,
)
from .persistence import BaselineRepository, ManifestStore, SubsystemRepository
from .unit_of_work import (
    BaselineRepositories,
    BaselineUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BackendAdapter",
    "BaselineRepositories",
    "BaselineRepository",
    "BaselineUnitOfWork",
    "CommandOptions",
    "CommandResult",
    "CommandRunner",
    "ManifestStore",
    "RepositoryCollection",
    "StagedStateReader",
    "SubsystemRepository",
    "UnitOfWork",
]
