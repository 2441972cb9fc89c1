"""SQLAlchemy adapter package for the bootkeep baseline store."""

from __future__ import annotations

from .mappings import baseline_item_table, create_all_tables, metadata, subsystem_table
from .repositories import SqlAlchemyBaselineRepository, SqlAlchemySubsystemRepository

__all__ = [
    "SqlAlchemyBaselineRepository",
    "SqlAlchemySubsystemRepository",
    "baseline_item_table",
    "create_all_tables",
    "metadata",
    "subsystem_table",
]
