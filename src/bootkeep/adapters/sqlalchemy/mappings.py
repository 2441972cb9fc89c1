"""SQLAlchemy table metadata for the baseline store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

# Core tables -----------------------------------------------------------------

# tier is kept as plain text so unknown values surface as corrupt state
subsystem_table = Table(
    "subsystem",
    metadata,
    Column("id", String, primary_key=True),
    Column("tier", String(32), nullable=False),
    Column("registered_at", UTCDateTime(), nullable=False, default=utcnow),
)

baseline_item_table = Table(
    "baseline_item",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("subsystem_id", String, nullable=False, index=True),
    Column("item_id", String, nullable=False),
    Column("fingerprint", String, nullable=True),
    Column("source", Text, nullable=True),
    Column("position", Integer, nullable=False),
    Column("recorded_at", UTCDateTime(), nullable=False, default=utcnow),
    UniqueConstraint("subsystem_id", "item_id"),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the metadata (tests and throwaway stores)."""

    log.info("Creating all tables")
    metadata.create_all(engine)
