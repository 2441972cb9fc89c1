"""Create subsystem and baseline tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

from bootkeep.adapters.sqlalchemy.mappings import UTCDateTime

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "subsystem",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tier", sa.String(length=32), nullable=False),
        sa.Column("registered_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_subsystem")),
    )
    op.create_table(
        "baseline_item",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("subsystem_id", sa.String(), nullable=False),
        sa.Column("item_id", sa.String(), nullable=False),
        sa.Column("fingerprint", sa.String(), nullable=True),
        sa.Column("source", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("recorded_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_baseline_item")),
        sa.UniqueConstraint(
            "subsystem_id", "item_id", name=op.f("uq_baseline_item_subsystem_id")
        ),
    )
    op.create_index(
        op.f("ix_baseline_item_subsystem_id"), "baseline_item", ["subsystem_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_baseline_item_subsystem_id"), table_name="baseline_item")
    op.drop_table("baseline_item")
    op.drop_table("subsystem")
