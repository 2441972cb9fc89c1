from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from bootkeep.adapters.manifest import JsonManifestStore
from bootkeep.adapters.sqlalchemy.migrations import upgrade_head
from bootkeep.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyBaselineUnitOfWork,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # a file keeps one database across the engine's pooled connections
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'baseline.db'}", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyBaselineUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyBaselineUnitOfWork:
        return SqlAlchemyBaselineUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def manifest_store(tmp_path: Path) -> JsonManifestStore:
    return JsonManifestStore(tmp_path / "manifests")
