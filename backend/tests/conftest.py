"""Shared pytest fixtures for the StudyBrain test suite."""

from __future__ import annotations

import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest

# Ensure backend/ is on the path so studybrain imports resolve without installing.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Keep the module-level engine off Postgres during tests.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from studybrain.client.gateway import STUDY_TABLES, SqlStudyGateway  # noqa: E402
from studybrain.client.store import StudyStore  # noqa: E402

USER_ID = "2f1e4c2a-8a0b-4a53-9d2e-6c1f0b7d9e11"

_TIMESTAMPED = {"exams", "subjects", "youtube_sources", "clips"}


class FakeGateway:
    """In-memory StudyGateway: server ids, a ticking clock and call recording."""

    def __init__(self):
        self.tables: dict[str, dict[str, dict[str, Any]]] = {t: {} for t in STUDY_TABLES}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set = set()
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _record(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        if op in self.fail_on or (op, table) in self.fail_on:
            raise RuntimeError(f"{op} on {table} failed")

    def count(self, op: str, table: str | None = None) -> int:
        return sum(1 for o, t in self.calls if o == op and (table is None or t == table))

    def seed(self, table: str, user_id: str = USER_ID, **values: Any) -> dict[str, Any]:
        row = {"id": str(uuid4()), "user_id": user_id, **values}
        if table in _TIMESTAMPED:
            row.setdefault("created_at", self._now())
        if table == "clips":
            row.setdefault("updated_at", row["created_at"])
        self.tables[table][row["id"]] = row
        return row

    async def select_rows(self, table: str, user_id: str) -> list[dict[str, Any]]:
        self._record("select", table)
        return [dict(r) for r in self.tables[table].values() if r["user_id"] == user_id]

    async def insert_row(self, table: str, user_id: str, values: dict[str, Any]) -> dict[str, Any]:
        self._record("insert", table)
        return dict(self.seed(table, user_id=user_id, **values))

    async def update_row(self, table: str, user_id: str, row_id: str, values: dict[str, Any]) -> dict[str, Any]:
        self._record("update", table)
        row = self.tables[table].get(row_id)
        if row is None or row["user_id"] != user_id:
            raise LookupError(f"{table} row not found: {row_id}")
        row.update(values)
        if table == "clips":
            row["updated_at"] = self._now()
        return dict(row)

    async def delete_row(self, table: str, user_id: str, row_id: str) -> None:
        self._record("delete", table)
        self.tables[table].pop(row_id, None)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store(gateway) -> StudyStore:
    return StudyStore(gateway, user_id=USER_ID)


@pytest.fixture
def sqlite_gateway(tmp_path):
    """Factory for an aiosqlite-backed SqlStudyGateway with the full schema.

    Use inside the test's own event loop:
    ``async with sqlite_gateway() as gw: ...``
    """
    from studybrain.db.session import create_engine, create_session_maker, init_db

    @asynccontextmanager
    async def factory():
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'study.db'}")
        await init_db(engine)
        try:
            yield SqlStudyGateway(create_session_maker(engine))
        finally:
            await engine.dispose()

    return factory
