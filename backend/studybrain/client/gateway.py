"""Relational gateway consumed by the study store.

The store only needs a generic, user-scoped query client over the study
tables. ``SqlStudyGateway`` implements it on top of the SQLAlchemy
repositories; tests use an in-memory fake with the same shape.
"""
import logging
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studybrain.db.repositories import study_repo
from studybrain.db.session import async_session_maker, session_scope

logger = logging.getLogger(__name__)

Row = dict[str, Any]

STUDY_TABLES = ("exams", "subjects", "topics", "sub_topics", "clips", "videos", "youtube_sources")


class StudyGateway(Protocol):
    async def select_rows(self, table: str, user_id: str) -> list[Row]: ...

    async def insert_row(self, table: str, user_id: str, values: Row) -> Row: ...

    async def update_row(self, table: str, user_id: str, row_id: str, values: Row) -> Row: ...

    async def delete_row(self, table: str, user_id: str, row_id: str) -> None: ...


class SqlStudyGateway:
    """One session per call: commit on success, rollback on any error."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def select_rows(self, table: str, user_id: str) -> list[Row]:
        async with self._session_maker() as session:
            rows = await study_repo.get_rows_by_user(session, table, UUID(str(user_id)))
            return [study_repo.row_to_dict(row) for row in rows]

    async def insert_row(self, table: str, user_id: str, values: Row) -> Row:
        try:
            async with session_scope(self._session_maker) as session:
                row = await study_repo.create_row(session, table, UUID(str(user_id)), values)
                return study_repo.row_to_dict(row)
        except Exception:
            logger.exception("Insert into %s failed", table)
            raise

    async def update_row(self, table: str, user_id: str, row_id: str, values: Row) -> Row:
        try:
            async with session_scope(self._session_maker) as session:
                row = await study_repo.get_row_by_id(session, table, UUID(str(row_id)), UUID(str(user_id)))
                if row is None:
                    raise LookupError(f"{table} row not found: {row_id}")
                row = await study_repo.update_row(session, row, values)
                return study_repo.row_to_dict(row)
        except Exception:
            logger.exception("Update of %s %s failed", table, row_id)
            raise

    async def delete_row(self, table: str, user_id: str, row_id: str) -> None:
        try:
            async with session_scope(self._session_maker) as session:
                await study_repo.delete_row(session, table, UUID(str(row_id)), UUID(str(user_id)))
        except Exception:
            logger.exception("Delete of %s %s failed", table, row_id)
            raise


def create_sql_gateway() -> SqlStudyGateway:
    """Gateway bound to the configured DATABASE_URL."""
    return SqlStudyGateway(async_session_maker)
