from typing import Any
from uuid import UUID
from sqlalchemy import select, delete, inspect
from sqlalchemy.ext.asyncio import AsyncSession

from studybrain.db.base import Base
from studybrain.models import Exam, Subject, Topic, SubTopic, Clip, Video, YouTubeSource

# table name -> (model, default ordering)
TABLES: dict[str, tuple[type[Base], tuple]] = {
    "exams": (Exam, (Exam.created_at,)),
    "subjects": (Subject, (Subject.order,)),
    "topics": (Topic, (Topic.order,)),
    "sub_topics": (SubTopic, (SubTopic.order,)),
    "clips": (Clip, (Clip.order, Clip.created_at)),
    "videos": (Video, (Video.playlist_position, Video.title)),
    "youtube_sources": (YouTubeSource, (YouTubeSource.created_at,)),
}

# columns holding UUIDs that arrive as strings from the client
_UUID_COLUMNS = {"id", "user_id", "exam_id", "subject_id", "topic_id", "sub_topic_id", "video_id", "source_id"}


def model_for(table: str) -> type[Base]:
    try:
        return TABLES[table][0]
    except KeyError:
        raise ValueError(f"Unknown table: {table}") from None


def row_to_dict(row: Base) -> dict[str, Any]:
    """Column values of an ORM row, keyed by attribute name."""
    return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    coerced = {}
    for key, value in values.items():
        if key in _UUID_COLUMNS and isinstance(value, str):
            value = UUID(value)
        coerced[key] = value
    return coerced


async def get_rows_by_user(session: AsyncSession, table: str, user_id: UUID) -> list[Base]:
    model, ordering = TABLES[table]
    result = await session.execute(select(model).where(model.user_id == user_id).order_by(*ordering))
    return list(result.scalars().all())


async def get_row_by_id(session: AsyncSession, table: str, row_id: UUID, user_id: UUID) -> Base | None:
    model = model_for(table)
    result = await session.execute(select(model).where(model.id == row_id, model.user_id == user_id))
    return result.scalars().one_or_none()


async def create_row(session: AsyncSession, table: str, user_id: UUID, values: dict[str, Any]) -> Base:
    model = model_for(table)
    row = model(user_id=user_id, **_coerce(values))
    session.add(row)
    await session.flush()
    await session.refresh(row)
    return row


async def update_row(session: AsyncSession, row: Base, values: dict[str, Any]) -> Base:
    for key, value in _coerce(values).items():
        setattr(row, key, value)
    await session.flush()
    await session.refresh(row)
    return row


async def delete_row(session: AsyncSession, table: str, row_id: UUID, user_id: UUID) -> int:
    """Delete one row; descendants go through ON DELETE CASCADE."""
    model = model_for(table)
    result = await session.execute(delete(model).where(model.id == row_id, model.user_id == user_id))
    return result.rowcount or 0

