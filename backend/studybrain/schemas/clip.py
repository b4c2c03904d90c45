from datetime import datetime
from pydantic import BaseModel

from studybrain.schemas.common import EntityId


class Clip(BaseModel):
    id: EntityId
    video_id: EntityId
    start_time: int  # seconds
    end_time: int  # seconds
    label: str | None = None
    notes: str | None = None
    is_primary: bool = False
    order: int
    sub_topic_id: EntityId
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClipCreate(BaseModel):
    video_id: EntityId
    sub_topic_id: EntityId
    start_time: int
    end_time: int
    label: str | None = None
    notes: str | None = None
    is_primary: bool = False


class ClipUpdate(BaseModel):
    start_time: int | None = None
    end_time: int | None = None
    label: str | None = None
    notes: str | None = None
    is_primary: bool | None = None
    sub_topic_id: EntityId | None = None
