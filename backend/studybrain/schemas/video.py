from datetime import datetime
from typing import Literal
from pydantic import BaseModel

from studybrain.schemas.common import EntityId

SourceType = Literal["playlist", "channel"]


class Video(BaseModel):
    id: EntityId
    youtube_id: str
    title: str
    thumbnail_url: str | None = None
    duration: int = 0  # seconds
    channel_name: str | None = None
    source_id: EntityId | None = None
    playlist_position: int | None = None

    class Config:
        from_attributes = True


class VideoCreate(BaseModel):
    youtube_id: str
    title: str
    thumbnail_url: str | None = None
    duration: int = 0
    channel_name: str | None = None
    source_id: EntityId | None = None
    playlist_position: int | None = None


class YouTubeSource(BaseModel):
    id: EntityId
    type: SourceType
    youtube_id: str
    title: str
    thumbnail_url: str | None = None
    video_count: int | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class SourceCreate(BaseModel):
    type: SourceType
    youtube_id: str
    title: str
    thumbnail_url: str | None = None
    video_count: int | None = None


class SelectedVideo(BaseModel):
    video_id: str
    title: str
