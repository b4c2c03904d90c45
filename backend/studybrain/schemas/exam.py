from datetime import datetime
from pydantic import BaseModel

from studybrain.schemas.common import EntityId


class Exam(BaseModel):
    id: EntityId
    name: str
    description: str | None = None
    icon: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class ExamCreate(BaseModel):
    name: str
    description: str | None = None
    icon: str | None = None


class ExamUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    icon: str | None = None


class Subject(BaseModel):
    id: EntityId
    name: str
    description: str | None = None
    color: str | None = None
    order: int
    exam_id: EntityId

    class Config:
        from_attributes = True


class SubjectCreate(BaseModel):
    exam_id: EntityId
    name: str
    description: str | None = None
    color: str | None = None


class SubjectUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    color: str | None = None


class Topic(BaseModel):
    id: EntityId
    name: str
    description: str | None = None
    order: int
    subject_id: EntityId

    class Config:
        from_attributes = True


class TopicCreate(BaseModel):
    subject_id: EntityId
    name: str
    description: str | None = None


class TopicUpdate(BaseModel):
    name: str | None = None
    description: str | None = None


class SubTopic(BaseModel):
    id: EntityId
    name: str
    description: str | None = None
    order: int
    topic_id: EntityId

    class Config:
        from_attributes = True


class SubTopicCreate(BaseModel):
    topic_id: EntityId
    name: str
    description: str | None = None


class SubTopicUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
