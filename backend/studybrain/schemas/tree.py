from pydantic import BaseModel

from studybrain.schemas.exam import Exam, Subject, Topic, SubTopic
from studybrain.schemas.clip import Clip


class SubTopicTree(SubTopic):
    clips: list[Clip] = []


class TopicTree(Topic):
    sub_topics: list[SubTopicTree] = []


class SubjectTree(Subject):
    topics: list[TopicTree] = []


class ExamTree(Exam):
    subjects: list[SubjectTree] = []


class OrphanRow(BaseModel):
    """A row whose parent is missing from the fetched data."""

    table: str
    id: str
    parent_id: str


class TreeBuildResult(BaseModel):
    exams: list[ExamTree] = []
    orphans: list[OrphanRow] = []


class FlatRows(BaseModel):
    exams: list[Exam] = []
    subjects: list[Subject] = []
    topics: list[Topic] = []
    sub_topics: list[SubTopic] = []
    clips: list[Clip] = []
