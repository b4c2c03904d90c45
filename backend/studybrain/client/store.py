"""Normalized in-memory study store with write-through mutations.

Rows live in flat dicts keyed by id; every row carries its parent id and
the nested tree is a derived view (``build_tree``). Mutations call the
gateway first and only touch local state after it succeeds, then swap in
a complete new ``StudyState`` in one assignment so nothing observes a
half-applied change across an ``await``. A reorder that fails midway
keeps the rows the gateway already accepted.
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, TypeVar, get_args

from pydantic import BaseModel

from studybrain.client.errors import (
    ClipValidationError,
    EntityNotFoundError,
    NotAuthenticatedError,
    StudyValidationError,
)
from studybrain.client.gateway import StudyGateway, STUDY_TABLES
from studybrain.client.tree_builder import build_exam_tree, flatten_exam_tree
from studybrain.schemas.clip import Clip, ClipCreate, ClipUpdate
from studybrain.schemas.exam import (
    Exam,
    ExamCreate,
    ExamUpdate,
    Subject,
    SubjectCreate,
    SubjectUpdate,
    Topic,
    TopicCreate,
    TopicUpdate,
    SubTopic,
    SubTopicCreate,
    SubTopicUpdate,
)
from studybrain.schemas.tree import ExamTree, OrphanRow
from studybrain.schemas.video import Video, VideoCreate, YouTubeSource, SourceCreate, SelectedVideo

logger = logging.getLogger(__name__)

Entity = TypeVar("Entity", bound=BaseModel)

# hierarchy levels, root first, with the attribute pointing at the parent
_LEVELS = (
    ("exams", None),
    ("subjects", "exam_id"),
    ("topics", "subject_id"),
    ("sub_topics", "topic_id"),
    ("clips", "sub_topic_id"),
)


@dataclass(frozen=True)
class StudyState:
    exams: dict[str, Exam] = field(default_factory=dict)
    subjects: dict[str, Subject] = field(default_factory=dict)
    topics: dict[str, Topic] = field(default_factory=dict)
    sub_topics: dict[str, SubTopic] = field(default_factory=dict)
    clips: dict[str, Clip] = field(default_factory=dict)
    videos: dict[str, Video] = field(default_factory=dict)
    sources: dict[str, YouTubeSource] = field(default_factory=dict)


@dataclass(frozen=True)
class Selection:
    exam_id: str | None = None
    subject_id: str | None = None
    topic_id: str | None = None
    sub_topic_id: str | None = None
    source_id: str | None = None
    video_for_player: SelectedVideo | None = None


@dataclass
class FetchResult:
    ok: bool
    error: BaseException | None = None
    orphans: list[OrphanRow] = field(default_factory=list)


def _by_id(rows: Iterable[Entity]) -> dict[str, Entity]:
    return {row.id: row for row in rows}


def _children(rows: dict[str, Entity], parent_attr: str, parent_id: str) -> list[Entity]:
    # sorted() is stable: equal order keeps insertion order
    return sorted(
        (row for row in rows.values() if getattr(row, parent_attr) == parent_id),
        key=lambda row: row.order,
    )


def _update_values(
    model: type[BaseModel], updates: BaseModel, error: type[StudyValidationError] = StudyValidationError
) -> dict[str, Any]:
    """Fields explicitly set on ``updates``; None is rejected for columns that cannot be null."""
    values = updates.model_dump(exclude_unset=True)
    nulls = [
        name for name, value in values.items()
        if value is None and name in model.model_fields
        and type(None) not in get_args(model.model_fields[name].annotation)
    ]
    if nulls:
        raise error(f"{model.__name__} fields cannot be null: {', '.join(nulls)}")
    return values


def _validate_time_range(start_time: int, end_time: int) -> None:
    if start_time < 0 or end_time < 0:
        raise ClipValidationError("Clip times must be >= 0 seconds.")
    if start_time >= end_time:
        raise ClipValidationError("Clip start time must be before its end time.")


class StudyStore:
    """State container for one signed-in user.

    Construct once at application start and pass it to consumers. Call
    ``set_user`` once authentication resolves, then ``fetch_all_data``.
    """

    def __init__(self, gateway: StudyGateway, user_id: str | None = None):
        self._gateway = gateway
        self._user_id = user_id
        self._state = StudyState()
        self._selection = Selection()

    # ---------- Lifecycle ----------

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def set_user(self, user_id: str | None) -> None:
        if user_id != self._user_id:
            self._state = StudyState()
            self._selection = Selection()
        self._user_id = user_id

    async def fetch_all_data(self) -> FetchResult:
        """Bulk load every table for the user and replace state in one step.

        On failure the previous state is kept and the error is returned.
        """
        user_id = self._require_user()
        try:
            results = await asyncio.gather(
                *(self._gateway.select_rows(table, user_id) for table in STUDY_TABLES)
            )
            exams, subjects, topics, sub_topics, clips, videos, sources = results
            tree = build_exam_tree(
                [Exam.model_validate(r) for r in exams],
                [Subject.model_validate(r) for r in subjects],
                [Topic.model_validate(r) for r in topics],
                [SubTopic.model_validate(r) for r in sub_topics],
                [Clip.model_validate(r) for r in clips],
            )
            loaded_videos = [Video.model_validate(r) for r in videos]
            loaded_sources = [YouTubeSource.model_validate(r) for r in sources]
        except Exception as e:
            logger.error("Failed to load study data for user %s: %s", user_id, e, exc_info=True)
            return FetchResult(ok=False, error=e)

        flat = flatten_exam_tree(tree.exams)
        state = StudyState(
            exams=_by_id(flat.exams),
            subjects=_by_id(flat.subjects),
            topics=_by_id(flat.topics),
            sub_topics=_by_id(flat.sub_topics),
            clips=_by_id(flat.clips),
            videos=_by_id(loaded_videos),
            sources=_by_id(loaded_sources),
        )
        self._state = state
        self._selection = self._prune_selection(self._selection, state)
        logger.info(
            "Loaded %d exams, %d clips, %d videos for user %s",
            len(state.exams), len(state.clips), len(state.videos), user_id,
        )
        return FetchResult(ok=True, orphans=tree.orphans)

    def teardown(self) -> None:
        self._state = StudyState()
        self._selection = Selection()
        self._user_id = None

    # ---------- State views ----------

    @property
    def state(self) -> StudyState:
        return self._state

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def exams(self) -> list[Exam]:
        return list(self._state.exams.values())

    @property
    def videos(self) -> list[Video]:
        return list(self._state.videos.values())

    @property
    def clips(self) -> list[Clip]:
        return list(self._state.clips.values())

    @property
    def sources(self) -> list[YouTubeSource]:
        return list(self._state.sources.values())

    def build_tree(self) -> list[ExamTree]:
        state = self._state
        return build_exam_tree(
            list(state.exams.values()),
            list(state.subjects.values()),
            list(state.topics.values()),
            list(state.sub_topics.values()),
            list(state.clips.values()),
        ).exams

    # ---------- Getters ----------

    def get_subjects_by_exam(self, exam_id: str) -> list[Subject]:
        return _children(self._state.subjects, "exam_id", exam_id)

    def get_topics_by_subject(self, subject_id: str) -> list[Topic]:
        return _children(self._state.topics, "subject_id", subject_id)

    def get_sub_topics_by_topic(self, topic_id: str) -> list[SubTopic]:
        return _children(self._state.sub_topics, "topic_id", topic_id)

    def get_clips_by_sub_topic(self, sub_topic_id: str) -> list[Clip]:
        return _children(self._state.clips, "sub_topic_id", sub_topic_id)

    def get_video_by_youtube_id(self, youtube_id: str) -> Video | None:
        for video in self._state.videos.values():
            if video.youtube_id == youtube_id:
                return video
        return None

    # ---------- Exams ----------

    async def add_exam(self, data: ExamCreate) -> str:
        exam = await self._insert("exams", Exam, data.model_dump())
        self._commit(exams={**self._state.exams, exam.id: exam})
        return exam.id

    async def update_exam(self, exam_id: str, updates: ExamUpdate) -> Exam:
        return await self._update("exams", "exams", Exam, exam_id, updates)

    async def delete_exam(self, exam_id: str) -> None:
        await self._delete("exams", "exams", exam_id)

    # ---------- Subjects ----------

    async def add_subject(self, data: SubjectCreate) -> str:
        self._require(self._state.exams, "Exam", data.exam_id)
        order = len(self.get_subjects_by_exam(data.exam_id))
        subject = await self._insert("subjects", Subject, {**data.model_dump(), "order": order})
        self._commit(subjects={**self._state.subjects, subject.id: subject})
        return subject.id

    async def update_subject(self, subject_id: str, updates: SubjectUpdate) -> Subject:
        return await self._update("subjects", "subjects", Subject, subject_id, updates)

    async def delete_subject(self, subject_id: str) -> None:
        await self._delete("subjects", "subjects", subject_id)

    # ---------- Topics ----------

    async def add_topic(self, data: TopicCreate) -> str:
        self._require(self._state.subjects, "Subject", data.subject_id)
        order = len(self.get_topics_by_subject(data.subject_id))
        topic = await self._insert("topics", Topic, {**data.model_dump(), "order": order})
        self._commit(topics={**self._state.topics, topic.id: topic})
        return topic.id

    async def update_topic(self, topic_id: str, updates: TopicUpdate) -> Topic:
        return await self._update("topics", "topics", Topic, topic_id, updates)

    async def delete_topic(self, topic_id: str) -> None:
        await self._delete("topics", "topics", topic_id)

    # ---------- SubTopics ----------

    async def add_sub_topic(self, data: SubTopicCreate) -> str:
        self._require(self._state.topics, "Topic", data.topic_id)
        order = len(self.get_sub_topics_by_topic(data.topic_id))
        sub_topic = await self._insert("sub_topics", SubTopic, {**data.model_dump(), "order": order})
        self._commit(sub_topics={**self._state.sub_topics, sub_topic.id: sub_topic})
        return sub_topic.id

    async def update_sub_topic(self, sub_topic_id: str, updates: SubTopicUpdate) -> SubTopic:
        return await self._update("sub_topics", "sub_topics", SubTopic, sub_topic_id, updates)

    async def delete_sub_topic(self, sub_topic_id: str) -> None:
        """Delete a sub-topic together with every clip filed under it."""
        await self._delete("sub_topics", "sub_topics", sub_topic_id)

    async def reorder_sub_topics(self, topic_id: str, sub_topic_ids: list[str]) -> None:
        self._require(self._state.topics, "Topic", topic_id)
        await self._reorder("sub_topics", "sub_topics", SubTopic, self.get_sub_topics_by_topic(topic_id), sub_topic_ids)

    # ---------- Sources ----------

    async def add_source(self, data: SourceCreate) -> str:
        source = await self._insert("youtube_sources", YouTubeSource, data.model_dump())
        self._commit(sources={**self._state.sources, source.id: source})
        return source.id

    async def delete_source(self, source_id: str) -> None:
        user_id = self._require_user()
        self._require(self._state.sources, "Source", source_id)
        await self._gateway.delete_row("youtube_sources", user_id, source_id)

        state = self._state
        videos = {
            vid: (video.model_copy(update={"source_id": None}) if video.source_id == source_id else video)
            for vid, video in state.videos.items()
        }
        sources = {sid: s for sid, s in state.sources.items() if sid != source_id}
        self._commit(sources=sources, videos=videos)
        if self._selection.source_id == source_id:
            self._selection = replace(self._selection, source_id=None)

    # ---------- Videos ----------

    async def add_video(self, data: VideoCreate) -> str:
        """Insert a video unless one with the same youtube_id already exists."""
        existing = self.get_video_by_youtube_id(data.youtube_id)
        if existing is not None:
            return existing.id
        video = await self._insert("videos", Video, data.model_dump())
        self._commit(videos={**self._state.videos, video.id: video})
        return video.id

    # ---------- Clips ----------

    async def add_clip(self, data: ClipCreate) -> str:
        _validate_time_range(data.start_time, data.end_time)
        self._require(self._state.sub_topics, "SubTopic", data.sub_topic_id)
        self._require(self._state.videos, "Video", data.video_id)
        # sibling count at call time; two interleaved adds can share an order
        order = len(self.get_clips_by_sub_topic(data.sub_topic_id))
        clip = await self._insert("clips", Clip, {**data.model_dump(), "order": order})
        self._commit(clips={**self._state.clips, clip.id: clip})
        return clip.id

    async def update_clip(self, clip_id: str, updates: ClipUpdate) -> Clip:
        current = self._require(self._state.clips, "Clip", clip_id)
        values = _update_values(Clip, updates, ClipValidationError)
        _validate_time_range(
            values.get("start_time", current.start_time),
            values.get("end_time", current.end_time),
        )
        if values.get("sub_topic_id"):
            self._require(self._state.sub_topics, "SubTopic", values["sub_topic_id"])
        return await self._update("clips", "clips", Clip, clip_id, updates)

    async def delete_clip(self, clip_id: str) -> None:
        await self._delete("clips", "clips", clip_id)

    async def reorder_clips(self, sub_topic_id: str, clip_ids: list[str]) -> None:
        self._require(self._state.sub_topics, "SubTopic", sub_topic_id)
        await self._reorder("clips", "clips", Clip, self.get_clips_by_sub_topic(sub_topic_id), clip_ids)

    # ---------- Selection ----------

    @property
    def selected_exam_id(self) -> str | None:
        return self._selection.exam_id

    @property
    def selected_subject_id(self) -> str | None:
        return self._selection.subject_id

    @property
    def selected_topic_id(self) -> str | None:
        return self._selection.topic_id

    @property
    def selected_sub_topic_id(self) -> str | None:
        return self._selection.sub_topic_id

    @property
    def selected_source_id(self) -> str | None:
        return self._selection.source_id

    @property
    def selected_video_for_player(self) -> SelectedVideo | None:
        return self._selection.video_for_player

    def set_selected_exam(self, exam_id: str | None) -> None:
        self._selection = replace(self._selection, exam_id=exam_id, subject_id=None, topic_id=None, sub_topic_id=None)

    def set_selected_subject(self, subject_id: str | None) -> None:
        self._selection = replace(self._selection, subject_id=subject_id, topic_id=None, sub_topic_id=None)

    def set_selected_topic(self, topic_id: str | None) -> None:
        self._selection = replace(self._selection, topic_id=topic_id, sub_topic_id=None)

    def set_selected_sub_topic(self, sub_topic_id: str | None) -> None:
        self._selection = replace(self._selection, sub_topic_id=sub_topic_id)

    def set_selected_source(self, source_id: str | None) -> None:
        self._selection = replace(self._selection, source_id=source_id)

    def set_selected_video_for_player(self, video: SelectedVideo | None) -> None:
        self._selection = replace(self._selection, video_for_player=video)

    # ---------- Internals ----------

    def _require_user(self) -> str:
        if not self._user_id:
            raise NotAuthenticatedError("No signed-in user; call set_user() once auth resolves.")
        return self._user_id

    @staticmethod
    def _require(rows: dict[str, Entity], kind: str, entity_id: str) -> Entity:
        row = rows.get(entity_id)
        if row is None:
            raise EntityNotFoundError(kind, entity_id)
        return row

    def _commit(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)

    async def _insert(self, table: str, model: type[Entity], values: dict[str, Any]) -> Entity:
        user_id = self._require_user()
        row = await self._gateway.insert_row(table, user_id, values)
        return model.model_validate(row)

    async def _update(self, table: str, attr: str, model: type[Entity], entity_id: str, updates: BaseModel) -> Entity:
        user_id = self._require_user()
        current = self._require(getattr(self._state, attr), model.__name__, entity_id)
        values = _update_values(model, updates)
        if not values:
            return current
        row = await self._gateway.update_row(table, user_id, entity_id, values)
        updated = model.model_validate({**current.model_dump(), **values, **(row or {})})
        rows = getattr(self._state, attr)
        if entity_id in rows:
            self._commit(**{attr: {**rows, entity_id: updated}})
        return updated

    async def _delete(self, table: str, attr: str, entity_id: str) -> None:
        user_id = self._require_user()
        self._require(getattr(self._state, attr), table, entity_id)
        await self._gateway.delete_row(table, user_id, entity_id)

        changes, removed = self._cascade(self._state, attr, entity_id)
        self._commit(**changes)
        self._selection = self._clear_removed(self._selection, removed)
        logger.debug(
            "Deleted %s %s (%s)", table, entity_id,
            ", ".join(f"{len(ids)} {level}" for level, ids in removed.items() if ids),
        )

    async def _reorder(
        self,
        table: str,
        attr: str,
        model: type[Entity],
        siblings: list[Entity],
        ordered_ids: list[str],
    ) -> None:
        user_id = self._require_user()
        sibling_ids = [s.id for s in siblings]
        # listed ids first, in the given order, then the rest as they were
        ordered = [i for i in dict.fromkeys(ordered_ids) if i in sibling_ids]
        ordered += [i for i in sibling_ids if i not in ordered]

        current = {s.id: s for s in siblings}
        changed: dict[str, Entity] = {}
        try:
            for index, entity_id in enumerate(ordered):
                if current[entity_id].order == index:
                    continue
                row = await self._gateway.update_row(table, user_id, entity_id, {"order": index})
                changed[entity_id] = model.model_validate({**current[entity_id].model_dump(), "order": index, **(row or {})})
        finally:
            # keep the rows the server already accepted
            if changed:
                rows = getattr(self._state, attr)
                self._commit(**{attr: {k: changed.get(k, v) for k, v in rows.items()}})

    @staticmethod
    def _cascade(state: StudyState, attr: str, entity_id: str) -> tuple[dict[str, dict], dict[str, set[str]]]:
        """Rows to drop for a delete at ``attr`` and every level below it."""
        changes: dict[str, dict] = {}
        removed: dict[str, set[str]] = {}
        parent_ids: set[str] = set()
        for level, parent_attr in _LEVELS:
            rows = getattr(state, level)
            ids = {
                row_id for row_id, row in rows.items()
                if parent_attr is not None and getattr(row, parent_attr) in parent_ids
            }
            if level == attr:
                ids.add(entity_id)
            if ids:
                changes[level] = {k: v for k, v in rows.items() if k not in ids}
            removed[level] = ids
            parent_ids = ids
        return changes, removed

    @staticmethod
    def _clear_removed(selection: Selection, removed: dict[str, set[str]]) -> Selection:
        if selection.exam_id in removed["exams"]:
            return replace(selection, exam_id=None, subject_id=None, topic_id=None, sub_topic_id=None)
        if selection.subject_id in removed["subjects"]:
            return replace(selection, subject_id=None, topic_id=None, sub_topic_id=None)
        if selection.topic_id in removed["topics"]:
            return replace(selection, topic_id=None, sub_topic_id=None)
        if selection.sub_topic_id in removed["sub_topics"]:
            return replace(selection, sub_topic_id=None)
        return selection

    @staticmethod
    def _prune_selection(selection: Selection, state: StudyState) -> Selection:
        removed = {
            "exams": {selection.exam_id} - set(state.exams),
            "subjects": {selection.subject_id} - set(state.subjects),
            "topics": {selection.topic_id} - set(state.topics),
            "sub_topics": {selection.sub_topic_id} - set(state.sub_topics),
        }
        # a None pointer is never "removed"
        removed = {level: ids - {None} for level, ids in removed.items()}
        selection = StudyStore._clear_removed(selection, removed)
        if selection.source_id is not None and selection.source_id not in state.sources:
            selection = replace(selection, source_id=None)
        return selection
