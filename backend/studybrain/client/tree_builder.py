"""Assemble the nested exam tree from flat relational rows.

Children are grouped by parent id and sorted by ``order`` (stable, so rows
with equal order keep their input order). Rows whose parent is missing are
never nested; they are reported in ``TreeBuildResult.orphans`` instead.
Orphaning is transitive: the topics of an orphaned subject are orphans too.
"""
import logging
from collections import defaultdict
from typing import Iterable, Sequence, TypeVar

from studybrain.schemas.clip import Clip
from studybrain.schemas.exam import Exam, Subject, Topic, SubTopic
from studybrain.schemas.tree import (
    ExamTree,
    SubjectTree,
    TopicTree,
    SubTopicTree,
    OrphanRow,
    TreeBuildResult,
    FlatRows,
)

logger = logging.getLogger(__name__)

Row = TypeVar("Row", Subject, Topic, SubTopic, Clip)


def _group_by_parent(
    rows: Iterable[Row],
    parent_attr: str,
    parent_ids: set[str],
    table: str,
    orphans: list[OrphanRow],
) -> dict[str, list[Row]]:
    grouped: dict[str, list[Row]] = defaultdict(list)
    for row in rows:
        parent_id = getattr(row, parent_attr)
        if parent_id not in parent_ids:
            orphans.append(OrphanRow(table=table, id=row.id, parent_id=parent_id))
            continue
        grouped[parent_id].append(row)
    for children in grouped.values():
        children.sort(key=lambda child: child.order)
    return grouped


def build_exam_tree(
    exams: Sequence[Exam],
    subjects: Sequence[Subject],
    topics: Sequence[Topic],
    sub_topics: Sequence[SubTopic],
    clips: Sequence[Clip],
) -> TreeBuildResult:
    orphans: list[OrphanRow] = []

    exam_ids = {exam.id for exam in exams}
    subjects_by_exam = _group_by_parent(subjects, "exam_id", exam_ids, "subjects", orphans)

    subject_ids = {s.id for children in subjects_by_exam.values() for s in children}
    topics_by_subject = _group_by_parent(topics, "subject_id", subject_ids, "topics", orphans)

    topic_ids = {t.id for children in topics_by_subject.values() for t in children}
    sub_topics_by_topic = _group_by_parent(sub_topics, "topic_id", topic_ids, "sub_topics", orphans)

    sub_topic_ids = {st.id for children in sub_topics_by_topic.values() for st in children}
    clips_by_sub_topic = _group_by_parent(clips, "sub_topic_id", sub_topic_ids, "clips", orphans)

    def sub_topic_tree(sub_topic: SubTopic) -> SubTopicTree:
        return SubTopicTree(**sub_topic.model_dump(), clips=clips_by_sub_topic.get(sub_topic.id, []))

    def topic_tree(topic: Topic) -> TopicTree:
        return TopicTree(
            **topic.model_dump(),
            sub_topics=[sub_topic_tree(st) for st in sub_topics_by_topic.get(topic.id, [])],
        )

    def subject_tree(subject: Subject) -> SubjectTree:
        return SubjectTree(
            **subject.model_dump(),
            topics=[topic_tree(t) for t in topics_by_subject.get(subject.id, [])],
        )

    trees = [
        ExamTree(**exam.model_dump(), subjects=[subject_tree(s) for s in subjects_by_exam.get(exam.id, [])])
        for exam in exams
    ]

    if orphans:
        logger.warning(
            "Dropped %d orphaned rows while building exam tree: %s",
            len(orphans),
            ", ".join(f"{o.table}:{o.id}" for o in orphans[:10]),
        )
    return TreeBuildResult(exams=trees, orphans=orphans)


def flatten_exam_tree(trees: Sequence[ExamTree]) -> FlatRows:
    """Inverse of build_exam_tree: the flat rows a tree was built from."""
    flat = FlatRows()
    for exam in trees:
        flat.exams.append(Exam(**exam.model_dump(exclude={"subjects"})))
        for subject in exam.subjects:
            flat.subjects.append(Subject(**subject.model_dump(exclude={"topics"})))
            for topic in subject.topics:
                flat.topics.append(Topic(**topic.model_dump(exclude={"sub_topics"})))
                for sub_topic in topic.sub_topics:
                    flat.sub_topics.append(SubTopic(**sub_topic.model_dump(exclude={"clips"})))
                    flat.clips.extend(sub_topic.clips)
    return flat
