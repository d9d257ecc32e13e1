"""Two-level topic -> subtopic citation index built from categorized comments."""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from sensemaker.models import Comment, MalformedCommentError, is_blank

logger = logging.getLogger(__name__)


class CitationSet:
    """Insertion-ordered set of comment ids."""

    def __init__(self, ids: Iterable[str] = ()) -> None:
        self._ids: dict[str, None] = dict.fromkeys(ids)

    def add(self, comment_id: str) -> None:
        self._ids.setdefault(comment_id, None)

    def __contains__(self, comment_id: object) -> bool:
        return comment_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CitationSet):
            return set(self._ids) == set(other._ids)
        if isinstance(other, (set, frozenset)):
            return set(self._ids) == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"CitationSet({list(self._ids)!r})"


@dataclass
class TopicEntry:
    name: str
    citations: CitationSet = field(default_factory=CitationSet)
    subtopics: dict[str, CitationSet] = field(default_factory=dict)

    @property
    def has_subtopics(self) -> bool:
        return bool(self.subtopics)

    def cite_subtopic(self, subtopic_name: str, comment_id: str) -> None:
        self.subtopics.setdefault(subtopic_name, CitationSet()).add(comment_id)


class TopicIndex:
    """Mapping of topic name to TopicEntry, in order of first appearance."""

    def __init__(self) -> None:
        self._topics: dict[str, TopicEntry] = {}

    def add_comment(self, comment: Comment) -> None:
        if not comment.topics:
            logger.debug("Comment %s has no topics, skipping", comment.id)
            return
        for topic in comment.topics:
            if is_blank(topic.name):
                raise MalformedCommentError(f"Comment {comment.id} has a topic assignment without a name")
            entry = self._topics.get(topic.name)
            if entry is None:
                entry = self._topics[topic.name] = TopicEntry(name=topic.name)
            entry.citations.add(comment.id)
            if not topic.has_subtopics:
                continue
            for subtopic in topic.subtopics:
                if is_blank(subtopic.name):
                    raise MalformedCommentError(
                        f"Comment {comment.id} has a subtopic without a name under {topic.name!r}"
                    )
                entry.cite_subtopic(subtopic.name, comment.id)

    def __getitem__(self, topic_name: str) -> TopicEntry:
        return self._topics[topic_name]

    def __contains__(self, topic_name: object) -> bool:
        return topic_name in self._topics

    def __iter__(self) -> Iterator[TopicEntry]:
        return iter(self._topics.values())

    def __len__(self) -> int:
        return len(self._topics)


def build_topic_index(comments: Iterable[Comment]) -> TopicIndex:
    index = TopicIndex()
    for comment in comments:
        index.add_comment(comment)
    logger.debug("Built topic index with %d topics", len(index))
    return index
