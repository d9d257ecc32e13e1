"""Dataclasses for comments, topic assignments and vote tallies."""

from dataclasses import dataclass
from typing import Any


class MalformedCommentError(ValueError):
    """Raised when a comment or topic record is missing a required field."""


def is_blank(name: object) -> bool:
    return not isinstance(name, str) or not name.strip()


def _require_name(raw: Any, kind: str) -> str:
    if not isinstance(raw, dict):
        raise MalformedCommentError(f"{kind} assignment must be an object with a name, got: {raw!r}")
    name = raw.get("name")
    if is_blank(name):
        raise MalformedCommentError(f"{kind} assignment missing name: {raw!r}")
    return name


@dataclass
class SubtopicAssignment:
    name: str

    @classmethod
    def from_dict(cls, raw: Any) -> "SubtopicAssignment":
        return cls(name=_require_name(raw, "Subtopic"))


@dataclass
class TopicAssignment:
    name: str
    subtopics: list[SubtopicAssignment] | None = None  # None: no subtopic field at all

    @property
    def has_subtopics(self) -> bool:
        return self.subtopics is not None

    @classmethod
    def from_dict(cls, raw: Any) -> "TopicAssignment":
        """Build from the JSON shape ``{"name": ..., "subtopics": [{"name": ...}]}``."""
        name = _require_name(raw, "Topic")
        if "subtopics" not in raw or raw["subtopics"] is None:
            return cls(name=name)
        if not isinstance(raw["subtopics"], list):
            raise MalformedCommentError(f"Topic {name!r} has non-list subtopics: {raw['subtopics']!r}")
        return cls(name=name, subtopics=[SubtopicAssignment.from_dict(s) for s in raw["subtopics"]])

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.subtopics is not None:
            out["subtopics"] = [{"name": s.name} for s in self.subtopics]
        return out


@dataclass
class VoteTally:
    agree_count: int
    disagree_count: int
    pass_count: int
    total_count: int

    def to_dict(self) -> dict[str, int]:
        """Key order is part of the prompt format."""
        return {
            "agreeCount": self.agree_count,
            "disagreeCount": self.disagree_count,
            "passCount": self.pass_count,
            "totalCount": self.total_count,
        }


@dataclass
class Comment:
    id: str
    text: str
    topics: list[TopicAssignment] | None = None
    vote_tallies_by_group: dict[str, VoteTally] | None = None


@dataclass
class ModelResponse:
    provider: str          # config name, e.g. "vertex", "openai", "claude"
    model: str             # actual model string used
    content: str
    latency_sec: float
    token_count: int | None
