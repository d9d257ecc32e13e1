"""Prompt assembly and comment formatting shared by every model call."""

import json
import logging
from collections.abc import Sequence

from sensemaker.models import Comment

logger = logging.getLogger(__name__)

_VOTE_INFO_PREFIX = "\n      vote info per group: "


def get_prompt(
    instructions: str,
    comments: Sequence[str],
    additional_context: str | None = None,
) -> str:
    """Build an Instructions / Additional context / Comments prompt.

    The additional context block is only emitted for a non-empty string.
    Comments are joined with single newlines, no trailing newline.
    """
    parts = [f"Instructions:\n{instructions}\n\n"]
    if additional_context:
        parts.append(f"Additional context:\n{additional_context}\n\n")
    parts.append("Comments:\n" + "\n".join(comments))
    return "".join(parts)


def format_comment_with_votes(comment: Comment) -> str:
    """Append compact per-group vote JSON to the comment text, if any tallies exist."""
    if not comment.vote_tallies_by_group:
        return comment.text
    votes = {group: tally.to_dict() for group, tally in comment.vote_tallies_by_group.items()}
    return comment.text + _VOTE_INFO_PREFIX + json.dumps(votes, separators=(",", ":"), ensure_ascii=False)


def format_comments_with_votes(comments: Sequence[Comment]) -> list[str]:
    return [format_comment_with_votes(c) for c in comments]


def group_comments_by_subtopic(
    comments: Sequence[Comment],
) -> dict[str, dict[str, dict[str, Comment]]]:
    """Group comments as topic -> subtopic -> comment id -> comment.

    Topics and subtopics keep first-seen order. Comments without topics are
    skipped.
    """
    grouped: dict[str, dict[str, dict[str, Comment]]] = {}
    for comment in comments:
        if not comment.topics:
            logger.debug("Comment %s has no topics assigned, skipping", comment.id)
            continue
        for topic in comment.topics:
            subtopics = grouped.setdefault(topic.name, {})
            if topic.has_subtopics:
                for subtopic in topic.subtopics:
                    subtopics.setdefault(subtopic.name, {})[comment.id] = comment
    return grouped
