"""Topic learning and comment categorization via a model provider."""

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from config.config_loader import PromptsConfig
from sensemaker.models import Comment, MalformedCommentError, TopicAssignment
from sensemaker.prompts import format_comments_with_votes, get_prompt
from sensemaker.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*\n(?P<body>.*?)\n?```\s*$", re.DOTALL)


def parse_json_response(provider_name: str, text: str) -> list[Any]:
    """Decode a JSON array from model output, tolerating a markdown code fence.

    Raises:
        ProviderError: If the text is not a JSON array.
    """
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    if match:
        stripped = match.group("body").strip()
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise ProviderError(provider_name, f"Response is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ProviderError(provider_name, f"Expected a JSON array, got {type(data).__name__}")
    return data


def _topics_json(topics: Sequence[TopicAssignment]) -> str:
    return json.dumps([t.to_dict() for t in topics], ensure_ascii=False)


class Sensemaker:
    """Learns topics from comments and assigns them back to each comment.

    Args:
        provider: The model used for every call.
        prompts: Instruction templates from config.
        batch_size: Comments per categorization request.
    """

    def __init__(self, provider: AIProvider, prompts: PromptsConfig, batch_size: int = 100) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._provider = provider
        self._prompts = prompts
        self._batch_size = batch_size

    async def learn_topics(
        self,
        comments: Sequence[Comment],
        include_subtopics: bool,
        topics: Sequence[TopicAssignment] | None = None,
        additional_context: str | None = None,
    ) -> list[TopicAssignment]:
        """Ask the model for the topics (and optionally subtopics) in comments.

        Args:
            comments: Comments to learn from; vote tallies are included in the prompt.
            include_subtopics: Also request subtopics per topic.
            topics: Optional seed topics the model should start from.
            additional_context: Free text describing the conversation.

        Raises:
            ProviderError: On a failed call or unparseable response.
            MalformedCommentError: If a returned topic has no name.
        """
        instructions = self._prompts.learn_topics
        if include_subtopics:
            instructions += "\n" + self._prompts.learn_subtopics
        if topics:
            instructions += "\nStart from these existing topics, adding new ones only where needed:\n"
            instructions += _topics_json(topics)

        prompt = get_prompt(instructions, format_comments_with_votes(comments), additional_context)
        logger.info("Learning topics from %d comments via %s", len(comments), self._provider.name())
        response = await self._provider.generate(prompt)

        learned = [TopicAssignment.from_dict(t) for t in parse_json_response(self._provider.name(), response.content)]
        if not include_subtopics:
            learned = [TopicAssignment(name=t.name) for t in learned]
        logger.info("Learned %d topics", len(learned))
        return learned

    async def categorize_comments(
        self,
        comments: Sequence[Comment],
        include_subtopics: bool,
        topics: Sequence[TopicAssignment],
        additional_context: str | None = None,
    ) -> list[Comment]:
        """Return copies of comments, in input order, with topics assigned.

        Comments the model does not return keep ``topics=None``.

        Raises:
            ProviderError: On a failed call or unparseable response.
            MalformedCommentError: If a returned record is missing id or names.
        """
        instructions = self._prompts.categorize.format(topics=_topics_json(topics))
        if include_subtopics:
            instructions += "\n" + self._prompts.categorize_subtopics.format(topics=_topics_json(topics))

        assigned: dict[str, list[TopicAssignment]] = {}
        for start in range(0, len(comments), self._batch_size):
            batch = comments[start:start + self._batch_size]
            assigned.update(await self._categorize_batch(batch, instructions, additional_context))

        categorized: list[Comment] = []
        for comment in comments:
            if comment.id not in assigned:
                logger.warning("Comment %s was not categorized by %s", comment.id, self._provider.name())
                categorized.append(comment)
                continue
            categorized.append(replace(comment, topics=assigned[comment.id]))
        return categorized

    async def _categorize_batch(
        self,
        batch: Sequence[Comment],
        instructions: str,
        additional_context: str | None,
    ) -> dict[str, list[TopicAssignment]]:
        batch_ids = {c.id for c in batch}
        lines = [f"{c.id}: {text}" for c, text in zip(batch, format_comments_with_votes(batch))]
        prompt = get_prompt(instructions, lines, additional_context)

        logger.info("Categorizing batch of %d comments via %s", len(batch), self._provider.name())
        response = await self._provider.generate(prompt)

        result: dict[str, list[TopicAssignment]] = {}
        for record in parse_json_response(self._provider.name(), response.content):
            if not isinstance(record, dict) or "id" not in record:
                raise MalformedCommentError(f"Categorization record missing id: {record!r}")
            comment_id = str(record["id"])
            if comment_id not in batch_ids:
                logger.warning("Ignoring categorization for unknown comment id %s", comment_id)
                continue
            topics_raw = record.get("topics") or []
            if not isinstance(topics_raw, list):
                raise MalformedCommentError(f"Comment {comment_id} has non-list topics: {topics_raw!r}")
            topics = [TopicAssignment.from_dict(t) for t in topics_raw]
            # A comment listed twice accumulates both topic lists; the index merges them.
            result.setdefault(comment_id, []).extend(topics)
        return result
