"""Tests for sensemaker/sensemaker.py against a mock provider."""

import json

import pytest

from sensemaker.models import Comment, MalformedCommentError, SubtopicAssignment, TopicAssignment
from sensemaker.providers.base import ProviderError
from sensemaker.sensemaker import Sensemaker, parse_json_response
from tests.conftest import MockProvider, topics_json


def test_parse_json_response_plain():
    assert parse_json_response("m", '[{"name": "A"}]') == [{"name": "A"}]


def test_parse_json_response_code_fence():
    assert parse_json_response("m", '```json\n[{"name": "A"}]\n```') == [{"name": "A"}]


def test_parse_json_response_invalid():
    with pytest.raises(ProviderError, match="not valid JSON"):
        parse_json_response("m", "Sure! Here are the topics.")


def test_parse_json_response_not_a_list():
    with pytest.raises(ProviderError, match="Expected a JSON array"):
        parse_json_response("m", '{"name": "A"}')


async def test_learn_topics(sample_prompts_config, voted_comments):
    provider = MockProvider(
        "mock",
        topics_json({"name": "Transit", "subtopics": [{"name": "Buses"}]}, {"name": "Housing"}),
    )
    sensemaker = Sensemaker(provider, sample_prompts_config)

    topics = await sensemaker.learn_topics(voted_comments, True, additional_context="City survey")

    assert topics == [
        TopicAssignment("Transit", [SubtopicAssignment("Buses")]),
        TopicAssignment("Housing"),
    ]
    prompt = provider.prompts_sent()[0]
    assert prompt.startswith("Instructions:\nIdentify the topics.\nInclude subtopics.\n\n")
    assert "Additional context:\nCity survey\n\n" in prompt
    assert "vote info per group" in prompt


async def test_learn_topics_without_subtopics_drops_them(sample_prompts_config, voted_comments):
    provider = MockProvider("mock", topics_json({"name": "Transit", "subtopics": [{"name": "Buses"}]}))
    topics = await Sensemaker(provider, sample_prompts_config).learn_topics(voted_comments, False)
    assert topics == [TopicAssignment("Transit")]
    assert "Include subtopics." not in provider.prompts_sent()[0]


async def test_learn_topics_includes_seed_topics(sample_prompts_config, voted_comments):
    provider = MockProvider("mock", topics_json({"name": "Parks"}))
    await Sensemaker(provider, sample_prompts_config).learn_topics(
        voted_comments, False, topics=[TopicAssignment("Parks")]
    )
    assert '[{"name": "Parks"}]' in provider.prompts_sent()[0]


async def test_learn_topics_unnamed_topic(sample_prompts_config, voted_comments):
    provider = MockProvider("mock", topics_json({"title": "Parks"}))
    with pytest.raises(MalformedCommentError):
        await Sensemaker(provider, sample_prompts_config).learn_topics(voted_comments, False)


async def test_categorize_comments_batches_and_keeps_order(sample_prompts_config):
    comments = [Comment(id=str(i), text=f"text {i}") for i in range(1, 4)]
    provider = MockProvider(
        "mock",
        json.dumps([
            {"id": "2", "topics": [{"name": "B"}]},
            {"id": "1", "topics": [{"name": "A", "subtopics": [{"name": "A1"}]}]},
        ]),
        json.dumps([{"id": "3", "topics": [{"name": "A"}]}]),
    )
    topics = [TopicAssignment("A", [SubtopicAssignment("A1")]), TopicAssignment("B")]
    sensemaker = Sensemaker(provider, sample_prompts_config, batch_size=2)

    categorized = await sensemaker.categorize_comments(comments, True, topics)

    assert [c.id for c in categorized] == ["1", "2", "3"]
    assert categorized[0].topics == [TopicAssignment("A", [SubtopicAssignment("A1")])]
    assert categorized[1].topics == [TopicAssignment("B")]
    assert categorized[2].topics == [TopicAssignment("A")]
    assert comments[0].topics is None  # inputs untouched

    first_prompt, second_prompt = provider.prompts_sent()
    assert first_prompt.endswith("Comments:\n1: text 1\n2: text 2")
    assert second_prompt.endswith("Comments:\n3: text 3")
    assert 'Categorize into: [{"name": "A", "subtopics": [{"name": "A1"}]}, {"name": "B"}]' in first_prompt
    assert "Assign subtopics of:" in first_prompt


async def test_categorize_comments_missing_and_unknown_ids(sample_prompts_config):
    comments = [Comment(id="1", text="a"), Comment(id="2", text="b")]
    provider = MockProvider("mock", json.dumps([
        {"id": "1", "topics": [{"name": "A"}]},
        {"id": "99", "topics": [{"name": "A"}]},
    ]))
    categorized = await Sensemaker(provider, sample_prompts_config).categorize_comments(
        comments, False, [TopicAssignment("A")]
    )
    assert categorized[0].topics == [TopicAssignment("A")]
    assert categorized[1].topics is None
    assert "Assign subtopics of:" not in provider.prompts_sent()[0]


async def test_categorize_comments_record_without_id(sample_prompts_config):
    provider = MockProvider("mock", json.dumps([{"topics": []}]))
    with pytest.raises(MalformedCommentError, match="missing id"):
        await Sensemaker(provider, sample_prompts_config).categorize_comments(
            [Comment(id="1", text="a")], False, [TopicAssignment("A")]
        )


async def test_provider_error_propagates(sample_prompts_config):
    provider = MockProvider("mock")
    provider.generate.side_effect = ProviderError("mock", "API call failed: 500")
    with pytest.raises(ProviderError, match="500"):
        await Sensemaker(provider, sample_prompts_config).learn_topics([Comment(id="1", text="a")], True)


def test_invalid_batch_size(sample_prompts_config):
    with pytest.raises(ValueError, match="batch_size"):
        Sensemaker(MockProvider(), sample_prompts_config, batch_size=0)


async def test_learn_topics_rejects_bare_topic_strings(sample_prompts_config, voted_comments):
    provider = MockProvider("mock", json.dumps(["Transit", "Housing"]))
    with pytest.raises(MalformedCommentError, match="must be an object"):
        await Sensemaker(provider, sample_prompts_config).learn_topics(voted_comments, True)


async def test_categorize_comments_rejects_non_list_topics(sample_prompts_config):
    provider = MockProvider("mock", json.dumps([{"id": "1", "topics": "Transit"}]))
    with pytest.raises(MalformedCommentError, match="non-list topics"):
        await Sensemaker(provider, sample_prompts_config).categorize_comments(
            [Comment(id="1", text="a")], False, [TopicAssignment("Transit")]
        )
