"""Shared pytest fixtures."""

import json
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig
from sensemaker.models import Comment, ModelResponse, SubtopicAssignment, TopicAssignment, VoteTally
from sensemaker.providers.base import AIProvider


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        learn_topics="Identify the topics.",
        learn_subtopics="Include subtopics.",
        categorize="Categorize into: {topics}",
        categorize_subtopics="Assign subtopics of: {topics}",
    )


@pytest.fixture
def sample_app_config(sample_model_config: ModelConfig, sample_prompts_config: PromptsConfig) -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(provider="test_model"),
        models={"test_model": sample_model_config},
        prompts=sample_prompts_config,
        available_providers={"test_model"},
    )


@pytest.fixture
def voted_comments() -> list[Comment]:
    return [
        Comment(
            id="1",
            text="comment1",
            vote_tallies_by_group={
                "0": VoteTally(agree_count=10, disagree_count=5, pass_count=0, total_count=15),
                "1": VoteTally(agree_count=5, disagree_count=10, pass_count=5, total_count=20),
            },
        ),
        Comment(
            id="2",
            text="comment2",
            vote_tallies_by_group={
                "0": VoteTally(agree_count=2, disagree_count=5, pass_count=3, total_count=10),
                "1": VoteTally(agree_count=5, disagree_count=3, pass_count=2, total_count=10),
            },
        ),
    ]


@pytest.fixture
def categorized_comments() -> list[Comment]:
    return [
        Comment(
            id="1",
            text="Comment 1",
            topics=[
                TopicAssignment("Topic 1", [SubtopicAssignment("Subtopic 1.1")]),
                TopicAssignment("Topic 2", [SubtopicAssignment("Subtopic 2.1")]),
            ],
        ),
        Comment(
            id="2",
            text="Comment 2",
            topics=[
                TopicAssignment("Topic 1", [SubtopicAssignment("Subtopic 1.1")]),
                TopicAssignment("Topic 1", [SubtopicAssignment("Subtopic 1.2")]),
            ],
        ),
    ]


def make_response(content: str, provider: str = "mock") -> ModelResponse:
    return ModelResponse(
        provider=provider,
        model="mock-model",
        content=content,
        latency_sec=0.1,
        token_count=10,
    )


class MockProvider(AIProvider):
    """Test double AIProvider returning queued responses in order."""

    def __init__(self, provider_name: str = "mock", *responses: str) -> None:
        self._name = provider_name
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            side_effect=[make_response(r, provider_name) for r in responses]
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, prompt: str) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_response("[]", self._name)

    def prompts_sent(self) -> list[str]:
        return [c.args[0] for c in self.generate.call_args_list]


def topics_json(*topics: dict) -> str:
    return json.dumps(list(topics))
