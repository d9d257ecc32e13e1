"""Load settings.yaml into typed dataclasses. Detects usable providers at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    temperature: float = 0.0
    vertex_project: str | None = None
    vertex_location: str = "us-central1"


@dataclass
class PromptsConfig:
    learn_topics: str
    learn_subtopics: str
    categorize: str
    categorize_subtopics: str


@dataclass
class DefaultsConfig:
    provider: str
    batch_size: int = 100
    include_subtopics: bool = True
    citation_order: str = "numeric"


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def is_available(model_cfg: ModelConfig) -> bool:
    """A provider is usable with an API key, or (Gemini only) a Vertex project."""
    if model_cfg.sdk == "gemini" and model_cfg.vertex_project:
        return True
    return bool(os.environ.get(model_cfg.api_key_env, "").strip())


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs providers without credentials but does not raise; the CLI decides
    whether the selected provider is usable.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        provider=str(defaults_raw["provider"]),
        batch_size=int(defaults_raw.get("batch_size", 100)),
        include_subtopics=bool(defaults_raw.get("include_subtopics", True)),
        citation_order=str(defaults_raw.get("citation_order", "numeric")),
    )
    if defaults.batch_size < 1:
        raise ValueError(f"defaults.batch_size must be positive, got {defaults.batch_size}")

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        learn_topics=prompts_raw["learn_topics"],
        learn_subtopics=prompts_raw["learn_subtopics"],
        categorize=prompts_raw["categorize"],
        categorize_subtopics=prompts_raw["categorize_subtopics"],
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        project_env = model_raw.get("vertex_project_env")
        vertex_project = os.environ.get(project_env, "").strip() if project_env else ""
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
            temperature=float(model_raw.get("temperature", 0.0)),
            vertex_project=vertex_project or None,
            vertex_location=str(model_raw.get("vertex_location", "us-central1")),
        )
        models[provider_name] = model_cfg

        if is_available(model_cfg):
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no credentials): %s (set %s in .env)",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        available_providers=available_providers,
    )
