"""Click CLI: learn topics, categorize comments, write the topic citation JSON."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, ModelConfig, is_available, load_config
from sensemaker.comments_csv import get_comments_from_csv
from sensemaker.models import MalformedCommentError
from sensemaker.output import CITATION_ORDERS, build_output, format_topic_index, print_topic_summary, save_to_file
from sensemaker.providers.anthropic import AnthropicProvider
from sensemaker.providers.base import AIProvider, ProviderError
from sensemaker.providers.gemini import GeminiProvider
from sensemaker.providers.openai_provider import OpenAIProvider
from sensemaker.sensemaker import Sensemaker
from sensemaker.topic_index import build_topic_index

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}

LEARN_TOPICS_CONTEXT = "Please identify the main topics and subtopics discussed in these comments"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _resolve_model_config(
    config: AppConfig,
    provider_name: str,
    vertex_project: str | None,
    region: str | None,
) -> ModelConfig:
    """Pick the provider's config, applying --vertex-project/--region overrides."""
    if provider_name not in config.models:
        raise click.BadParameter(
            f"Unknown provider '{provider_name}'. Configured: {', '.join(sorted(config.models))}",
            param_hint="--provider",
        )
    model_cfg = config.models[provider_name]
    if model_cfg.sdk == "gemini":
        if vertex_project:
            model_cfg.vertex_project = vertex_project
        if region:
            model_cfg.vertex_location = region
    if is_available(model_cfg):
        config.available_providers.add(provider_name)
    return model_cfg


def _check_provider_available(config: AppConfig, provider_name: str) -> None:
    """Exit early when the selected provider has no credentials."""
    if provider_name in config.available_providers:
        return
    model_cfg = config.models[provider_name]
    available = ", ".join(sorted(config.available_providers)) or "none"
    console.print(
        f"[bold red]Error:[/bold red] Provider '{provider_name}' has no credentials. "
        f"Set {model_cfg.api_key_env} in .env"
        + (" or pass --vertex-project" if model_cfg.sdk == "gemini" else "")
        + f". Available: {available}",
        soft_wrap=True,
    )
    sys.exit(1)


def _build_provider(model_cfg: ModelConfig) -> AIProvider:
    if model_cfg.sdk not in PROVIDER_CLASSES:
        raise ProviderError(model_cfg.name, f"Unsupported sdk '{model_cfg.sdk}'")
    return PROVIDER_CLASSES[model_cfg.sdk](model_cfg)


async def _run(
    sensemaker: Sensemaker,
    input_file: Path,
    output_file: str,
    include_subtopics: bool,
    citation_order: str,
    additional_context: str | None,
) -> Path:
    logger.info("Loading comments...")
    comments = get_comments_from_csv(input_file)

    logger.info("Learning topics...")
    topics = await sensemaker.learn_topics(
        comments,
        include_subtopics,
        None,
        additional_context or LEARN_TOPICS_CONTEXT,
    )

    logger.info("Categorizing comments...")
    categorized = await sensemaker.categorize_comments(comments, include_subtopics, topics, additional_context)

    logger.info("Processing results...")
    index = build_topic_index(categorized)
    print_topic_summary(format_topic_index(index, citation_order))
    return save_to_file(build_output(index, citation_order), output_file)


@click.command()
@click.option("-i", "--input-file", "input_file", required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Comments CSV")
@click.option("-o", "--output-file", "output_file", required=True,
              help="Output file name; '.json' is appended")
@click.option("--provider", default=None, help="Model provider from settings.yaml (default: from config)")
@click.option("-v", "--vertex-project", default=None, help="Vertex AI project for the Gemini provider")
@click.option("-r", "--region", default=None, help="Vertex AI region (default: from config)")
@click.option("--additional-context", default=None, help="Extra context about the conversation")
@click.option("--no-subtopics", is_flag=True, default=False, help="Learn and assign top-level topics only")
@click.option("--citation-order", type=click.Choice(CITATION_ORDERS), default=None,
              help="Citation list order in the output (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    input_file: Path,
    output_file: str,
    provider: str | None,
    vertex_project: str | None,
    region: str | None,
    additional_context: str | None,
    no_subtopics: bool,
    citation_order: str | None,
    verbose: bool,
) -> None:
    """Categorize comments into topics and subtopics and write citations as JSON.

    \b
    Examples:
      sensemaker -i comments.csv -o topics -v my-gcp-project
      sensemaker -i comments.csv -o topics --provider claude --citation-order first-cited
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    provider_name = provider or config.defaults.provider
    model_cfg = _resolve_model_config(config, provider_name, vertex_project, region)
    _check_provider_available(config, provider_name)
    include_subtopics = config.defaults.include_subtopics and not no_subtopics
    effective_order = citation_order or config.defaults.citation_order

    try:
        model_provider = _build_provider(model_cfg)
        logger.info("Using provider %s (%s)", model_provider.name(), model_provider.model_string())
        sensemaker = Sensemaker(model_provider, config.prompts, config.defaults.batch_size)
        saved = asyncio.run(
            _run(
                sensemaker=sensemaker,
                input_file=input_file,
                output_file=output_file,
                include_subtopics=include_subtopics,
                citation_order=effective_order,
                additional_context=additional_context,
            )
        )
    except (ProviderError, MalformedCommentError, ValueError, OSError) as exc:
        logger.error("Error: %s", exc)
        sys.exit(1)

    console.print(f"\n[dim]Written topic categorization to {saved}[/dim]")


if __name__ == "__main__":
    main()
