"""Flatten a TopicIndex into JSON-ready records, save them, print a summary."""

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from sensemaker.topic_index import TopicIndex

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

CitationOrder = Literal["numeric", "first-cited"]
CITATION_ORDERS: tuple[str, ...] = ("numeric", "first-cited")

_NUMERIC_ID = re.compile(r"^-?\d+$")


@dataclass
class SubtopicRecord:
    name: str
    citations: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "citations": list(self.citations)}


@dataclass
class TopicRecord:
    name: str
    citations: list[str]
    subtopics: list[SubtopicRecord] | None = None  # None: key omitted from JSON

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "citations": list(self.citations)}
        if self.subtopics is not None:
            out["subtopics"] = [s.to_dict() for s in self.subtopics]
        return out


def _citation_key(comment_id: str) -> tuple[int, int, str]:
    if _NUMERIC_ID.match(comment_id):
        return (0, int(comment_id), "")
    return (1, 0, comment_id)


def sort_citations(citations: Iterable[str], citation_order: CitationOrder = "numeric") -> list[str]:
    """Order a citation set for output.

    ``numeric``: numeric ids ascending by value, then any other ids
    lexicographically. ``first-cited``: the order ids were first cited in.
    """
    if citation_order == "numeric":
        return sorted(citations, key=_citation_key)
    if citation_order == "first-cited":
        return list(citations)
    raise ValueError(f"Unknown citation order: {citation_order!r} (expected one of {CITATION_ORDERS})")


def format_topic_index(index: TopicIndex, citation_order: CitationOrder = "numeric") -> list[TopicRecord]:
    records: list[TopicRecord] = []
    for entry in index:
        subtopics: list[SubtopicRecord] | None = None
        if entry.has_subtopics:
            subtopics = [
                SubtopicRecord(name=name, citations=sort_citations(cites, citation_order))
                for name, cites in entry.subtopics.items()
            ]
        records.append(
            TopicRecord(
                name=entry.name,
                citations=sort_citations(entry.citations, citation_order),
                subtopics=subtopics,
            )
        )
    return records


def build_output(index: TopicIndex, citation_order: CitationOrder = "numeric") -> dict[str, Any]:
    """Return the ``{"topics": [...]}`` document written to disk."""
    return {"topics": [r.to_dict() for r in format_topic_index(index, citation_order)]}


def save_to_file(output: dict[str, Any], output_file: str | Path) -> Path:
    """Write output as indented JSON to ``<output_file>.json``.

    Returns:
        Path to the saved file.
    """
    filepath = Path(f"{output_file}.json")
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(json.dumps(output, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Topic categorization saved to: %s", filepath)
    return filepath


def print_topic_summary(records: list[TopicRecord]) -> None:
    """Print a per-topic citation count table to the console."""
    console.print(Rule("[bold green]Topic Summary[/bold green]"))
    table = Table(show_header=True, header_style="bold")
    table.add_column("Topic")
    table.add_column("Subtopic")
    table.add_column("Comments", justify="right")
    for record in records:
        table.add_row(f"[bold]{escape(record.name)}[/bold]", "", str(len(record.citations)))
        for sub in record.subtopics or []:
            table.add_row("", escape(sub.name), str(len(sub.citations)))
    console.print(table)
