"""Read comments and per-group vote counts from a CSV export."""

import csv
import logging
import re
from pathlib import Path

from sensemaker.models import Comment, VoteTally

logger = logging.getLogger(__name__)

ID_COLUMN = "comment-id"
TEXT_COLUMN = "comment_text"

_VOTE_COLUMN = re.compile(r"^group-(?P<group>.+)-(?P<kind>agree|disagree|pass)-count$")


def _vote_groups(fieldnames: list[str]) -> list[str]:
    """Group ids that have at least one vote column, in column order."""
    groups: list[str] = []
    for name in fieldnames:
        match = _VOTE_COLUMN.match(name)
        if match and match.group("group") not in groups:
            groups.append(match.group("group"))
    return groups


def _count(row: dict[str, str], column: str, row_number: int) -> int:
    raw = (row.get(column) or "").strip()
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Row {row_number}: column {column!r} is not an integer: {raw!r}") from exc


def get_comments_from_csv(csv_path: Path) -> list[Comment]:
    """Parse a comments CSV.

    Requires ``comment-id`` and ``comment_text`` columns. Optional
    ``group-<g>-agree-count`` / ``-disagree-count`` / ``-pass-count`` columns
    become a VoteTally per group, with total = agree + disagree + pass.

    Raises:
        ValueError: If a required column is missing or a vote cell is not an int.
    """
    with Path(csv_path).open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = list(reader.fieldnames or [])
        missing = [c for c in (ID_COLUMN, TEXT_COLUMN) if c not in fieldnames]
        if missing:
            raise ValueError(f"{csv_path}: missing required column(s): {', '.join(missing)}")

        groups = _vote_groups(fieldnames)
        comments: list[Comment] = []
        # Header is line 1
        for row_number, row in enumerate(reader, start=2):
            tallies: dict[str, VoteTally] | None = None
            if groups:
                tallies = {}
                for group in groups:
                    agree = _count(row, f"group-{group}-agree-count", row_number)
                    disagree = _count(row, f"group-{group}-disagree-count", row_number)
                    passes = _count(row, f"group-{group}-pass-count", row_number)
                    tallies[group] = VoteTally(
                        agree_count=agree,
                        disagree_count=disagree,
                        pass_count=passes,
                        total_count=agree + disagree + passes,
                    )
            comments.append(
                Comment(
                    id=row[ID_COLUMN].strip(),
                    text=row[TEXT_COLUMN],
                    vote_tallies_by_group=tallies,
                )
            )

    logger.info("Loaded %d comments from %s (%d vote groups)", len(comments), csv_path, len(groups))
    return comments
