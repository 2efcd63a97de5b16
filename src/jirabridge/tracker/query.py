"""
Dedup Query Builder.

Builds the JQL used to find the issue already filed for an alert group.
Two strategies exist and are never combined:

- Hash: the description carries ``alert_hash=<sha1>`` of a rendered template
- Labels: the issue carries ``ALERT`` plus every group label value

With neither configured the search matches on project alone.
"""

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# Marker embedded in descriptions by the hash strategy
ALERT_HASH_MARKER = "alert_hash="

# First label of every issue filed by the label strategy
ALERT_LABEL = "ALERT"

# Search never needs more than the newest match plus one to detect duplicates
MAX_RESULTS = 2

SEARCH_FIELDS = ["summary", "status", "resolution", "resolutiondate"]


class DedupStrategy(str, Enum):
    """How an alert group is matched to an existing issue."""

    HASH = "hash"
    LABELS = "labels"
    NONE = "none"


@dataclass(frozen=True)
class IssueQuery:
    """A Jira search request.

    Attributes:
        jql: JQL expression
        strategy: Dedup strategy the expression implements
        max_results: Result cap
        fields: Issue fields to return
    """

    jql: str
    strategy: DedupStrategy
    max_results: int = MAX_RESULTS
    fields: list[str] = field(default_factory=lambda: list(SEARCH_FIELDS))


def alert_hash_of(text: str) -> str:
    """Lowercase hex SHA-1 of a rendered hash template."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def quote(value: str) -> str:
    """Double-quote a JQL string literal."""
    return json.dumps(value, ensure_ascii=False)


def issue_labels(group_labels: dict[str, str]) -> list[str]:
    """Group label values ordered by label name."""
    return [value for _, value in sorted(group_labels.items())]


def dedup_marker(alert_hash: str) -> str:
    """Description suffix identifying the alert group."""
    return f"\n\n{ALERT_HASH_MARKER}{alert_hash}"


def build_query(
    project: str,
    alert_hash: str = "",
    labels: Optional[list[str]] = None,
) -> IssueQuery:
    """Build the dedup search for an alert group.

    Args:
        project: Project key to restrict the search to
        alert_hash: Hex digest for the hash strategy ("" disables it)
        labels: Labels for the label strategy (None disables it)

    Returns:
        IssueQuery ordered by key descending, capped at two results
    """
    clauses = [f"project={project}"]

    if alert_hash:
        strategy = DedupStrategy.HASH
        clauses.append(f'description~"{ALERT_HASH_MARKER}{alert_hash}"')
    elif labels is not None:
        strategy = DedupStrategy.LABELS
        clauses.extend(f"labels={quote(label)}" for label in labels)
    else:
        strategy = DedupStrategy.NONE

    jql = " and ".join(clauses) + " order by key DESC"
    return IssueQuery(jql=jql, strategy=strategy)
