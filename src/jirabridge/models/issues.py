"""
Jira Issue Models.

Snapshots of issues read back from Jira and the fully rendered issue that is
submitted on create.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class StatusCategory(str, Enum):
    """Jira's fixed status category buckets, keyed as the REST API reports them."""

    TO_DO = "new"
    IN_PROGRESS = "indeterminate"
    DONE = "done"
    UNDEFINED = "undefined"

    @classmethod
    def from_key(cls, key: Optional[str]) -> "StatusCategory":
        """Parse a status category key, mapping unknown keys to UNDEFINED."""
        try:
            return cls(key)
        except ValueError:
            return cls.UNDEFINED


def parse_jira_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp as returned by Jira (e.g. 2024-05-01T10:00:00.000+0000).

    Args:
        value: Timestamp string

    Returns:
        Timezone-aware datetime or None if absent or unparseable
    """
    if not value:
        return None
    for fmt in ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class ExistingIssue:
    """An issue matched by a dedup search.

    Attributes:
        key: Issue key (e.g., OPS-123)
        id: Numeric issue ID
        status_category: Coarse status bucket
        status: Workflow status name
        resolution: Resolution name, None while unresolved
        resolved_at: Resolution timestamp, None while unresolved
        summary: Issue summary
    """

    key: str
    id: str = ""
    status_category: StatusCategory = StatusCategory.TO_DO
    status: str = ""
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None
    summary: str = ""

    @property
    def is_done(self) -> bool:
        """Check if issue sits in the done category."""
        return self.status_category == StatusCategory.DONE

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ExistingIssue":
        """Build a snapshot from a Jira search result entry."""
        fields = data.get("fields") or {}
        status = fields.get("status") or {}
        category = (status.get("statusCategory") or {}).get("key")
        resolution = fields.get("resolution") or {}
        return cls(
            key=data.get("key", ""),
            id=str(data.get("id", "")),
            status_category=StatusCategory.from_key(category),
            status=status.get("name", ""),
            resolution=resolution.get("name"),
            resolved_at=parse_jira_datetime(fields.get("resolutiondate")),
            summary=fields.get("summary", ""),
        )


@dataclass(frozen=True)
class Transition:
    """A workflow transition available on an issue."""

    id: str
    name: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Transition":
        """Build a transition from a Jira transitions entry."""
        return cls(id=str(data.get("id", "")), name=data.get("name", ""))


@dataclass
class RenderedIssue:
    """An issue with every template resolved, ready to submit.

    Attributes:
        project: Project key
        issue_type: Issue type name
        summary: Issue summary
        description: Description including the dedup marker
        labels: Labels in submission order
        priority: Priority name (omitted when None)
        components: Component names
        fields: Custom fields, string-keyed
        key: Issue key assigned by Jira on create
        id: Issue ID assigned by Jira on create
    """

    project: str
    issue_type: str
    summary: str
    description: str
    labels: list[str] = field(default_factory=list)
    priority: Optional[str] = None
    components: list[str] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)
    key: Optional[str] = None
    id: Optional[str] = None

    def to_api_fields(self) -> dict[str, Any]:
        """Build the ``fields`` object of a Jira create request.

        Custom fields are merged last, so they can also override standard
        fields.
        """
        payload: dict[str, Any] = {
            "project": {"key": self.project},
            "issuetype": {"name": self.issue_type},
            "summary": self.summary,
            "description": self.description,
        }
        if self.labels:
            payload["labels"] = list(self.labels)
        if self.priority is not None:
            payload["priority"] = {"name": self.priority}
        if self.components:
            payload["components"] = [{"name": name} for name in self.components]
        payload.update(self.fields)
        return payload
