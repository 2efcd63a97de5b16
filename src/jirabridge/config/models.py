"""
Configuration Data Models.

Defines all configuration schemas using Pydantic for validation
and type safety.
"""

import re
from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

from jirabridge.tracker.query import DedupStrategy

# Prometheus-style duration, e.g. 30m, 1h30m, 10d
_DURATION_PART = re.compile(r"(\d+)(ms|s|m|h|d|w|y)")
_DURATION_FULL = re.compile(r"(?:\d+(?:ms|s|m|h|d|w|y))+")
_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "y": timedelta(days=365),
}


def parse_duration(value: Any) -> timedelta:
    """Parse a duration given as timedelta, seconds, or a string like ``1h30m``.

    Raises:
        ValueError: If the value is not a valid duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    text = str(value).strip()
    if not _DURATION_FULL.fullmatch(text):
        raise ValueError(f"invalid duration {value!r}, expected e.g. 30m, 1h, 10d")
    total = timedelta()
    for amount, unit in _DURATION_PART.findall(text):
        total += int(amount) * _DURATION_UNITS[unit]
    return total


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Root log level for jirabridge loggers
        format: logging format string
    """

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log record format",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept lowercase level names."""
        return v.upper() if isinstance(v, str) else v


class HttpConfig(BaseModel):
    """Configuration for the shared HTTP transport.

    Attributes:
        timeout_seconds: Timeout applied to every Jira request
    """

    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Jira request timeout",
    )


class ReceiverConfig(BaseModel):
    """Configuration for one Alertmanager receiver.

    String values other than ``name``, ``api_url`` and the credentials are
    templates rendered against the alert group.

    Attributes:
        name: Receiver name, matched against the webhook payload
        api_url: Jira base URL
        user: Jira user
        password: Jira password or API token
        project: Project key template
        issue_type: Issue type template
        summary: Summary template
        description: Description template
        priority: Priority template (omitted when unset)
        components: Component name templates
        fields: Custom field tree, every string rendered
        reopen_state: Transition name used to reopen an issue
        reopen_duration: How long after resolution an issue is reopened
        wont_fix_resolution: Resolution that is never reopened
        add_labels: Dedup on ALERT plus group label values
        add_group_labels: Add a key="value" label per group label
        alert_hash: Template whose SHA-1 identifies the alert group
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Receiver name")
    api_url: str = Field(..., description="Jira base URL")
    user: Optional[str] = Field(default=None, description="Jira user")
    password: Optional[SecretStr] = Field(default=None, description="Jira password or token")
    project: str = Field(..., description="Project key template")
    issue_type: str = Field(..., description="Issue type template")
    summary: str = Field(..., description="Summary template")
    description: str = Field(default="", description="Description template")
    priority: Optional[str] = Field(default=None, description="Priority template")
    components: list[str] = Field(default_factory=list, description="Component templates")
    fields: dict[str, Any] = Field(default_factory=dict, description="Custom fields")
    reopen_state: str = Field(..., description="Reopen transition name")
    reopen_duration: timedelta = Field(..., description="Reopen window")
    wont_fix_resolution: Optional[str] = Field(
        default=None,
        description="Resolution exempt from reopening",
    )
    add_labels: bool = Field(default=False, description="Dedup on group label values")
    add_group_labels: bool = Field(default=False, description="Add key=value labels")
    alert_hash: Optional[str] = Field(default=None, description="Dedup hash template")

    @field_validator("name", "project", "issue_type", "summary", "reopen_state")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate that required strings are not blank."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate that the Jira URL is absolute."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("reopen_duration", mode="before")
    @classmethod
    def validate_reopen_duration(cls, v: Any) -> timedelta:
        """Parse Prometheus-style durations."""
        return parse_duration(v)

    @property
    def dedup_strategy(self) -> DedupStrategy:
        """Dedup strategy; the hash template wins over labels."""
        if self.alert_hash:
            return DedupStrategy.HASH
        if self.add_labels:
            return DedupStrategy.LABELS
        return DedupStrategy.NONE

    def password_value(self) -> Optional[str]:
        """Get the plain password."""
        return self.password.get_secret_value() if self.password else None

    def template_strings(self) -> list[str]:
        """All top-level template strings, for validation."""
        texts = [self.project, self.issue_type, self.summary, self.description]
        if self.priority:
            texts.append(self.priority)
        if self.alert_hash:
            texts.append(self.alert_hash)
        texts.extend(self.components)
        return texts


def merge_receiver(defaults: dict[str, Any], receiver: dict[str, Any]) -> dict[str, Any]:
    """Apply defaults to a raw receiver entry.

    Receiver keys win; ``fields`` are merged key by key.
    """
    merged = {k: v for k, v in defaults.items() if k != "name"}
    for key, value in receiver.items():
        if key == "fields" and isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


class JirabridgeConfig(BaseModel):
    """Root configuration.

    Attributes:
        defaults: Values every receiver inherits unless it sets them
        receivers: Receiver configurations
        template: Template file or directory for named templates
        http: HTTP transport configuration
        logging: Logging configuration
    """

    model_config = ConfigDict(frozen=True)

    defaults: dict[str, Any] = Field(
        default_factory=dict,
        description="Receiver defaults",
    )
    receivers: list[ReceiverConfig] = Field(
        ...,
        min_length=1,
        description="Receivers",
    )
    template: Optional[str] = Field(
        default=None,
        description="Template file or directory",
    )
    http: HttpConfig = Field(
        default_factory=HttpConfig,
        description="HTTP transport",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )

    @model_validator(mode="before")
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        """Merge ``defaults`` into every raw receiver entry."""
        if not isinstance(data, dict):
            return data
        defaults = data.get("defaults") or {}
        receivers = data.get("receivers")
        if isinstance(defaults, dict) and isinstance(receivers, list):
            data = {
                **data,
                "receivers": [
                    merge_receiver(defaults, r) if isinstance(r, dict) else r
                    for r in receivers
                ],
            }
        return data

    @model_validator(mode="after")
    def validate_unique_names(self) -> "JirabridgeConfig":
        """Validate that receiver names are unique."""
        seen: set[str] = set()
        for receiver in self.receivers:
            if receiver.name in seen:
                raise ValueError(f"duplicate receiver name: {receiver.name}")
            seen.add(receiver.name)
        return self

    def receiver_by_name(self, name: str) -> Optional[ReceiverConfig]:
        """Look up a receiver by name."""
        for receiver in self.receivers:
            if receiver.name == name:
                return receiver
        return None
