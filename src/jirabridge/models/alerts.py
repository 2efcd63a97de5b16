"""
Alert Group Models.

Decoded form of an Alertmanager webhook payload (version 4). See
https://prometheus.io/docs/alerting/latest/configuration/#webhook_config
for the wire format.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


AlertStatus = Literal["firing", "resolved"]

FIRING = "firing"
RESOLVED = "resolved"


def sorted_pairs(labels: dict[str, str]) -> list[tuple[str, str]]:
    """Return label pairs sorted by label name."""
    return sorted(labels.items())


class Alert(BaseModel):
    """A single alert within a group.

    Attributes:
        status: Firing or resolved
        labels: Identifying labels of the alert
        annotations: Informational annotations
        starts_at: When the alert started firing
        ends_at: When the alert resolved (zero time while firing)
        generator_url: Link to the expression that generated the alert
        fingerprint: Alertmanager's fingerprint of the label set
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: AlertStatus = FIRING
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    starts_at: Optional[datetime] = Field(default=None, alias="startsAt")
    ends_at: Optional[datetime] = Field(default=None, alias="endsAt")
    generator_url: str = Field(default="", alias="generatorURL")
    fingerprint: str = ""

    @property
    def is_firing(self) -> bool:
        """Check if alert is firing."""
        return self.status == FIRING


class AlertGroup(BaseModel):
    """One webhook delivery: a set of alerts sharing grouping labels.

    Immutable once decoded. Group labels keep the order they were delivered
    in; use ``sorted_group_labels()`` wherever a stable order matters.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    receiver: str
    status: AlertStatus = FIRING
    alerts: list[Alert] = Field(default_factory=list)
    group_labels: dict[str, str] = Field(default_factory=dict, alias="groupLabels")
    common_labels: dict[str, str] = Field(default_factory=dict, alias="commonLabels")
    common_annotations: dict[str, str] = Field(
        default_factory=dict, alias="commonAnnotations"
    )
    external_url: str = Field(default="", alias="externalURL")
    group_key: str = Field(default="", alias="groupKey")
    version: str = "4"

    def firing(self) -> list[Alert]:
        """Alerts that are still firing."""
        return [alert for alert in self.alerts if alert.is_firing]

    def resolved(self) -> list[Alert]:
        """Alerts that have resolved."""
        return [alert for alert in self.alerts if not alert.is_firing]

    def sorted_group_labels(self) -> list[tuple[str, str]]:
        """Group label pairs sorted by label name."""
        return sorted_pairs(self.group_labels)

    def with_alerts(self, alerts: list[Alert]) -> "AlertGroup":
        """Return a copy of the group carrying only the given alerts."""
        return self.model_copy(update={"alerts": list(alerts)})

    def template_context(self) -> dict[str, Any]:
        """Variables exposed to templates rendered against this group."""
        return {
            "receiver": self.receiver,
            "status": self.status,
            "alerts": self.alerts,
            "firing_alerts": self.firing(),
            "resolved_alerts": self.resolved(),
            "group_labels": self.group_labels,
            "common_labels": self.common_labels,
            "common_annotations": self.common_annotations,
            "external_url": self.external_url,
            "group_key": self.group_key,
        }
