"""Tests for alert group models."""

import pytest
from pydantic import ValidationError

from jirabridge.models import FIRING, RESOLVED, Alert, AlertGroup


class TestAlertGroup:
    """Tests for decoding webhook payloads."""

    def test_decode_payload(self, sample_payload):
        """Camel-case wire names map onto model fields."""
        group = AlertGroup.model_validate(sample_payload)
        assert group.receiver == "r1"
        assert group.status == FIRING
        assert group.group_labels == {"severity": "page", "alertname": "Disk"}
        assert group.common_annotations["summary"] == "Disk almost full"
        assert group.external_url == "http://alertmanager.example.com"
        alert = group.alerts[0]
        assert alert.generator_url == "http://prometheus.example.com/graph"
        assert alert.fingerprint == "a1b2c3d4"
        assert alert.starts_at.hour == 11

    def test_receiver_required(self, sample_payload):
        """A payload without receiver does not decode."""
        del sample_payload["receiver"]
        with pytest.raises(ValidationError):
            AlertGroup.model_validate(sample_payload)

    def test_decode_json(self):
        """Raw JSON bodies decode too."""
        group = AlertGroup.model_validate_json('{"receiver": "r1", "alerts": []}')
        assert group.alerts == []
        assert group.version == "4"

    def test_firing_and_resolved(self, alert_group):
        """Alerts are split by status."""
        resolved = Alert(status=RESOLVED, labels={"alertname": "Disk"})
        group = alert_group.with_alerts([*alert_group.alerts, resolved])
        assert len(group.firing()) == 1
        assert group.resolved() == [resolved]
        assert len(alert_group.alerts) == 1

    def test_sorted_group_labels(self, alert_group):
        """Group labels sort by name regardless of delivery order."""
        assert alert_group.sorted_group_labels() == [
            ("alertname", "Disk"),
            ("severity", "page"),
        ]

    def test_frozen(self, alert_group):
        """Decoded groups are immutable."""
        with pytest.raises(ValidationError):
            alert_group.receiver = "other"

    def test_template_context(self, alert_group):
        """The template context exposes the group's data."""
        context = alert_group.template_context()
        assert context["receiver"] == "r1"
        assert context["status"] == "firing"
        assert context["group_labels"]["alertname"] == "Disk"
        assert context["common_labels"]["team"] == "storage"
        assert len(context["firing_alerts"]) == 1
        assert context["resolved_alerts"] == []
