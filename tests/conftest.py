"""
jirabridge Test Configuration and Fixtures

Fixtures never touch a real Jira: HTTP is mocked with respx and the engine's
collaborators with unittest.mock.

Fixture Categories:
- Payloads: Alertmanager webhook bodies and decoded alert groups
- Configuration: Receiver configurations and config files on disk
- Engine: Template sets, clocks and mock Jira clients
"""

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
import yaml

import jirabridge.config.environment as env_module
from jirabridge.config import ReceiverConfig, reset_environment
from jirabridge.models import AlertGroup
from jirabridge.templates import TemplateSet
from jirabridge.tracker import JiraClient

JIRA_URL = "https://jira.example.com"

# Environment variables the loader reads
_ENV_VARS = [
    "JIRA_USER",
    "JIRA_PASSWORD",
    "JIRABRIDGE_CONFIG",
    "JIRABRIDGE_LOG_LEVEL",
    "JIRABRIDGE_TEMPLATE",
    "JIRABRIDGE_HTTP_TIMEOUT",
]


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep tests independent of the process environment and any .env file."""
    reset_environment()
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    # Tests set their own variables; never read a developer's .env
    monkeypatch.setattr(env_module, "_dotenv_loaded", True)
    yield
    reset_environment()


# =============================================================================
# Payload Fixtures
# =============================================================================


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Webhook body with one firing alert for receiver r1."""
    return {
        "version": "4",
        "groupKey": '{}:{alertname="Disk", severity="page"}',
        "status": "firing",
        "receiver": "r1",
        "groupLabels": {"severity": "page", "alertname": "Disk"},
        "commonLabels": {
            "alertname": "Disk",
            "severity": "page",
            "instance": "db-1:9100",
            "team": "storage",
        },
        "commonAnnotations": {"summary": "Disk almost full"},
        "externalURL": "http://alertmanager.example.com",
        "alerts": [
            {
                "status": "firing",
                "labels": {
                    "alertname": "Disk",
                    "severity": "page",
                    "instance": "db-1:9100",
                    "team": "storage",
                },
                "annotations": {"summary": "Disk almost full"},
                "startsAt": "2024-05-10T11:00:00Z",
                "endsAt": "0001-01-01T00:00:00Z",
                "generatorURL": "http://prometheus.example.com/graph",
                "fingerprint": "a1b2c3d4",
            }
        ],
    }


@pytest.fixture
def alert_group(sample_payload) -> AlertGroup:
    """Decoded alert group for receiver r1."""
    return AlertGroup.model_validate(sample_payload)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def receiver_dict() -> dict[str, Any]:
    """Raw receiver entry as it appears in a config file."""
    return {
        "name": "r1",
        "api_url": JIRA_URL,
        "user": "bot",
        "password": "secret",
        "project": "OPS",
        "issue_type": "Bug",
        "summary": "{{ common_labels.alertname }} on {{ common_labels.instance }}",
        "description": "{{ common_annotations.summary }}",
        "reopen_state": "To Do",
        "reopen_duration": "10d",
        "wont_fix_resolution": "Won't Fix",
    }


@pytest.fixture
def make_receiver(receiver_dict) -> Callable[..., ReceiverConfig]:
    """Factory for receiver configurations with overrides."""

    def _make(**overrides: Any) -> ReceiverConfig:
        return ReceiverConfig(**{**receiver_dict, **overrides})

    return _make


@pytest.fixture
def receiver_config(make_receiver) -> ReceiverConfig:
    """Receiver configuration using the hash dedup strategy."""
    return make_receiver(
        alert_hash="{{ group_labels.alertname }}-{{ group_labels.severity }}",
    )


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a configuration mapping to a YAML file and return its path."""

    def _write(data: dict[str, Any], name: str = "jirabridge.yml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return _write


@pytest.fixture
def config_dict(receiver_dict) -> dict[str, Any]:
    """Configuration file contents with defaults and one receiver."""
    defaults = {k: v for k, v in receiver_dict.items() if k != "name"}
    return {
        "defaults": defaults,
        "receivers": [
            {
                "name": "r1",
                "alert_hash": "{{ group_labels.alertname }}-{{ group_labels.severity }}",
            }
        ],
    }


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def template_set() -> TemplateSet:
    """Template set with one named template."""
    return TemplateSet(
        templates={
            "description.j2": (
                "{% for alert in alerts %}"
                "{{ alert.labels.instance }}: {{ alert.annotations.summary }}\n"
                "{% endfor %}"
            ),
        }
    )


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed current time used by the engine clock."""
    return datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now) -> Callable[[], datetime]:
    """Clock returning the fixed current time."""
    return lambda: fixed_now


@pytest.fixture
def mock_jira_client() -> AsyncMock:
    """Mock Jira client; create_issue assigns OPS-1 / 10001."""
    client = AsyncMock(spec=JiraClient)
    client.search.return_value = []
    client.get_transitions.return_value = []

    def _create(issue):
        issue.key = "OPS-1"
        issue.id = "10001"
        return issue

    client.create_issue.side_effect = _create
    return client
