"""Tests for the notification service boundary."""

import json

import pytest
import respx
from httpx import Response

from jirabridge.config import ConfigLoader, ConfigurationError
from jirabridge.notify import Action
from jirabridge.service import UNKNOWN_RECEIVER, NotificationService, build_snapshot

JIRA_URL = "https://jira.example.com"
SEARCH_URL = f"{JIRA_URL}/rest/api/2/search"
CREATE_URL = f"{JIRA_URL}/rest/api/2/issue"


@pytest.fixture
def service(write_config, config_dict, clock) -> NotificationService:
    """Service with its configuration loaded."""
    service = NotificationService(ConfigLoader(write_config(config_dict)), clock=clock)
    service.reload()
    return service


class TestSnapshot:
    """Tests for configuration snapshots."""

    def test_snapshot_before_reload(self):
        """The snapshot is unavailable until loaded."""
        with pytest.raises(RuntimeError, match="reload"):
            NotificationService(ConfigLoader()).snapshot

    def test_reload_swaps_snapshot(self, service, write_config, config_dict):
        """Reloading replaces the snapshot as a whole."""
        old = service.snapshot
        config_dict["receivers"].append({"name": "r2", "project": "DB"})
        write_config(config_dict)

        new = service.reload()
        assert service.snapshot is new
        assert new is not old
        assert new.config.receiver_by_name("r2").project == "DB"
        assert old.config.receiver_by_name("r2") is None

    def test_failed_reload_keeps_snapshot(self, service, write_config, config_dict):
        """A broken configuration leaves the current snapshot in place."""
        old = service.snapshot
        config_dict["defaults"]["summary"] = "{{ broken "
        write_config(config_dict)

        with pytest.raises(ConfigurationError, match="failed to compile"):
            service.reload()
        assert service.snapshot is old

    def test_build_snapshot_missing_template_dir(self, write_config, config_dict):
        """A missing template path is reported."""
        config_dict["template"] = "does-not-exist"
        config = ConfigLoader(write_config(config_dict)).load()
        with pytest.raises(FileNotFoundError):
            build_snapshot(config)


class TestHandle:
    """Tests for NotificationService.handle."""

    @pytest.mark.asyncio
    async def test_invalid_payload(self, service):
        """Undecodable bodies are rejected with 400."""
        outcome = await service.handle("not json")
        assert outcome.status_code == 400
        assert outcome.receiver == UNKNOWN_RECEIVER
        assert outcome.to_json()["Error"] is True

    @pytest.mark.asyncio
    async def test_unknown_receiver(self, service, sample_payload):
        """Unknown receivers are rejected with 404."""
        sample_payload["receiver"] = "nobody"
        outcome = await service.handle(sample_payload)
        assert outcome.status_code == 404
        assert "nobody" in outcome.message

    @pytest.mark.asyncio
    @respx.mock
    async def test_only_resolved_alerts(self, service, sample_payload):
        """Groups without firing alerts are acknowledged without Jira calls."""
        for alert in sample_payload["alerts"]:
            alert["status"] = "resolved"
        sample_payload["status"] = "resolved"

        outcome = await service.handle(sample_payload)
        assert outcome.ok
        assert outcome.decision is None
        assert outcome.receiver == "r1"
        assert not respx.calls

    @pytest.mark.asyncio
    @respx.mock
    async def test_create(self, service, sample_payload):
        """A new alert group files an issue."""
        respx.post(SEARCH_URL).mock(return_value=Response(200, json={"issues": []}))
        create = respx.post(CREATE_URL).mock(
            return_value=Response(201, json={"id": "10001", "key": "OPS-1"})
        )

        outcome = await service.handle(json.dumps(sample_payload))

        assert outcome.status_code == 200
        assert outcome.to_json() == {"Error": False, "Status": 200, "Message": "OK"}
        assert outcome.decision.action == Action.CREATE
        assert outcome.decision.issue_key == "OPS-1"
        fields = json.loads(create.calls.last.request.content)["fields"]
        assert fields["project"] == {"key": "OPS"}
        assert fields["description"].startswith("Disk almost full\n\nalert_hash=")
        assert len(fields["description"].rsplit("=", 1)[1]) == 40

    @pytest.mark.asyncio
    @respx.mock
    async def test_resolved_alerts_dropped(self, service, sample_payload, caplog):
        """Resolved alerts are removed before rendering."""
        resolved = dict(sample_payload["alerts"][0], status="resolved")
        resolved["labels"] = dict(resolved["labels"], instance="db-2:9100")
        sample_payload["alerts"].append(resolved)
        respx.post(SEARCH_URL).mock(return_value=Response(200, json={"issues": []}))
        respx.post(CREATE_URL).mock(return_value=Response(201, json={"id": "1", "key": "OPS-1"}))

        outcome = await service.handle(sample_payload)
        assert outcome.ok
        assert "send_resolved: false" in caplog.text

    @pytest.mark.asyncio
    @respx.mock
    async def test_retryable_failure(self, service, sample_payload):
        """Retryable Jira failures map to 503."""
        respx.post(SEARCH_URL).mock(return_value=Response(503, text="maintenance"))

        outcome = await service.handle(sample_payload)
        assert outcome.status_code == 503
        assert "maintenance" in outcome.message
        assert outcome.to_json()["Error"] is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_permanent_failure(self, service, sample_payload):
        """Other Jira failures map to 500."""
        respx.post(SEARCH_URL).mock(return_value=Response(400, text="bad jql"))

        outcome = await service.handle(sample_payload)
        assert outcome.status_code == 500
        assert outcome.receiver == "r1"

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_search_response(self, service, sample_payload):
        """A login page served with 200 maps to 500."""
        respx.post(SEARCH_URL).mock(
            return_value=Response(
                200,
                text="<html>login</html>",
                headers={"Content-Type": "text/html"},
            )
        )
        create = respx.post(CREATE_URL).mock(
            return_value=Response(201, json={"id": "1", "key": "OPS-1"})
        )

        outcome = await service.handle(sample_payload)
        assert outcome.status_code == 500
        assert "Issue.Search" in outcome.to_json()["Message"]
        assert not create.called

    @pytest.mark.asyncio
    async def test_invalid_pattern_in_field(self, write_config, config_dict, sample_payload):
        """A malformed regular expression in a custom field maps to 500."""
        config_dict["receivers"][0]["fields"] = {
            "customfield_10001": '{{ common_labels.team | re_replace_all("[", "") }}'
        }
        service = NotificationService(ConfigLoader(write_config(config_dict)))
        service.reload()

        with respx.mock:
            respx.post(SEARCH_URL).mock(return_value=Response(200, json={"issues": []}))
            create = respx.post(CREATE_URL).mock(
                return_value=Response(201, json={"id": "1", "key": "OPS-1"})
            )
            outcome = await service.handle(sample_payload)
            assert not create.called
        assert outcome.status_code == 500
        assert "failed to render" in outcome.message

    @pytest.mark.asyncio
    async def test_render_failure(self, write_config, config_dict, sample_payload):
        """Template failures map to 500 without Jira calls."""
        config_dict["receivers"][0]["summary"] = "{{ 1 / 0 }}"
        service = NotificationService(ConfigLoader(write_config(config_dict)))
        service.reload()

        with respx.mock:
            outcome = await service.handle(sample_payload)
            assert not respx.calls
        assert outcome.status_code == 500
