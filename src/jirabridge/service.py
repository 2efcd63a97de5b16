"""
Notification Service.

Boundary between an Alertmanager webhook delivery and the reconciliation
engine: decodes the payload, picks the receiver, drops resolved alerts, runs
the engine and maps the outcome to an HTTP status.

Configuration and templates live in one immutable snapshot. ``reload()``
builds a complete new snapshot before swapping it in, so a notification
always sees either the old or the new configuration, never a mix.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from http import HTTPStatus
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from jirabridge.config.loader import ConfigLoader, ConfigurationError
from jirabridge.config.models import JirabridgeConfig, ReceiverConfig
from jirabridge.errors import JirabridgeError, http_status_for
from jirabridge.models.alerts import AlertGroup
from jirabridge.notify.receiver import Decision, Receiver, utcnow
from jirabridge.templates.engine import TemplateSet
from jirabridge.tracker.client import JiraClient

logger = logging.getLogger(__name__)

UNKNOWN_RECEIVER = "<unknown>"


@dataclass(frozen=True)
class ConfigSnapshot:
    """Configuration and the template set parsed for it."""

    config: JirabridgeConfig
    templates: TemplateSet


@dataclass
class NotifyOutcome:
    """Result of handling one webhook delivery.

    Attributes:
        status_code: HTTP status to answer Alertmanager with
        message: Human-readable outcome
        receiver: Receiver name, or <unknown> if it could not be determined
        decision: Engine decision on success
    """

    status_code: int
    message: str = "OK"
    receiver: str = UNKNOWN_RECEIVER
    decision: Optional[Decision] = None

    @property
    def ok(self) -> bool:
        """Check if the delivery was handled."""
        return self.status_code == HTTPStatus.OK

    def to_json(self) -> dict[str, Any]:
        """Response body for the webhook sender."""
        return {
            "Error": not self.ok,
            "Status": self.status_code,
            "Message": self.message,
        }


def build_snapshot(config: JirabridgeConfig) -> ConfigSnapshot:
    """Parse templates for a configuration and check every receiver template.

    Raises:
        ConfigurationError: If a template does not compile
        FileNotFoundError: If the template path does not exist
    """
    templates = TemplateSet.from_path(config.template) if config.template else TemplateSet()
    texts = [text for receiver in config.receivers for text in receiver.template_strings()]
    errors = templates.validate(texts)
    if errors:
        raise ConfigurationError(
            f"{len(errors)} template(s) failed to compile: {errors[0]}",
        )
    return ConfigSnapshot(config=config, templates=templates)


class NotificationService:
    """Handles webhook deliveries against the current configuration snapshot.

    Usage:
        service = NotificationService(ConfigLoader("jirabridge.yml"))
        service.reload()
        outcome = await service.handle(payload)
    """

    def __init__(
        self,
        loader: ConfigLoader,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the service.

        Args:
            loader: Configuration loader
            transport: HTTP transport shared by Jira clients
            clock: Source of the current time for the engine
        """
        self._loader = loader
        self._transport = transport
        self._clock = clock or utcnow
        self._snapshot: Optional[ConfigSnapshot] = None

    @property
    def snapshot(self) -> ConfigSnapshot:
        """Current configuration snapshot.

        Raises:
            RuntimeError: If no configuration has been loaded
        """
        if self._snapshot is None:
            raise RuntimeError("Configuration not loaded. Call reload() first.")
        return self._snapshot

    def reload(self) -> ConfigSnapshot:
        """Load configuration and templates and swap in the new snapshot.

        On failure the current snapshot stays in place.

        Raises:
            ConfigurationError: If configuration or templates are invalid
            FileNotFoundError: If a configured file is missing
        """
        if self._loader.loaded_from_path is not None:
            logger.info(f"Reloading configuration file {self._loader.loaded_from_path}")
            config = self._loader.reload()
        elif self._loader.config_path is not None:
            logger.info(f"Loading configuration file {self._loader.config_path}")
            config = self._loader.load()
        else:
            config = self._loader.load_from_env()

        snapshot = build_snapshot(config)
        self._snapshot = snapshot
        return snapshot

    def _client_for(self, conf: ReceiverConfig, snapshot: ConfigSnapshot) -> JiraClient:
        return JiraClient(
            conf.api_url,
            user=conf.user,
            password=conf.password_value(),
            timeout=snapshot.config.http.timeout_seconds,
            transport=self._transport,
        )

    async def handle(self, payload: dict[str, Any] | str | bytes) -> NotifyOutcome:
        """Handle one Alertmanager webhook delivery.

        Args:
            payload: Webhook body, decoded or raw JSON

        Returns:
            NotifyOutcome with the HTTP status to answer with
        """
        snapshot = self.snapshot

        try:
            if isinstance(payload, (str, bytes)):
                group = AlertGroup.model_validate_json(payload)
            else:
                group = AlertGroup.model_validate(payload)
        except ValidationError as e:
            return self._failure(HTTPStatus.BAD_REQUEST, e, UNKNOWN_RECEIVER)

        conf = snapshot.config.receiver_by_name(group.receiver)
        if conf is None:
            return self._failure(
                HTTPStatus.NOT_FOUND,
                f"Receiver missing: {group.receiver}",
                UNKNOWN_RECEIVER,
                group,
            )
        logger.debug(f"Matched receiver: {conf.name!r}")

        firing = group.firing()
        if len(firing) < len(group.alerts):
            logger.warning(
                f'Please set "send_resolved: false" on receiver {conf.name} '
                "in the Alertmanager config"
            )
            group = group.with_alerts(firing)

        if not group.alerts:
            return NotifyOutcome(HTTPStatus.OK, receiver=conf.name)

        try:
            async with self._client_for(conf, snapshot) as client:
                receiver = Receiver(conf, snapshot.templates, client, clock=self._clock)
                decision = await receiver.notify(group)
        except JirabridgeError as e:
            return self._failure(http_status_for(e), e, conf.name, group)

        return NotifyOutcome(HTTPStatus.OK, receiver=conf.name, decision=decision)

    def _failure(
        self,
        status: int,
        error: Exception | str,
        receiver: str,
        group: Optional[AlertGroup] = None,
    ) -> NotifyOutcome:
        status = HTTPStatus(status)
        group_labels = group.group_labels if group else {}
        logger.error(
            f"{status.value} {status.phrase}: err={error} "
            f"receiver={receiver!r} groupLabels={group_labels}"
        )
        return NotifyOutcome(status.value, message=str(error), receiver=receiver)
