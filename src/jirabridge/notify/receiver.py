"""
Reconciliation Engine.

Decides, for one alert group and one receiver, whether the matching Jira
issue is left alone, reopened or created, and carries that decision out.

Flow of a run:
    render project/summary/hash -> search -> decide -> reopen | create | no-op

Runs share nothing but the parsed template set; every run gets its own
Renderer, so concurrent notifications never see each other's errors.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from jirabridge.config.models import ReceiverConfig
from jirabridge.errors import ConfigError
from jirabridge.models.alerts import AlertGroup
from jirabridge.models.issues import ExistingIssue, RenderedIssue
from jirabridge.templates.engine import Renderer, TemplateSet
from jirabridge.templates.walker import render_tree
from jirabridge.tracker.client import JiraClient, TrackerError
from jirabridge.tracker.query import (
    ALERT_LABEL,
    IssueQuery,
    alert_hash_of,
    build_query,
    dedup_marker,
    issue_labels,
)

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Outcome of reconciling an alert group with Jira."""

    NOOP = "noop"  # Matching issue is open or won't be reopened
    REOPEN = "reopen"  # Matching issue resolved within the reopen window
    CREATE = "create"  # No usable matching issue


@dataclass(frozen=True)
class Decision:
    """What a notification run did.

    Attributes:
        action: Action taken
        issue_key: Issue the action applied to (None for a failed lookup)
        issue: Issue submitted on create
    """

    action: Action
    issue_key: Optional[str] = None
    issue: Optional[RenderedIssue] = None

    @classmethod
    def noop(cls, issue_key: str) -> "Decision":
        return cls(Action.NOOP, issue_key=issue_key)

    @classmethod
    def reopen(cls, issue_key: str) -> "Decision":
        return cls(Action.REOPEN, issue_key=issue_key)

    @classmethod
    def create(cls, issue: RenderedIssue) -> "Decision":
        return cls(Action.CREATE, issue_key=issue.key, issue=issue)


class MissingTransitionError(ConfigError):
    """Raised when the configured reopen transition is not available."""

    def __init__(self, state: str, issue_key: str) -> None:
        super().__init__(
            f"JIRA state {state!r} does not exist or no transition possible for {issue_key}",
            issue_key=issue_key,
        )
        self.state = state


def decide(
    existing: Optional[ExistingIssue],
    config: ReceiverConfig,
    now: datetime,
) -> Action:
    """Choose the action for the newest issue matching an alert group.

    Args:
        existing: Matching issue, None when the search found nothing
        config: Receiver configuration (reopen policy)
        now: Current time, timezone-aware

    Returns:
        NOOP, REOPEN or CREATE
    """
    if existing is None:
        return Action.CREATE

    if not existing.is_done:
        return Action.NOOP

    if config.wont_fix_resolution and existing.resolution == config.wont_fix_resolution:
        return Action.NOOP

    resolved_at = existing.resolved_at
    if resolved_at is not None:
        if resolved_at.tzinfo is None:
            resolved_at = resolved_at.replace(tzinfo=timezone.utc)
        if resolved_at + config.reopen_duration > now:
            return Action.REOPEN

    return Action.CREATE


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


class Receiver:
    """Reconciles alert groups for one Alertmanager receiver.

    Usage:
        async with JiraClient(config.api_url, config.user, config.password_value()) as client:
            receiver = Receiver(config, templates, client)
            decision = await receiver.notify(group)
    """

    def __init__(
        self,
        config: ReceiverConfig,
        templates: TemplateSet,
        client: JiraClient,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the receiver.

        Args:
            config: Receiver configuration
            templates: Parsed template set
            client: Jira client
            clock: Source of the current time
        """
        self._config = config
        self._templates = templates
        self._client = client
        self._clock = clock

    @property
    def config(self) -> ReceiverConfig:
        """Get receiver configuration."""
        return self._config

    async def notify(self, group: AlertGroup) -> Decision:
        """Reconcile one alert group with Jira.

        Args:
            group: Decoded alert group

        Returns:
            The decision that was carried out

        Raises:
            RenderError: If a template fails (before any request is sent)
            MissingTransitionError: If the reopen transition is unavailable
            TrackerError: If a Jira request fails
        """
        conf = self._config
        renderer = Renderer(self._templates, group)

        project = renderer.render(conf.project)
        renderer.check()

        labels: list[str] = []
        if conf.add_labels:
            labels = [ALERT_LABEL, *issue_labels(group.group_labels)]

        alert_hash = ""
        if conf.alert_hash:
            alert_hash = alert_hash_of(renderer.render(conf.alert_hash))

        summary = renderer.render(conf.summary)
        renderer.check()

        query = build_query(
            project,
            alert_hash=alert_hash,
            labels=labels if conf.add_labels else None,
        )
        existing = await self._search(query)

        action = decide(existing, conf, self._clock())
        if action == Action.NOOP:
            if existing.is_done:
                logger.info(
                    f"Issue {existing.key} for {labels} is resolved as "
                    f"{existing.resolution!r}, not reopening"
                )
            else:
                logger.debug(f"Issue {existing.key} for {labels} is unresolved, nothing to do")
            return Decision.noop(existing.key)

        if action == Action.REOPEN:
            logger.info(
                f"Issue {existing.key} for {labels} was resolved on "
                f"{existing.resolved_at.isoformat()}, reopening"
            )
            await self._reopen(existing.key)
            return Decision.reopen(existing.key)

        logger.info(f"No issue matching {labels} found, creating new issue")
        issue = self._build_issue(renderer, project, summary, labels, alert_hash, group)
        await self._create(issue)
        return Decision.create(issue)

    def _build_issue(
        self,
        renderer: Renderer,
        project: str,
        summary: str,
        labels: list[str],
        alert_hash: str,
        group: AlertGroup,
    ) -> RenderedIssue:
        """Render the issue to create.

        Raises:
            RenderError: If any template fails
        """
        conf = self._config

        issue = RenderedIssue(
            project=project,
            issue_type=renderer.render(conf.issue_type),
            summary=summary,
            description=renderer.render(conf.description) + dedup_marker(alert_hash),
            labels=list(labels),
        )
        if conf.priority:
            issue.priority = renderer.render(conf.priority)

        issue.components = [renderer.render(component) for component in conf.components]

        if conf.add_group_labels:
            issue.labels.extend(
                f"{key}={json.dumps(value, ensure_ascii=False)}"
                for key, value in group.sorted_group_labels()
            )

        walked = render_tree(conf.fields, renderer.execute)
        for error in walked.errors:
            renderer.record(error)
        issue.fields = walked.value

        renderer.check()
        return issue

    async def _search(self, query: IssueQuery) -> Optional[ExistingIssue]:
        """Find the newest issue matching the dedup query."""
        logger.debug(f"search: query={query.jql} max_results={query.max_results}")
        try:
            issues = await self._client.search(query)
        except TrackerError as e:
            e.query = query.jql
            raise

        if not issues:
            logger.debug("  no results")
            return None

        if len(issues) > 1:
            # Duplicates are tolerated; the newest key wins
            logger.info(
                f"More than one issue matched {query.jql}, will only update "
                f"{issues[0].key}: {[issue.key for issue in issues]}"
            )
        logger.debug(f"  found: {issues[0]}")
        return issues[0]

    async def _reopen(self, issue_key: str) -> None:
        """Apply the configured reopen transition to an issue.

        Raises:
            MissingTransitionError: If no transition has the configured name
        """
        try:
            transitions = await self._client.get_transitions(issue_key)
            for transition in transitions:
                if transition.name == self._config.reopen_state:
                    logger.debug(f"reopen: issue_key={issue_key} transition_id={transition.id}")
                    await self._client.do_transition(issue_key, transition.id)
                    return
        except TrackerError as e:
            e.issue_key = issue_key
            raise

        raise MissingTransitionError(self._config.reopen_state, issue_key)

    async def _create(self, issue: RenderedIssue) -> None:
        """Submit a rendered issue."""
        logger.debug(f"create: issue={issue}")
        await self._client.create_issue(issue)
        logger.info(f"Issue created: key={issue.key} ID={issue.id}")
