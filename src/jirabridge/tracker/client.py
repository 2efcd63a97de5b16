"""
Jira REST Client.

Thin async wrapper over the Jira REST API v2 covering exactly what
reconciliation needs: search, list transitions, execute a transition and
create an issue. Every failure is classified as retryable or not; nothing is
retried here.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from jirabridge.errors import JirabridgeError
from jirabridge.models.issues import ExistingIssue, RenderedIssue, Transition
from jirabridge.tracker.query import IssueQuery

logger = logging.getLogger(__name__)


API_PREFIX = "/rest/api/2"

# Statuses worth re-delivering the alert group for
RETRYABLE_STATUS_CODES = frozenset({500, 503})


class TrackerError(JirabridgeError):
    """Base exception for Jira request failures.

    Attributes:
        operation: Client operation that failed (e.g., Issue.Search)
        url: Request URL, when a response was received
        body: Response body, when a response was received
    """

    def __init__(
        self,
        message: str,
        operation: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.operation = operation
        self.url = url
        self.body = body


class TransientTrackerError(TrackerError):
    """Raised for 500/503 responses; re-delivery may succeed."""

    retryable = True


class PermanentTrackerError(TrackerError):
    """Raised for any other non-2xx response or a transport failure."""

    retryable = False


def classify_response(operation: str, response: httpx.Response) -> None:
    """Raise the matching TrackerError for a non-2xx response.

    The message is built from the request URL, status line and body; the
    underlying client's own message adds nothing.

    Raises:
        TransientTrackerError: For 500 and 503
        PermanentTrackerError: For every other non-2xx status
    """
    if response.is_success:
        return

    url = str(response.request.url)
    body = response.text
    message = (
        f"JIRA request {url} returned status "
        f"{response.status_code} {response.reason_phrase}, body {json.dumps(body)}"
    )
    error_cls = (
        TransientTrackerError
        if response.status_code in RETRYABLE_STATUS_CODES
        else PermanentTrackerError
    )
    raise error_cls(
        message,
        operation=operation,
        status_code=response.status_code,
        url=url,
        body=body,
    )


def decode_response(operation: str, response: httpx.Response) -> dict[str, Any]:
    """Decode a successful response body as a JSON object.

    Raises:
        PermanentTrackerError: If the body is not a JSON object
    """
    try:
        data = response.json()
    except ValueError as e:
        raise PermanentTrackerError(
            f"JIRA request {operation} failed: {e}",
            operation=operation,
            status_code=response.status_code,
            url=str(response.request.url),
            body=response.text,
        ) from e
    if not isinstance(data, dict):
        raise PermanentTrackerError(
            f"JIRA request {operation} failed: expected a JSON object, got {type(data).__name__}",
            operation=operation,
            status_code=response.status_code,
            url=str(response.request.url),
            body=response.text,
        )
    return data


class JiraClient:
    """Async client for one Jira instance.

    Usage:
        async with JiraClient("https://jira.example.com", user, password) as client:
            issues = await client.search(query)
    """

    def __init__(
        self,
        base_url: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Jira base URL
            user: Basic auth user
            password: Basic auth password or API token
            timeout: Request timeout in seconds
            transport: Custom transport (tests, proxies)
        """
        self._base_url = base_url.rstrip("/")
        self._auth = (user, password or "") if user else None
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> JiraClient:
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def base_url(self) -> str:
        """Get the Jira base URL."""
        return self._base_url

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and classify failures.

        Raises:
            TransientTrackerError: For retryable statuses
            PermanentTrackerError: For other statuses and transport failures
        """
        client = await self._ensure_client()
        logger.debug(f"{operation}: {method} {path}")
        try:
            response = await client.request(method, f"{API_PREFIX}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise PermanentTrackerError(
                f"JIRA request {operation} failed: {e}",
                operation=operation,
            ) from e

        classify_response(operation, response)
        return response

    async def search(self, query: IssueQuery) -> list[ExistingIssue]:
        """Run a JQL search.

        Args:
            query: Search request

        Returns:
            Matching issues in the order Jira returned them
        """
        response = await self._request(
            "Issue.Search",
            "POST",
            "/search",
            json={
                "jql": query.jql,
                "maxResults": query.max_results,
                "fields": query.fields,
            },
        )
        data = decode_response("Issue.Search", response)
        return [ExistingIssue.from_api(item) for item in data.get("issues", [])]

    async def get_transitions(self, issue_key: str) -> list[Transition]:
        """List the transitions currently available on an issue."""
        response = await self._request(
            "Issue.GetTransitions",
            "GET",
            f"/issue/{issue_key}/transitions",
        )
        data = decode_response("Issue.GetTransitions", response)
        return [Transition.from_api(item) for item in data.get("transitions", [])]

    async def do_transition(self, issue_key: str, transition_id: str) -> None:
        """Execute a transition on an issue."""
        await self._request(
            "Issue.DoTransition",
            "POST",
            f"/issue/{issue_key}/transitions",
            json={"transition": {"id": transition_id}},
        )

    async def create_issue(self, issue: RenderedIssue) -> RenderedIssue:
        """Create an issue and record the key and ID Jira assigned.

        Args:
            issue: Rendered issue; updated in place on success

        Returns:
            The same issue with ``key`` and ``id`` set
        """
        response = await self._request(
            "Issue.Create",
            "POST",
            "/issue",
            json={"fields": issue.to_api_fields()},
        )
        data = decode_response("Issue.Create", response)
        issue.key = data.get("key")
        issue.id = str(data["id"]) if data.get("id") is not None else None
        return issue
