"""
Error taxonomy shared by the engine and the boundary layer.

Every failure raised out of a notification run derives from JirabridgeError
and carries a ``retryable`` flag. The engine only classifies failures; retry
and backoff belong to whoever delivered the alert group.
"""

from typing import Optional


class JirabridgeError(Exception):
    """Base exception for notification failures.

    Attributes:
        retryable: Whether re-delivering the same alert group may succeed
        issue_key: Jira issue the failure relates to (if any)
        query: JQL query that was being executed (if any)
        status_code: HTTP status returned by Jira (if any)
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        retryable: Optional[bool] = None,
        issue_key: Optional[str] = None,
        query: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable
        self.issue_key = issue_key
        self.query = query
        self.status_code = status_code


class ConfigError(JirabridgeError):
    """Raised when the configuration cannot satisfy a request."""

    pass


def http_status_for(error: BaseException) -> int:
    """Map an engine failure to the HTTP status returned to Alertmanager.

    Retryable failures map to 503 so the sender re-delivers; everything else
    is a definitive 500.

    Args:
        error: Exception raised by a notification run

    Returns:
        HTTP status code
    """
    if isinstance(error, JirabridgeError) and error.retryable:
        return 503
    return 500
