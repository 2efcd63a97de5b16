"""
jirabridge - Jira Integration

- JiraClient: async REST client with retryable/permanent error classification
- build_query: dedup search construction (hash or label strategy)
"""

from jirabridge.tracker.client import (
    RETRYABLE_STATUS_CODES,
    JiraClient,
    PermanentTrackerError,
    TrackerError,
    TransientTrackerError,
    classify_response,
    decode_response,
)
from jirabridge.tracker.query import (
    ALERT_HASH_MARKER,
    ALERT_LABEL,
    MAX_RESULTS,
    DedupStrategy,
    IssueQuery,
    alert_hash_of,
    build_query,
    dedup_marker,
    issue_labels,
)

__all__ = [
    # Client
    "JiraClient",
    "TrackerError",
    "TransientTrackerError",
    "PermanentTrackerError",
    "RETRYABLE_STATUS_CODES",
    "classify_response",
    "decode_response",
    # Query
    "ALERT_HASH_MARKER",
    "ALERT_LABEL",
    "MAX_RESULTS",
    "DedupStrategy",
    "IssueQuery",
    "alert_hash_of",
    "build_query",
    "dedup_marker",
    "issue_labels",
]
