"""
jirabridge - Data Models

Alert groups decoded from Alertmanager and issue snapshots exchanged with Jira.
"""

from jirabridge.models.alerts import (
    FIRING,
    RESOLVED,
    Alert,
    AlertGroup,
    AlertStatus,
    sorted_pairs,
)
from jirabridge.models.issues import (
    ExistingIssue,
    RenderedIssue,
    StatusCategory,
    Transition,
    parse_jira_datetime,
)

__all__ = [
    # Alerts
    "Alert",
    "AlertGroup",
    "AlertStatus",
    "FIRING",
    "RESOLVED",
    "sorted_pairs",
    # Issues
    "ExistingIssue",
    "RenderedIssue",
    "StatusCategory",
    "Transition",
    "parse_jira_datetime",
]
