"""
jirabridge - Notification Engine

Reconciles an alert group with Jira: leave the matching issue alone, reopen
it, or create a new one.
"""

from jirabridge.notify.receiver import (
    Action,
    Decision,
    MissingTransitionError,
    Receiver,
    decide,
)

__all__ = [
    "Action",
    "Decision",
    "MissingTransitionError",
    "Receiver",
    "decide",
]
