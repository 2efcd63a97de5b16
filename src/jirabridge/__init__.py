"""
jirabridge: Alertmanager to Jira ticket reconciliation.

Turns grouped monitoring alerts into Jira issues. Each alert group is
identified by a stable fingerprint (a hash embedded in the issue description,
or a set of labels) so that a recurring incident never files a duplicate:

- An open issue for the same group is left alone
- A recently resolved issue is reopened within the configured window
- Otherwise a new issue is created from the receiver's templates

Example:
    from jirabridge import NotificationService
    from jirabridge.config import ConfigLoader

    service = NotificationService(ConfigLoader("jirabridge.yml"))
    service.reload()
    outcome = await service.handle(payload)
"""

from jirabridge.errors import ConfigError, JirabridgeError, http_status_for
from jirabridge.notify import Action, Decision, Receiver
from jirabridge.service import NotificationService, NotifyOutcome
from jirabridge.version import __version__

__all__ = [
    "__version__",
    "Action",
    "ConfigError",
    "Decision",
    "JirabridgeError",
    "NotificationService",
    "NotifyOutcome",
    "Receiver",
    "http_status_for",
]
