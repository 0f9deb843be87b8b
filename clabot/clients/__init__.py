"""clabot GitHub resource clients."""

from clabot.clients.apps import AppsClient
from clabot.clients.issues import IssuesClient
from clabot.clients.pulls import PullsClient
from clabot.clients.repos import ReposClient
from clabot.clients.statuses import StatusesClient

__all__ = [
    "AppsClient",
    "IssuesClient",
    "PullsClient",
    "ReposClient",
    "StatusesClient",
]
