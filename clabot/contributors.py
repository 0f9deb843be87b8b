"""
Contributor classification.

Splits the commit authors of a pull request into internal contributors
(people with access to the repository) and external ones who may need to
sign the CLA.
"""

import asyncio
from collections.abc import Iterable
from enum import Enum
from typing import Any

from clabot.clients.pulls import PullsClient
from clabot.clients.repos import ReposClient
from clabot.exceptions import ConfigurationError
from clabot.logging import get_logger
from clabot.transport import Credential
from clabot.types.contributors import Classification, Contributor, GitHubUser, UnknownCommitter
from clabot.types.pulls import PullRequestRef

logger = get_logger("contributors")


class BotPolicy(str, Enum):
    """Which bot accounts count as internal contributors."""

    ALL = "all"  # any login ending in "[bot]"
    APP = "app"  # only this App's own bot login
    NONE = "none"  # bots are classified like everyone else

    @classmethod
    def parse(cls, value: str) -> "BotPolicy":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(policy.value for policy in cls)
            raise ConfigurationError(
                f"Invalid bot policy {value!r}. Must be one of: {choices}"
            ) from None


def commit_author(commit: dict[str, Any]) -> Contributor:
    """
    Map a pull request commit to its author.

    GitHub fills the top-level ``author`` only when it could link the commit
    email to an account; otherwise the git author name and email are used.
    """
    account = commit.get("author") or {}
    login = account.get("login")
    if login:
        return GitHubUser(login)

    git_author = (commit.get("commit") or {}).get("author") or {}
    return UnknownCommitter(
        name=git_author.get("name") or "unknown",
        email=git_author.get("email") or "",
    )


def unique_authors(commits: Iterable[dict[str, Any]]) -> tuple[Contributor, ...]:
    """Commit authors without duplicates, in first-seen order."""
    seen: dict[Contributor, None] = {}
    for commit in commits:
        seen.setdefault(commit_author(commit), None)
    return tuple(seen)


class ContributorResolver:
    """Classifies pull request commit authors as internal or external."""

    def __init__(
        self,
        pulls: PullsClient,
        repos: ReposClient,
        bot_policy: BotPolicy = BotPolicy.ALL,
        app_bot_login: str | None = None,
    ) -> None:
        """
        Args:
            pulls: Pulls client used to list commits
            repos: Repos client used to list collaborators
            bot_policy: Which bot accounts count as internal
            app_bot_login: The App's own bot login for ``BotPolicy.APP``; may
                instead be passed per call
        """
        self.pulls = pulls
        self.repos = repos
        self.bot_policy = bot_policy
        self.app_bot_login = app_bot_login

    async def classify(
        self,
        pull_request: PullRequestRef,
        credential: Credential,
        bot_login: str | None = None,
    ) -> Classification:
        """
        Classify the commit authors of a pull request.

        Args:
            pull_request: Pull request to classify
            credential: Token with read access to the repository
            bot_login: The App's bot login, overriding the one given at construction

        Raises:
            UpstreamError: If commits or collaborators cannot be fetched
        """
        commits, collaborators = await asyncio.gather(
            self.pulls.commits(pull_request.owner_repo, pull_request.number, credential),
            self.repos.collaborators(pull_request.owner_repo, credential),
        )
        return self.split(unique_authors(commits), collaborators, bot_login)

    def split(
        self,
        contributors: tuple[Contributor, ...],
        collaborators: Iterable[str],
        bot_login: str | None = None,
    ) -> Classification:
        """Split contributors using a collaborator login list."""
        members = {login.lower() for login in collaborators}
        app_login = (bot_login or self.app_bot_login or "").lower()
        internal: set[Contributor] = set()
        external: set[Contributor] = set()

        for contributor in contributors:
            if self.is_internal(contributor, members, app_login):
                internal.add(contributor)
            else:
                external.add(contributor)

        logger.debug(
            "Classified %d contributors: %d internal, %d external",
            len(contributors), len(internal), len(external),
        )
        return Classification(
            contributors=contributors,
            internal=frozenset(internal),
            external=frozenset(external),
        )

    def is_internal(
        self, contributor: Contributor, members: set[str], app_login: str = ""
    ) -> bool:
        match contributor:
            case GitHubUser(username=username):
                return username.lower() in members or self._trusted_bot(contributor, app_login)
            case UnknownCommitter():
                return False

    def _trusted_bot(self, user: GitHubUser, app_login: str) -> bool:
        if not user.is_bot:
            return False
        match self.bot_policy:
            case BotPolicy.ALL:
                return True
            case BotPolicy.APP:
                return bool(app_login) and user.username.lower() == app_login
            case BotPolicy.NONE:
                return False
