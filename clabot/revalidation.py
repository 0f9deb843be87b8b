"""
Revalidation after a new signature.

When someone signs the CLA, every open pull request whose CLA status is
``failure`` and that carries a commit by the signer is validated again.
"""

import asyncio

from clabot.clients.apps import AppsClient
from clabot.clients.pulls import PullsClient
from clabot.clients.statuses import StatusesClient
from clabot.contributors import unique_authors
from clabot.exceptions import ClaBotError
from clabot.logging import get_logger
from clabot.signatures import SignatureLookup
from clabot.tokens import TokenAuthority
from clabot.transport import Credential
from clabot.types.contributors import GitHubUser
from clabot.types.installations import Installation
from clabot.types.pulls import CommitState, CommitStatus, PullRequestRef
from clabot.types.results import Found
from clabot.types.validation import ValidationResult
from clabot.validation import UrlBuilder, ValidationEngine

logger = get_logger("revalidation")


class RevalidationScheduler:
    """Finds pull requests blocked on a signer and re-runs validation.

    The search walks every installation of the App, then every repository of
    each installation, then every open pull request. All of it shares one
    concurrency limit. An installation or repository that cannot be read is
    logged and skipped.
    """

    def __init__(
        self,
        engine: ValidationEngine,
        apps: AppsClient,
        authority: TokenAuthority,
        pulls: PullsClient,
        statuses: StatusesClient,
        lookup_signatures: SignatureLookup,
        cla_url_builder: UrlBuilder,
        status_url_builder: UrlBuilder,
        max_concurrency: int = 8,
    ) -> None:
        self.engine = engine
        self.apps = apps
        self.authority = authority
        self.pulls = pulls
        self.statuses = statuses
        self.lookup_signatures = lookup_signatures
        self.cla_url_builder = cla_url_builder
        self.status_url_builder = status_url_builder
        self.max_concurrency = max_concurrency

    async def on_signature(self, signer_username: str) -> list[ValidationResult]:
        """
        Re-validate the pull requests blocked on ``signer_username``.

        Raises:
            UpstreamError: If the App's installations cannot be listed
        """
        blocked = await self.find_blocked(signer_username)
        if not blocked:
            logger.info("No pull requests blocked on %s", signer_username)
            return []

        logger.info("Revalidating %d pull requests for %s", len(blocked), signer_username)
        return await self.engine.validate(
            blocked, self.cla_url_builder, self.status_url_builder, self.lookup_signatures
        )

    async def find_blocked(self, signer_username: str) -> dict[PullRequestRef, Credential]:
        """Open pull requests with a failed CLA status and a commit by the signer."""
        limit = asyncio.Semaphore(self.max_concurrency)
        installations = await self.apps.list_installations()
        found = await asyncio.gather(
            *(self._search_installation(i, signer_username, limit) for i in installations)
        )
        blocked: dict[PullRequestRef, Credential] = {}
        for batch in found:
            blocked.update(batch)
        return blocked

    async def _search_installation(
        self, installation: Installation, signer: str, limit: asyncio.Semaphore
    ) -> dict[PullRequestRef, Credential]:
        try:
            async with limit:
                token = await self.authority.installation_token(installation.installation_id)
            async with limit:
                repositories = await self.apps.installation_repositories(token)
        except ClaBotError as e:
            logger.warning(
                "Skipping installation %s (%s): %s",
                installation.installation_id, installation.account_login, e.message,
            )
            return {}

        found = await asyncio.gather(
            *(self._search_repository(r.owner_repo, signer, token, limit) for r in repositories)
        )
        blocked: dict[PullRequestRef, Credential] = {}
        for batch in found:
            blocked.update(batch)
        return blocked

    async def _search_repository(
        self, owner_repo: str, signer: str, credential: Credential, limit: asyncio.Semaphore
    ) -> dict[PullRequestRef, Credential]:
        try:
            async with limit:
                pull_requests = await self.pulls.list_open(owner_repo, credential)
        except ClaBotError as e:
            logger.warning("Skipping repository %s: %s", owner_repo, e.message)
            return {}

        checks = await asyncio.gather(
            *(self._is_blocked_on(pr, signer, credential, limit) for pr in pull_requests)
        )
        return {pr: credential for pr, blocked in zip(pull_requests, checks) if blocked}

    async def _is_blocked_on(
        self,
        pull_request: PullRequestRef,
        signer: str,
        credential: Credential,
        limit: asyncio.Semaphore,
    ) -> bool:
        try:
            async with limit:
                commits, status = await asyncio.gather(
                    self.pulls.commits(pull_request.owner_repo, pull_request.number, credential),
                    self.statuses.find(
                        pull_request.owner_repo,
                        pull_request.head_sha,
                        self.engine.status_context,
                        credential,
                    ),
                )
        except ClaBotError as e:
            logger.warning("Skipping %s: %s", pull_request, e.message)
            return False

        match status:
            case Found(value=CommitStatus(state=CommitState.FAILURE)):
                pass
            case _:
                return False

        authors = {
            author.username.lower()
            for author in unique_authors(commits)
            if isinstance(author, GitHubUser)
        }
        hit = signer.lower() in authors
        if hit:
            logger.debug("%s is blocked on %s", pull_request, signer)
        return hit
