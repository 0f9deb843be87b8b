"""
clabot facade.

Wires the transport, token authority, resource clients, validation engine,
revalidation scheduler and webhook handler for one GitHub App.
"""

from collections.abc import Mapping
from typing import Any

import httpx

from clabot.clients import AppsClient, IssuesClient, PullsClient, ReposClient, StatusesClient
from clabot.config import ClaBotConfig
from clabot.contributors import ContributorResolver
from clabot.logging import get_logger
from clabot.paging import PagingClient
from clabot.revalidation import RevalidationScheduler
from clabot.signatures import SignatureStore, resolve
from clabot.signers import RS256Signer
from clabot.tokens import TokenAuthority
from clabot.transport import Credential, GitHubTransport, RetryConfig
from clabot.types.pulls import PullRequestRef
from clabot.types.signatures import ClaSignature, Contact
from clabot.types.validation import ValidationResult
from clabot.validation import UrlBuilder, ValidationEngine
from clabot.webhooks import WebhookHandler

logger = get_logger("client")


class ClaBot:
    """
    CLA bot for one GitHub App.

    Example:
        ```python
        import asyncio
        from clabot import ClaBot, ClaBotConfig, InMemorySignatureStore

        async def main():
            store = InMemorySignatureStore()
            async with ClaBot(ClaBotConfig.from_env(), store) as bot:
                results = await bot.on_signature("octocat")

        asyncio.run(main())
        ```
    """

    def __init__(
        self,
        config: ClaBotConfig,
        signature_store: SignatureStore,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_config: RetryConfig | None = None,
        signer: RS256Signer | None = None,
    ) -> None:
        """
        Initialize the bot.

        Args:
            config: App settings
            signature_store: Where signatures are looked up and recorded
            transport: Custom httpx transport (e.g. ``FakeGitHub().transport()`` in tests)
            retry_config: Automatic retry settings (off by default)
            signer: Signer to use instead of loading ``config.private_key_pem``

        Raises:
            ConfigurationError: If the private key cannot be loaded
        """
        self.config = config
        self.signature_store = signature_store
        self.signer = signer or RS256Signer.from_pem(config.private_key_pem)

        self._transport = GitHubTransport(
            base_url=config.api_url,
            timeout=config.timeout,
            max_concurrency=config.max_concurrency,
            retry_config=retry_config,
            transport=transport,
        )
        self.pager = PagingClient(self._transport, max_concurrency=config.max_concurrency)
        self.authority = TokenAuthority(config.app_id, self.signer, self._transport)

        page_size = config.page_size
        self.apps = AppsClient(
            self._transport, self.pager, self.authority, page_size, bot_login=config.bot_login
        )
        self.pulls = PullsClient(self._transport, self.pager, page_size)
        self.repos = ReposClient(self._transport, self.pager, page_size)
        self.issues = IssuesClient(self._transport, self.pager, page_size)
        self.statuses = StatusesClient(self._transport, self.pager, page_size)

        self.resolver = ContributorResolver(
            self.pulls, self.repos, config.bot_policy, app_bot_login=config.bot_login
        )
        self.engine = ValidationEngine(
            self.pulls,
            self.statuses,
            self.issues,
            self.repos,
            self.resolver,
            self.apps,
            status_context=config.status_context,
            organization_name=config.organization_name,
            labels=config.labels,
            max_concurrency=config.max_concurrency,
        )
        self.scheduler = RevalidationScheduler(
            self.engine,
            self.apps,
            self.authority,
            self.pulls,
            self.statuses,
            signature_store.lookup_signatures,
            self.cla_url,
            self.status_url,
            max_concurrency=config.max_concurrency,
        )
        self.webhooks = WebhookHandler(
            self.engine,
            self.authority,
            self.apps.bot_login,
            signature_store.lookup_signatures,
            self.cla_url,
            self.status_url,
            secret=config.webhook_secret,
        )

    @classmethod
    def from_env(
        cls,
        signature_store: SignatureStore,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ClaBot":
        """
        Create a bot configured from ``CLABOT_*`` environment variables.

        Raises:
            ConfigurationError: If required environment variables are missing
        """
        return cls(ClaBotConfig.from_env(), signature_store, transport=transport)

    def cla_url(self, pull_request: PullRequestRef) -> str:
        """Signing link shown in comments."""
        return self.config.cla_url

    def status_url(self, pull_request: PullRequestRef) -> str:
        """``target_url`` of the commit statuses."""
        return self.config.cla_url

    @property
    def transport(self) -> GitHubTransport:
        """Get the underlying GitHub transport (for advanced use cases)."""
        return self._transport

    async def validate(
        self,
        pull_requests: Mapping[PullRequestRef, Credential],
        cla_url_builder: UrlBuilder | None = None,
        status_url_builder: UrlBuilder | None = None,
    ) -> list[ValidationResult]:
        """Validate pull requests against the signature store."""
        return await self.engine.validate(
            pull_requests,
            cla_url_builder or self.cla_url,
            status_url_builder or self.status_url,
            self.signature_store.lookup_signatures,
        )

    async def validate_pull_request(
        self, installation_id: int, owner_repo: str, number: int
    ) -> ValidationResult:
        """Validate one pull request using its installation's token."""
        token = await self.authority.installation_token(installation_id)
        pull_request = await self.pulls.get(owner_repo, number, token)
        results = await self.validate({pull_request: token})
        return results[0]

    async def handle_webhook(
        self, event_name: str, body: bytes, signature: str | None = None
    ) -> ValidationResult | None:
        """Process a webhook delivery; see ``WebhookHandler.handle``."""
        return await self.webhooks.handle(event_name, body, signature)

    async def on_signature(self, signer_username: str) -> list[ValidationResult]:
        """Re-validate the pull requests blocked on a new signer."""
        return await self.scheduler.on_signature(signer_username)

    async def record_signature(
        self, contact: Contact, cla_version: str
    ) -> tuple[ClaSignature, list[ValidationResult]]:
        """
        Record a signature, then re-validate the signer's blocked pull requests.

        Returns:
            The stored signature and the revalidation results
        """
        signature = await resolve(self.signature_store.record_signature(contact, cla_version))
        logger.info("%s signed CLA version %s", signature.github_username, cla_version)
        results = await self.on_signature(signature.github_username)
        return signature, results

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._transport.close()

    async def __aenter__(self) -> "ClaBot":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit - closes the client."""
        await self.close()
