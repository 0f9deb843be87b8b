"""GitHub App resource client (installations and the App's own identity)."""

import asyncio
from typing import TYPE_CHECKING, Any

from clabot.clients.repos import parse_repository
from clabot.paging import DEFAULT_PAGE_SIZE
from clabot.types.contributors import BOT_SUFFIX
from clabot.types.installations import Installation
from clabot.types.repos import Repository

if TYPE_CHECKING:
    from clabot.paging import PagingClient
    from clabot.tokens import TokenAuthority
    from clabot.transport import Credential, GitHubTransport


def parse_installation(data: dict[str, Any]) -> Installation:
    account = data.get("account") or {}
    return Installation(
        installation_id=int(data["id"]),
        account_login=account.get("login", ""),
    )


class AppsClient:
    """Client for App-level endpoints.

    App-level calls authenticate with a freshly minted App JWT; repository
    listing uses an installation token.
    """

    def __init__(
        self,
        transport: "GitHubTransport",
        pager: "PagingClient",
        authority: "TokenAuthority",
        page_size: int | None = DEFAULT_PAGE_SIZE,
        bot_login: str | None = None,
    ) -> None:
        """
        Initialize the apps client.

        Args:
            transport: GitHub transport
            pager: Paging client for collections
            authority: Token authority minting App JWTs
            page_size: ``per_page`` used for collections
            bot_login: Login the App acts as; looked up from GET /app when None
        """
        self.transport = transport
        self.pager = pager
        self.authority = authority
        self.page_size = page_size
        self._bot_login = bot_login
        self._bot_login_lock = asyncio.Lock()

    async def get_app(self) -> dict[str, Any]:
        """Get the authenticated App."""
        return await self.transport.request_json("GET", "/app", self.authority.app_token())

    async def bot_login(self) -> str:
        """The login under which the App's comments and statuses appear."""
        if self._bot_login is not None:
            return self._bot_login
        async with self._bot_login_lock:
            if self._bot_login is None:
                app = await self.get_app()
                self._bot_login = f"{app['slug']}{BOT_SUFFIX}"
        return self._bot_login

    async def list_installations(self) -> list[Installation]:
        """List every installation of the App."""
        items = await self.pager.fetch_all(
            "/app/installations",
            self.authority.app_token(),
            page_size=self.page_size,
        )
        return [parse_installation(item) for item in items]

    async def installation_repositories(self, credential: "Credential") -> list[Repository]:
        """List the repositories an installation token can reach."""
        items = await self.pager.fetch_all(
            "/installation/repositories",
            credential,
            page_size=self.page_size,
            items_key="repositories",
        )
        return [parse_repository(item) for item in items]
