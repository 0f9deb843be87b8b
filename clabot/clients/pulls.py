"""Pull requests resource client."""

from typing import TYPE_CHECKING, Any

from clabot.exceptions import NotFoundError
from clabot.paging import DEFAULT_PAGE_SIZE
from clabot.types.pulls import PullRequestRef, PullRequestState
from clabot.types.results import Found, Lookup, NotFound

if TYPE_CHECKING:
    from clabot.paging import PagingClient
    from clabot.transport import Credential, GitHubTransport


def parse_pull_request(data: dict[str, Any], owner_repo: str | None = None) -> PullRequestRef:
    """Parse a pull request object from the REST API or a webhook payload."""
    if owner_repo is None:
        owner_repo = data["base"]["repo"]["full_name"]
    return PullRequestRef(
        owner_repo=owner_repo,
        number=int(data["number"]),
        head_sha=data["head"]["sha"],
        state=PullRequestState(data.get("state", "open")),
    )


class PullsClient:
    """Client for pull request operations."""

    def __init__(
        self,
        transport: "GitHubTransport",
        pager: "PagingClient",
        page_size: int | None = DEFAULT_PAGE_SIZE,
    ) -> None:
        """
        Initialize the pulls client.

        Args:
            transport: GitHub transport for single-object requests
            pager: Paging client for collections
            page_size: ``per_page`` used for collections
        """
        self.transport = transport
        self.pager = pager
        self.page_size = page_size

    async def get(
        self, owner_repo: str, number: int, credential: "Credential"
    ) -> PullRequestRef:
        """
        Get the current state of a pull request.

        Raises:
            NotFoundError: If the pull request or repository does not exist
        """
        data = await self.transport.request_json(
            "GET", f"/repos/{owner_repo}/pulls/{number}", credential
        )
        return parse_pull_request(data, owner_repo)

    async def find(
        self, owner_repo: str, number: int, credential: "Credential"
    ) -> Lookup[PullRequestRef]:
        """Like ``get`` but reports absence as ``NotFound``."""
        try:
            return Found(await self.get(owner_repo, number, credential))
        except NotFoundError:
            return NotFound(f"{owner_repo}#{number}")

    async def list_open(
        self, owner_repo: str, credential: "Credential"
    ) -> list[PullRequestRef]:
        """List every open pull request of a repository."""
        items = await self.pager.fetch_all(
            f"/repos/{owner_repo}/pulls",
            credential,
            page_size=self.page_size,
            params={"state": "open"},
        )
        return [parse_pull_request(item, owner_repo) for item in items]

    async def commits(
        self, owner_repo: str, number: int, credential: "Credential"
    ) -> list[dict[str, Any]]:
        """List the commits of a pull request as raw API objects."""
        return await self.pager.fetch_all(
            f"/repos/{owner_repo}/pulls/{number}/commits",
            credential,
            page_size=self.page_size,
        )
