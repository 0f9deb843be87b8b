"""Issues resource client (comments and labels on pull requests)."""

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from clabot.clients.repos import parse_label
from clabot.exceptions import NotFoundError
from clabot.paging import DEFAULT_PAGE_SIZE
from clabot.types.repos import Label

if TYPE_CHECKING:
    from clabot.paging import PagingClient
    from clabot.transport import Credential, GitHubTransport


class IssuesClient:
    """Client for issue comments and issue labels.

    Every pull request is also an issue with the same number.
    """

    def __init__(
        self,
        transport: "GitHubTransport",
        pager: "PagingClient",
        page_size: int | None = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.transport = transport
        self.pager = pager
        self.page_size = page_size

    async def comments(
        self, owner_repo: str, number: int, credential: "Credential"
    ) -> list[dict[str, Any]]:
        """List every comment on an issue."""
        return await self.pager.fetch_all(
            f"/repos/{owner_repo}/issues/{number}/comments",
            credential,
            page_size=self.page_size,
        )

    async def create_comment(
        self, owner_repo: str, number: int, body: str, credential: "Credential"
    ) -> dict[str, Any]:
        """Post a comment on an issue."""
        return await self.transport.request_json(
            "POST",
            f"/repos/{owner_repo}/issues/{number}/comments",
            credential,
            body={"body": body},
        )

    async def labels(
        self, owner_repo: str, number: int, credential: "Credential"
    ) -> list[Label]:
        """List the labels applied to an issue."""
        items = await self.pager.fetch_all(
            f"/repos/{owner_repo}/issues/{number}/labels",
            credential,
            page_size=self.page_size,
        )
        return [parse_label(item) for item in items]

    async def add_labels(
        self, owner_repo: str, number: int, names: list[str], credential: "Credential"
    ) -> list[Label]:
        """Apply labels to an issue; returns the issue's labels afterwards."""
        data = await self.transport.request_json(
            "POST",
            f"/repos/{owner_repo}/issues/{number}/labels",
            credential,
            body={"labels": names},
        )
        return [parse_label(item) for item in data or []]

    async def remove_label(
        self, owner_repo: str, number: int, name: str, credential: "Credential"
    ) -> bool:
        """
        Remove a label from an issue.

        Returns:
            False if the label was not on the issue
        """
        try:
            await self.transport.request(
                "DELETE",
                f"/repos/{owner_repo}/issues/{number}/labels/{quote(name, safe='')}",
                credential,
            )
        except NotFoundError:
            return False
        return True
