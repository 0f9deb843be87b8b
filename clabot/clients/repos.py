"""Repositories resource client."""

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from clabot.exceptions import NotFoundError
from clabot.paging import DEFAULT_PAGE_SIZE
from clabot.types.repos import Label, Repository
from clabot.types.results import Found, Lookup, NotFound

if TYPE_CHECKING:
    from clabot.paging import PagingClient
    from clabot.transport import Credential, GitHubTransport


def parse_repository(data: dict[str, Any]) -> Repository:
    return Repository(
        owner_repo=data["full_name"],
        private=bool(data.get("private", False)),
        default_branch=data.get("default_branch", "main"),
    )


def parse_label(data: dict[str, Any]) -> Label:
    return Label(name=data["name"], color=data.get("color", ""))


class ReposClient:
    """Client for repository-level operations."""

    def __init__(
        self,
        transport: "GitHubTransport",
        pager: "PagingClient",
        page_size: int | None = DEFAULT_PAGE_SIZE,
    ) -> None:
        """
        Initialize the repos client.

        Args:
            transport: GitHub transport for single-object requests
            pager: Paging client for collections
            page_size: ``per_page`` used for collections
        """
        self.transport = transport
        self.pager = pager
        self.page_size = page_size

    async def collaborators(self, owner_repo: str, credential: "Credential") -> list[str]:
        """
        List the logins of everyone with access to a repository.

        GitHub includes access granted through the organization.
        """
        items = await self.pager.fetch_all(
            f"/repos/{owner_repo}/collaborators",
            credential,
            page_size=self.page_size,
        )
        return [item["login"] for item in items if item.get("login")]

    async def find_label(
        self, owner_repo: str, name: str, credential: "Credential"
    ) -> Lookup[Label]:
        """Look up a label defined on the repository."""
        try:
            data = await self.transport.request_json(
                "GET", f"/repos/{owner_repo}/labels/{quote(name, safe='')}", credential
            )
        except NotFoundError:
            return NotFound(f"label {name!r} in {owner_repo}")
        return Found(parse_label(data))

    async def create_label(
        self, owner_repo: str, name: str, color: str, credential: "Credential"
    ) -> Label:
        """Define a new label on the repository."""
        data = await self.transport.request_json(
            "POST",
            f"/repos/{owner_repo}/labels",
            credential,
            body={"name": name, "color": color},
        )
        return parse_label(data)
