"""Commit statuses resource client."""

from typing import TYPE_CHECKING, Any

from clabot.paging import DEFAULT_PAGE_SIZE
from clabot.types.pulls import CommitState, CommitStatus
from clabot.types.results import Found, Lookup, NotFound

if TYPE_CHECKING:
    from clabot.paging import PagingClient
    from clabot.transport import Credential, GitHubTransport


def parse_status(data: dict[str, Any]) -> CommitStatus:
    creator = data.get("creator") or {}
    return CommitStatus(
        state=CommitState(data["state"]),
        context=data.get("context", "default"),
        description=data.get("description"),
        target_url=data.get("target_url"),
        creator_login=creator.get("login"),
    )


class StatusesClient:
    """Client for commit statuses."""

    def __init__(
        self,
        transport: "GitHubTransport",
        pager: "PagingClient",
        page_size: int | None = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.transport = transport
        self.pager = pager
        self.page_size = page_size

    async def create(
        self,
        owner_repo: str,
        sha: str,
        state: CommitState,
        context: str,
        description: str,
        target_url: str | None,
        credential: "Credential",
    ) -> dict[str, Any]:
        """
        Set a commit status.

        Returns:
            The raw status object GitHub created
        """
        body: dict[str, Any] = {
            "state": state.value,
            "context": context,
            "description": description,
        }
        if target_url:
            body["target_url"] = target_url

        return await self.transport.request_json(
            "POST", f"/repos/{owner_repo}/statuses/{sha}", credential, body=body
        )

    async def latest(self, owner_repo: str, ref: str, credential: "Credential") -> list[CommitStatus]:
        """Latest status of every context on a ref, from the combined status.

        The combined status pages its ``statuses`` list, so every page is read.
        """
        items = await self.pager.fetch_all(
            f"/repos/{owner_repo}/commits/{ref}/status",
            credential,
            page_size=self.page_size,
            items_key="statuses",
        )
        return [parse_status(item) for item in items]

    async def find(
        self, owner_repo: str, ref: str, context: str, credential: "Credential"
    ) -> Lookup[CommitStatus]:
        """Get the latest status of one context on a ref."""
        for status in await self.latest(owner_repo, ref, credential):
            if status.context == context:
                return Found(status)
        return NotFound(f"status {context!r} on {owner_repo}@{ref}")
