"""
Paginated GET for GitHub collections.

GitHub paginates with numbered pages and advertises the last one in an
RFC 5988 ``Link`` header, so once page 1 is in, every remaining page can be
requested at the same time.
"""

import asyncio
import re
from typing import Any

import httpx

from clabot.exceptions import UpstreamError
from clabot.logging import get_logger
from clabot.transport import Credential, GitHubTransport

DEFAULT_PAGE_SIZE = 100

_LINK_RE = re.compile(r'<(?P<url>[^>]*)>\s*;\s*rel="?(?P<rel>[^",;]+)"?')

logger = get_logger("paging")


def parse_link_header(value: str | None) -> dict[str, str]:
    """
    Parse a ``Link`` header into a mapping of rel -> URL.

    Malformed entries are skipped.
    """
    if not value:
        return {}
    links: dict[str, str] = {}
    for part in value.split(","):
        match = _LINK_RE.search(part)
        if match:
            links[match.group("rel").strip()] = match.group("url")
    return links


def last_page_number(link_header: str | None) -> int:
    """
    Return the page number of ``rel="last"``, or 1 if it cannot be determined.
    """
    last_url = parse_link_header(link_header).get("last")
    if not last_url:
        return 1
    try:
        page = httpx.URL(last_url).params.get("page")
        return max(int(page), 1) if page is not None else 1
    except (ValueError, httpx.InvalidURL):
        return 1


class PagingClient:
    """Fetches every page of a GitHub collection, remaining pages in parallel."""

    def __init__(self, transport: GitHubTransport, max_concurrency: int = 8) -> None:
        """
        Args:
            transport: GitHub transport for making requests
            max_concurrency: Maximum number of pages fetched at once
        """
        self.transport = transport
        self.max_concurrency = max_concurrency

    async def fetch_all(
        self,
        path: str,
        credential: Credential,
        page_size: int | None = DEFAULT_PAGE_SIZE,
        params: dict[str, Any] | None = None,
        items_key: str | None = None,
    ) -> list[Any]:
        """
        Fetch every item of a paginated collection.

        Args:
            path: API path of the collection
            credential: Token to authenticate with
            page_size: ``per_page`` sent on every page; None leaves GitHub's default
            params: Extra query parameters sent on every page
            items_key: Key holding the item list when the response is an object
                (e.g. "repositories" for /installation/repositories)

        Returns:
            Items in page order

        Raises:
            UpstreamError: If any page fails; partial results are discarded
        """
        first = await self._fetch_page(path, credential, 1, page_size, params)
        last_page = last_page_number(first.headers.get("Link"))
        items = self._items(first, items_key)

        if last_page <= 1:
            return items

        logger.debug("Fetching %s: %d pages", path, last_page)
        limit = asyncio.Semaphore(self.max_concurrency)

        async def fetch(page: int) -> list[Any]:
            async with limit:
                response = await self._fetch_page(path, credential, page, page_size, params)
            return self._items(response, items_key)

        tasks = [asyncio.ensure_future(fetch(page)) for page in range(2, last_page + 1)]
        try:
            pages = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for page_items in pages:
            items.extend(page_items)
        return items

    async def _fetch_page(
        self,
        path: str,
        credential: Credential,
        page: int,
        page_size: int | None,
        params: dict[str, Any] | None,
    ) -> httpx.Response:
        query: dict[str, Any] = dict(params or {})
        query["page"] = page
        if page_size is not None:
            query["per_page"] = page_size
        return await self.transport.request("GET", path, credential, params=query)

    @staticmethod
    def _items(response: httpx.Response, items_key: str | None) -> list[Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(response.status_code, f"Invalid JSON: {e}") from e
        if items_key is not None:
            data = data.get(items_key) if isinstance(data, dict) else None
        if not isinstance(data, list):
            raise UpstreamError(response.status_code, "Expected a JSON array of items")
        return data
