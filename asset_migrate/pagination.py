"""Link-header pagination over asset service collections."""

from collections.abc import Callable
from typing import Any

import httpx
import structlog

from asset_migrate.auth import Token
from asset_migrate.client import AssetClient
from asset_migrate.exceptions import (
    LinkHeaderError,
    PaginationLimitError,
    TransportError,
)

logger = structlog.get_logger(__name__)

LINK_HEADER = "Link"

PageCallback = Callable[[int, int], None]


def parse_continuation_link(value: str | None) -> str | None:
    """Extract the continuation URL from a Link header value.

    The URL is the text strictly between the first ``<`` and the first ``>``
    that follows it. A missing or blank header means there is no next page.

    Args:
        value: Raw Link header value.

    Returns:
        The continuation URL, or None if the header is absent.

    Raises:
        LinkHeaderError: If the header is present but holds no ``<url>``.
    """
    if value is None or not value.strip():
        return None

    start = value.find("<")
    if start == -1:
        raise LinkHeaderError(f"Link header has no '<': {value!r}")

    end = value.find(">", start + 1)
    if end == -1:
        raise LinkHeaderError(f"Link header has no '>' after '<': {value!r}")

    url = value[start + 1 : end].strip()
    if not url:
        raise LinkHeaderError(f"Link header holds an empty URL: {value!r}")
    return url


async def fetch_all(
    client: AssetClient,
    start_url: str,
    token: Token,
    expected_count: int,
    *,
    max_pages: int = 10000,
    on_page: PageCallback | None = None,
) -> list[dict[str, Any]]:
    """Fetch every record of a collection by following continuation links.

    Pages are fetched strictly one after another; any failed page aborts the
    whole collection.

    Args:
        client: Connected asset client.
        start_url: URL of the first page.
        token: Token of the tenant owning the collection.
        expected_count: Record count declared by the listing, for progress only.
        max_pages: Pages fetched before giving up on a server that never stops.
        on_page: Called with (loaded_so_far, expected_count) after each page.

    Returns:
        All records in page order.

    Raises:
        TransportError: If a page fails, is malformed, or max_pages is exceeded.
    """
    _logger = logger.bind(url=start_url, expected=expected_count)
    records: list[dict[str, Any]] = []
    next_url: str | None = start_url
    pages = 0

    while next_url is not None:
        if pages >= max_pages:
            raise PaginationLimitError(
                f"Still paginating after {max_pages} pages",
                method="GET",
                url=next_url,
            )

        current_url = next_url
        response = await client.call(current_url, token)
        pages += 1

        page = response.body
        if page is None:
            page = []
        elif not isinstance(page, list):
            raise TransportError(
                f"Expected a list of records, got {type(page).__name__}",
                method="GET",
                url=current_url,
            )

        records.extend(page)
        _logger.debug("Loaded page", page=pages, loaded=len(records))
        if on_page is not None:
            on_page(len(records), expected_count)

        link = parse_continuation_link(response.headers.get(LINK_HEADER))
        next_url = str(httpx.URL(current_url).join(link)) if link else None

    _logger.info("Finished loading collection", pages=pages, loaded=len(records))
    return records
