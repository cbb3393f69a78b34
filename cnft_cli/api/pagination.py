"""Page-based auto-pagination over a DAS listing method.

Pages are requested in ascending order starting at 1 and concatenated in
that order. The loop ends on the first page shorter than the limit. No
deduplication is done: if the index changes between pages, the result can
contain duplicates or gaps. There is no page ceiling either, so an API that
always returns full pages never terminates.
"""

import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from .retry import BackoffPolicy, retry_with_backoff
from .validation import MAX_PAGINATION_LIMIT, validate_limit

logger = logging.getLogger(__name__)

PageOperation = Callable[..., Awaitable[Any]]


def page_items(page: Any) -> List[Any]:
    """Items of a page that is either a mapping or an object with `items`."""
    if isinstance(page, Mapping):
        return list(page.get("items") or [])
    return list(page.items)


async def fetch_all(
    operation: PageOperation,
    params: Optional[Mapping[str, Any]] = None,
    paginate: bool = True,
    page_limit: int = MAX_PAGINATION_LIMIT,
    policy: Optional[BackoffPolicy] = None,
    should_retry: Optional[Callable[[Exception], bool]] = None,
) -> List[Any]:
    """Collect every item of a paged listing.

    Args:
        operation: Called as `operation(**params, page=p, limit=page_limit)`
        params: Fixed query parameters sent with every page
        paginate: When False, a single un-retried request for page 1
        page_limit: Page size; a shorter page ends the loop
        policy: Backoff policy for each page request
        should_retry: Filter for retryable errors; others propagate after one call

    Raises:
        RetryExhaustedError: If a page keeps failing; earlier pages are discarded
    """
    validate_limit(page_limit)
    params = dict(params or {})

    if not paginate:
        page = await operation(**{**params, "page": 1, "limit": page_limit})
        items = page_items(page)
        logger.debug(f"Fetched a single page of {len(items)} items")
        return items

    results: List[Any] = []
    page_number = 1
    while True:
        page_params = {**params, "page": page_number, "limit": page_limit}
        page = await retry_with_backoff(
            lambda: operation(**page_params), policy, should_retry
        )
        items = page_items(page)
        results.extend(items)
        logger.debug(f"Page {page_number}: {len(items)} items ({len(results)} total)")

        if len(items) < page_limit:
            break
        page_number += 1

    logger.info(f"Fetched {len(results)} items across {page_number} page(s)")
    return results
