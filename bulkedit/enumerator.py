"""Paginated discovery of the records matched by a filter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Set

from .constants import DEFAULT_PAGE_SIZE
from .errors import EnumerationError
from .queues import RateLimitedQueue
from .stores.base import BaseRecordStore

logger = logging.getLogger(__name__)


class RecordEnumerator:
    """Collect every record identifier matching a filter.

    The first page reveals the total; every further page needed to cover it
    is then queued at once and fetched as the enumeration queue admits it.
    That first total is what the run is sized on. A later page reporting a
    larger total only adds the extra pages it implies, so records created
    mid-enumeration are still picked up. Enumeration is complete when the
    queue goes idle.
    """

    def __init__(
        self,
        store: BaseRecordStore,
        queue: RateLimitedQueue,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._store = store
        self._queue = queue
        self.page_size = page_size

    async def collect(self, filter: Dict[str, Any]) -> List[str]:
        """Return the de-duplicated record ids in page order.

        Raises:
            EnumerationError: If any page could not be fetched.
        """
        pages: Dict[int, List[str]] = {}
        scheduled: Set[int] = set()
        futures: List[asyncio.Future] = []

        def schedule(page: int) -> None:
            scheduled.add(page)
            futures.append(self._queue.add(lambda: fetch(page)))

        async def fetch(page: int) -> None:
            result = await self._store.list_records(
                filter,
                limit=self.page_size,
                skip=(page - 1) * self.page_size,
                select="sys.id",
            )
            pages[page] = [item.id for item in result.items]
            logger.debug(
                f"Fetched page {page} with {len(result.items)} ids (total {result.total})"
            )
            last_page = -(-result.total // self.page_size)
            for next_page in range(2, last_page + 1):
                if next_page not in scheduled:
                    schedule(next_page)

        schedule(1)
        await self._queue.on_idle()

        # Read every outcome so no failed page is left unretrieved.
        errors = [e for e in (f.exception() for f in futures) if e is not None]
        if errors:
            error = errors[0]
            logger.error(
                f"Record enumeration failed on {len(errors)} page(s): {error}"
            )
            raise EnumerationError(f"Could not fetch record page: {error}") from error

        ids = [record_id for page in sorted(pages) for record_id in pages[page]]
        unique = list(dict.fromkeys(ids))
        logger.info(
            f"Enumerated {len(unique)} records in {len(pages)} pages"
        )
        return unique
