"""Read-before-write guard preventing duplicate generation output."""

import logging
from typing import Sequence, Any

from config.store_client import StoreClient

logger = logging.getLogger(__name__)


def should_skip(existing_records: Sequence[Any]) -> bool:
    """True when a freshly queried snapshot already holds output for the job."""
    return len(existing_records) > 0


class IdempotencyGuard:
    """Decides from persisted state whether a course job must write nothing."""

    def __init__(self, store: StoreClient):
        self.store = store

    async def check_course(self, collection_id: int) -> bool:
        # UpstreamUnavailable propagates: without a snapshot the job must not write
        existing = await self.store.list_course_modules(collection_id)
        skip = should_skip(existing)
        if skip:
            logger.warning(
                f"Course for collection {collection_id} already exists "
                f"({len(existing)} modules). Skipping generation."
            )
        return skip
