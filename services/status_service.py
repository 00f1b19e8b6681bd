import asyncio
import logging
from typing import Dict, List, Tuple

from analytics.performance_analyzer import is_collection_complete
from config.settings import settings
from config.store_client import StoreClient
from content.content_validator import JobKind
from content.exceptions import UpstreamUnavailable
from content.generator import job_key
from content.identifiers import encode_quiz_id
from content.topics import topic_label
from models.schemas import CollectionOverviewResponse, PartitionStatus
from services.job_tracker import JobTracker

logger = logging.getLogger(__name__)


class StatusService:
    """Generated/taken checks for quiz partitions and the overall completion gate"""

    def __init__(self, store: StoreClient, tracker: JobTracker, poll_interval: float = None):
        self.store = store
        self.tracker = tracker
        self.poll_interval = poll_interval if poll_interval is not None else settings.STATUS_POLL_INTERVAL_SECONDS

    async def partition_status(self, collection_id: int, partition_index: int) -> Tuple[bool, int]:
        """
        Return (generated, answered_count) for one partition.

        An unreachable store reports "not generated, nothing answered".
        """
        try:
            questions = await self.store.list_quiz_questions(collection_id, partition_index)
        except UpstreamUnavailable as e:
            logger.warning(
                f"Status check failed for collection {collection_id} partition {partition_index}: {e.message}"
            )
            return False, 0
        answered = sum(1 for q in questions if q.answered)
        return len(questions) > 0, answered

    async def partition_statuses(
        self,
        collection_id: int,
        partition_indices: List[int],
    ) -> Dict[int, Tuple[bool, int]]:
        """One concurrent query per partition"""
        results = await asyncio.gather(
            *(self.partition_status(collection_id, index) for index in partition_indices)
        )
        return dict(zip(partition_indices, results))

    async def is_complete_through(self, collection_id: int, through_partition: int) -> bool:
        indices = list(range(1, through_partition + 1))
        statuses = await self.partition_statuses(collection_id, indices)
        answered = {index: count for index, (_, count) in statuses.items()}
        return is_collection_complete(answered, through_partition)

    async def collection_overview(self, collection_id: int, last_partition: int) -> CollectionOverviewResponse:
        partitions = [
            p for p in await self.store.list_topic_partitions(collection_id)
            if p.partition_index <= last_partition
        ]

        # gate covers every index up to last_partition, including missing ones
        indices = sorted({p.partition_index for p in partitions} | set(range(1, last_partition + 1)))
        statuses = await self.partition_statuses(collection_id, indices)

        answered = {index: count for index, (_, count) in statuses.items()}
        views = [
            PartitionStatus(
                partition_index=p.partition_index,
                quiz_id=encode_quiz_id(collection_id, p.partition_index),
                topics=[topic_label(t) for t in p.topics],
                generated=statuses[p.partition_index][0],
                taken=statuses[p.partition_index][1] > 0,
            )
            for p in partitions
        ]
        return CollectionOverviewResponse(
            collection_id=collection_id,
            last_partition=last_partition,
            partitions=views,
            all_completed=is_collection_complete(answered, last_partition),
        )

    async def wait_for_quiz(self, collection_id: int, partition_index: int, timeout: float) -> bool:
        """
        Wait until the partition's quiz exists or the timeout passes.

        Prefers the job's completion signal; polls the store only when no
        push-based signal is available. The completion channel is subscribed
        before the first status read so a broadcast in between is not lost.
        """
        if timeout <= 0:
            generated, _ = await self.partition_status(collection_id, partition_index)
            return generated

        key = job_key(JobKind.QUIZ, collection_id, partition_index)
        subscription = None
        if not self.tracker.is_running(key):
            subscription = await self.tracker.subscribe()
        try:
            generated, _ = await self.partition_status(collection_id, partition_index)
            if generated:
                return True

            if subscription is not None or self.tracker.is_running(key):
                await self.tracker.wait(key, timeout, subscription)
                generated, _ = await self.partition_status(collection_id, partition_index)
                return generated

            loop = asyncio.get_running_loop()
            deadline = loop.time() + timeout
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return False
                await asyncio.sleep(min(self.poll_interval, remaining))
                generated, _ = await self.partition_status(collection_id, partition_index)
                if generated:
                    return True
        finally:
            if subscription is not None:
                await self.tracker.unsubscribe(subscription)
