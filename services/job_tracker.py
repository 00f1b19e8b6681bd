import asyncio
import json
import logging
from typing import Dict, Optional

from config.redis_client import redis_client, RedisClient
from config.settings import settings

logger = logging.getLogger(__name__)


class JobTracker:
    """Completion signals for generation jobs: in-process futures plus a Redis broadcast"""

    def __init__(self, redis: RedisClient = None):
        self.redis = redis or redis_client
        self._pending: Dict[str, asyncio.Future] = {}

    def begin(self, key: str) -> asyncio.Future:
        """Register a running job; waiters on the same key share one future"""
        future = self._pending.get(key)
        if future is None or future.done():
            future = asyncio.get_running_loop().create_future()
            self._pending[key] = future
        return future

    def is_running(self, key: str) -> bool:
        future = self._pending.get(key)
        return future is not None and not future.done()

    async def complete(self, key: str, record: Dict):
        """Resolve the job's future with its trailing record and broadcast it"""
        future = self._pending.pop(key, None)
        if future is not None and not future.done():
            future.set_result(record)
        await self.redis.publish_job_event({"job": key, "record": record})
        logger.debug(f"Job {key} settled with status {record.get('status')}")

    async def subscribe(self):
        """Open a completion-channel subscription, or None when Redis is unavailable"""
        if not self.redis.is_connected:
            return None
        return await self.redis.subscribe_to_channels([settings.JOB_COMPLETION_CHANNEL])

    async def unsubscribe(self, pubsub):
        await pubsub.unsubscribe()
        await pubsub.close()

    async def wait(self, key: str, timeout: float, subscription=None) -> Optional[Dict]:
        """
        Await a job's completion record.

        A subscription opened beforehand with subscribe() also sees records
        broadcast before this call. Returns None when no push-based signal
        arrives within the timeout, or when neither an in-process future nor
        Redis is available.
        """
        future = self._pending.get(key)
        if future is not None:
            try:
                return await asyncio.wait_for(asyncio.shield(future), timeout)
            except asyncio.TimeoutError:
                return None

        if subscription is not None:
            return await self._wait_for_broadcast(key, timeout, subscription)
        if not self.redis.is_connected:
            return None
        subscription = await self.subscribe()
        try:
            return await self._wait_for_broadcast(key, timeout, subscription)
        finally:
            await self.unsubscribe(subscription)

    async def _wait_for_broadcast(self, key: str, timeout: float, pubsub) -> Optional[Dict]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=remaining)
            if not message or message.get("type") != "message":
                continue
            try:
                payload = json.loads(message["data"])
            except (TypeError, json.JSONDecodeError):
                logger.warning(f"Ignoring malformed completion message: {message.get('data')!r}")
                continue
            if payload.get("job") == key:
                return payload.get("record")


# Global job tracker instance
job_tracker = JobTracker()
