import redis.asyncio as aioredis
from redis.asyncio import Redis
from typing import List, Dict, Optional
import json
import logging

from config.settings import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client wrapper for broadcasting generation job completions"""

    def __init__(self):
        self.pubsub_client: Optional[Redis] = None

    @property
    def is_connected(self) -> bool:
        return self.pubsub_client is not None

    async def connect(self):
        """Initialize Redis connection"""
        try:
            self.pubsub_client = await aioredis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True
            )
            await self.pubsub_client.ping()
            logger.info("✅ Redis connection initialized")
        except Exception as e:
            # completion waits fall back to polling the store
            logger.error(f"❌ Redis connection failed, job broadcasts disabled: {e}")
            self.pubsub_client = None

    async def disconnect(self):
        """Close Redis connection"""
        if self.pubsub_client:
            await self.pubsub_client.close()
            self.pubsub_client = None
        logger.info("🔌 Redis connection closed")

    async def ping(self) -> bool:
        if not self.pubsub_client:
            return False
        try:
            return bool(await self.pubsub_client.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def publish_job_event(self, message: Dict, channel: str = None):
        """Publish a job completion record"""
        if not self.pubsub_client:
            return
        channel = channel or settings.JOB_COMPLETION_CHANNEL
        try:
            await self.pubsub_client.publish(channel, json.dumps(message))
            logger.debug(f"📤 Published to {channel}: {message.get('job')}")
        except Exception as e:
            logger.error(f"Error publishing to {channel}: {e}")

    async def subscribe_to_channels(self, channels: List[str]):
        """Subscribe to multiple channels"""
        pubsub = self.pubsub_client.pubsub()
        await pubsub.subscribe(*channels)
        logger.info(f"📡 Subscribed to channels: {channels}")
        return pubsub


# Global Redis client instance
redis_client = RedisClient()
