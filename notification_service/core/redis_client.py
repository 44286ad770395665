import json
import time
from typing import Any, Dict, List, Optional
import redis.asyncio as redis
from redis.asyncio import ConnectionPool
import logging

from notification_service.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Redis client for queue management and per-message locks.

    Layout per queue name:
        <queue>             list, LPUSH producers / BRPOPLPUSH consumers
        <queue>:processing  list of claimed, unacknowledged messages
        <queue>:delayed     sorted set scored by due timestamp
        <queue>:failed      list of messages that could not be parsed
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.pool: Optional[ConnectionPool] = None
        self.client: Optional[redis.Redis] = None

    async def connect(self):
        """Initialize Redis connection."""
        try:
            self.pool = ConnectionPool.from_url(
                self.url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True
            )
            self.client = redis.Redis(connection_pool=self.pool)
            # Test connection
            await self.client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    async def disconnect(self):
        """Close Redis connection and its pool."""
        if self.client:
            await self.client.aclose()
            self.client = None
        if self.pool:
            await self.pool.disconnect()
            self.pool = None
            logger.info("Redis connection closed")

    async def _ensure_client(self) -> redis.Redis:
        if not self.client:
            await self.connect()
        return self.client

    async def queue_message(self, queue_name: str, message: Dict[str, Any]):
        """Add message to queue."""
        try:
            client = await self._ensure_client()
            await client.lpush(queue_name, json.dumps(message, default=str))
            logger.debug(f"Message queued to {queue_name}")
        except Exception as e:
            logger.error(f"Failed to queue message to {queue_name}: {e}")
            raise

    async def requeue_raw(self, queue_name: str, message_json: str):
        """Push an already serialized message back onto a queue."""
        client = await self._ensure_client()
        await client.lpush(queue_name, message_json)

    async def claim_message(self, main_queue: str, processing_queue: str, timeout: int = 1) -> Optional[str]:
        """Atomically claim a message from main_queue into processing_queue (BRPOPLPUSH)."""
        client = await self._ensure_client()
        return await client.brpoplpush(main_queue, processing_queue, timeout=timeout)

    async def remove_from_processing(self, processing_queue: str, message_json: str) -> int:
        """Remove a specific message from processing queue (LREM)."""
        try:
            client = await self._ensure_client()
            return await client.lrem(processing_queue, 1, message_json)
        except Exception as e:
            logger.error(f"Failed to remove from {processing_queue}: {e}")
            return 0

    async def list_processing(self, processing_queue: str) -> List[str]:
        client = await self._ensure_client()
        return await client.lrange(processing_queue, 0, -1)

    async def queue_delayed_message(self, queue_name: str, message: Dict[str, Any], delay_seconds: float):
        """Add message to delayed queue (ZSET with timestamp score)."""
        try:
            client = await self._ensure_client()
            delayed_queue = f"{queue_name}:delayed"
            score = time.time() + delay_seconds
            await client.zadd(delayed_queue, {json.dumps(message, default=str): score})
            logger.debug(f"Delayed message queued to {delayed_queue} with delay {delay_seconds}s")
        except Exception as e:
            logger.error(f"Failed to queue delayed message: {e}")
            raise

    async def move_ready_delayed_to_main(self, queue_name: str) -> int:
        """Move due messages from the delayed zset back to the main queue."""
        client = await self._ensure_client()
        delayed_queue = f"{queue_name}:delayed"
        messages = await client.zrangebyscore(delayed_queue, 0, time.time())
        moved = 0
        for msg in messages:
            # ZREM decides ownership when several pumps race on the same member
            if await client.zrem(delayed_queue, msg):
                await client.lpush(queue_name, msg)
                moved += 1
        return moved

    async def push_failed(self, queue_name: str, message_json: str):
        client = await self._ensure_client()
        await client.lpush(f"{queue_name}:failed", message_json)

    async def set_lock(self, lock_key: str, ttl_seconds: int = 300) -> bool:
        """
        Set a distributed lock.
        Returns True if lock acquired, False if already exists.
        """
        try:
            client = await self._ensure_client()
            result = await client.set(lock_key, "1", nx=True, ex=ttl_seconds)
            return bool(result)
        except Exception as e:
            logger.error(f"Failed to set lock {lock_key}: {e}")
            return False

    async def release_lock(self, lock_key: str):
        """Release a distributed lock."""
        try:
            client = await self._ensure_client()
            await client.delete(lock_key)
        except Exception as e:
            logger.error(f"Failed to release lock {lock_key}: {e}")

    async def lock_exists(self, lock_key: str) -> bool:
        client = await self._ensure_client()
        return bool(await client.exists(lock_key))

    async def get_queue_length(self, queue_name: str) -> int:
        """Get length of a queue."""
        try:
            client = await self._ensure_client()
            return await client.llen(queue_name)
        except Exception as e:
            logger.error(f"Failed to get queue length for {queue_name}: {e}")
            return 0

    async def get_delayed_length(self, queue_name: str) -> int:
        """Get number of messages waiting in the delayed set of a queue."""
        try:
            client = await self._ensure_client()
            return await client.zcard(f"{queue_name}:delayed")
        except Exception as e:
            logger.error(f"Failed to get delayed length for {queue_name}: {e}")
            return 0


# Global Redis client instance
redis_client = RedisClient()
