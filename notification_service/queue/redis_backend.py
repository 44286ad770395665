from typing import Dict, Optional

from pydantic import ValidationError

from notification_service.core.config import settings
from notification_service.core.logging import get_logger
from notification_service.core.redis_client import RedisClient
from notification_service.core.retry_policy import bucket_seconds
from notification_service.schemas.queue import NotificationMessage, ConsumeResult
from .base import QueueBackend, DispatchHandler

logger = get_logger(__name__)


class RedisQueueBackend(QueueBackend):
    """Broker-backed producer: LPUSH for immediate delivery, delayed ZSET otherwise."""

    def __init__(self, redis: RedisClient, queue_name: Optional[str] = None):
        self.redis = redis
        self.queue_name = queue_name or settings.DISPATCH_QUEUE

    async def enqueue_now(self, task_id: str) -> None:
        message = NotificationMessage(notification_id=task_id)
        await self.redis.queue_message(self.queue_name, message.model_dump(mode="json"))
        logger.debug("Notification enqueued", notification_id=task_id, message_id=message.id)

    async def enqueue_delayed(self, task_id: str, bucket: int) -> None:
        delay = bucket_seconds(bucket)
        message = NotificationMessage(notification_id=task_id)
        await self.redis.queue_delayed_message(
            self.queue_name,
            message.model_dump(mode="json"),
            delay_seconds=delay
        )
        logger.debug(
            "Notification enqueued with delay",
            notification_id=task_id,
            bucket=bucket,
            delay_seconds=delay
        )


class RedisQueueConsumer:
    """
    Consume side of the dispatch queue.

    A claimed message sits on ``<queue>:processing`` until it is acknowledged
    (removed). A per-message lock marks it as owned by a live consumer; the
    processing sweep returns unlocked entries to the main queue.
    """

    def __init__(self, redis: RedisClient, queue_name: Optional[str] = None):
        self.redis = redis
        self.queue_name = queue_name or settings.DISPATCH_QUEUE
        self.processing_queue = f"{self.queue_name}:processing"

    def _lock_key(self, message_id: str) -> str:
        return f"lock:{self.queue_name}:{message_id}"

    async def consume_once(self, handler: DispatchHandler) -> ConsumeResult:
        """Claim at most one message and hand its task id to ``handler``."""
        raw = await self.redis.claim_message(
            self.queue_name,
            self.processing_queue,
            timeout=settings.QUEUE_CLAIM_TIMEOUT
        )
        if not raw:
            return ConsumeResult(status="no_message")

        try:
            message = NotificationMessage.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Unparseable queue message moved to failed", queue=self.queue_name, error=str(e))
            await self.redis.remove_from_processing(self.processing_queue, raw)
            await self.redis.push_failed(self.queue_name, raw)
            return ConsumeResult(status="invalid", error=str(e))

        lock_key = self._lock_key(message.id)
        if not await self.redis.set_lock(lock_key, ttl_seconds=settings.QUEUE_LOCK_TTL_SECONDS):
            # Another consumer owns this message id; put the copy back for later
            await self.redis.remove_from_processing(self.processing_queue, raw)
            await self.redis.requeue_raw(self.queue_name, raw)
            return ConsumeResult(status="locked", message_id=message.id, notification_id=message.notification_id)

        try:
            await handler(message.notification_id)
        except Exception as e:
            await self.redis.remove_from_processing(self.processing_queue, raw)
            return await self._redeliver(message, raw, e)
        else:
            await self.redis.remove_from_processing(self.processing_queue, raw)
            return ConsumeResult(status="success", message_id=message.id, notification_id=message.notification_id)
        finally:
            await self.redis.release_lock(lock_key)

    async def _redeliver(self, message: NotificationMessage, raw: str, error: Exception) -> ConsumeResult:
        redeliveries = message.redeliveries + 1
        if redeliveries > settings.QUEUE_MAX_REDELIVERIES:
            logger.error(
                "Dispatch kept failing, message moved to failed",
                notification_id=message.notification_id,
                message_id=message.id,
                redeliveries=message.redeliveries,
                error=str(error)
            )
            await self.redis.push_failed(self.queue_name, raw)
            return ConsumeResult(
                status="failed",
                message_id=message.id,
                notification_id=message.notification_id,
                error=str(error)
            )

        retry_message = message.model_copy(update={"redeliveries": redeliveries})
        await self.redis.queue_delayed_message(
            self.queue_name,
            retry_message.model_dump(mode="json"),
            delay_seconds=settings.QUEUE_REDELIVERY_DELAY_SECONDS
        )
        logger.warning(
            "Dispatch failed, message scheduled for redelivery",
            notification_id=message.notification_id,
            message_id=message.id,
            redeliveries=redeliveries,
            error=str(error)
        )
        return ConsumeResult(
            status="redelivered",
            message_id=message.id,
            notification_id=message.notification_id,
            error=str(error)
        )

    async def consume_batch(self, handler: DispatchHandler, max_messages: Optional[int] = None) -> Dict[str, int]:
        """Consume until the queue is empty or ``max_messages`` were claimed."""
        limit = max_messages or settings.QUEUE_BATCH_SIZE
        counts: Dict[str, int] = {}
        for _ in range(limit):
            result = await self.consume_once(handler)
            if result.status == "no_message":
                break
            counts[result.status] = counts.get(result.status, 0) + 1
        return counts

    async def pump_delayed(self) -> int:
        """Move due delayed messages onto the main queue."""
        moved = await self.redis.move_ready_delayed_to_main(self.queue_name)
        if moved:
            logger.info("Moved delayed messages to main queue", queue=self.queue_name, moved=moved)
        return moved

    async def sweep_processing(self) -> int:
        """Return claimed messages whose consumer lock is gone to the main queue."""
        swept = 0
        for raw in await self.redis.list_processing(self.processing_queue):
            try:
                message = NotificationMessage.model_validate_json(raw)
            except ValidationError:
                await self.redis.remove_from_processing(self.processing_queue, raw)
                await self.redis.push_failed(self.queue_name, raw)
                continue
            if await self.redis.lock_exists(self._lock_key(message.id)):
                continue
            # LREM decides ownership if two sweepers see the same orphan
            if await self.redis.remove_from_processing(self.processing_queue, raw):
                await self.redis.requeue_raw(self.queue_name, raw)
                swept += 1
        if swept:
            logger.warning("Orphaned processing messages returned to queue", queue=self.queue_name, swept=swept)
        return swept
