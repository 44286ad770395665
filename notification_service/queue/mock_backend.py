import asyncio
from typing import Optional, Set

from notification_service.core.config import settings
from notification_service.core.logging import get_logger
from notification_service.core.retry_policy import bucket_seconds
from .base import QueueBackend, DispatchHandler

logger = get_logger(__name__)


class MockQueueBackend(QueueBackend):
    """
    In-process stand-in for the broker.

    Every enqueue schedules an asyncio timer that calls the bound dispatch
    handler directly. Delay buckets are shortened by ``delay_scale_factor`` so
    retry chains finish quickly in development. With ``async_dispatch`` off,
    enqueues are accepted and dropped.
    """

    def __init__(
        self,
        delay_scale_factor: Optional[int] = None,
        async_dispatch: Optional[bool] = None,
        dispatch_latency_ms: Optional[int] = None,
        max_concurrency: Optional[int] = None
    ):
        self.delay_scale_factor = max(1, delay_scale_factor or settings.MOCK_MQ_DELAY_SCALE_FACTOR)
        self.async_dispatch = settings.MOCK_MQ_ASYNC_DISPATCH if async_dispatch is None else async_dispatch
        self.dispatch_latency_ms = (
            settings.MOCK_MQ_DISPATCH_LATENCY_MS if dispatch_latency_ms is None else dispatch_latency_ms
        )
        self._semaphore = asyncio.Semaphore(max_concurrency or settings.MOCK_MQ_MAX_CONCURRENCY)
        self._handler: Optional[DispatchHandler] = None
        self._pending: Set[asyncio.Task] = set()
        self._closed = False

    def bind(self, handler: DispatchHandler):
        """Attach the dispatch handler that timers call."""
        self._handler = handler

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def enqueue_now(self, task_id: str) -> None:
        self._schedule(task_id, self.dispatch_latency_ms / 1000.0)

    async def enqueue_delayed(self, task_id: str, bucket: int) -> None:
        self._schedule(task_id, bucket_seconds(bucket) / self.delay_scale_factor)

    def _schedule(self, task_id: str, delay: float):
        if not self.async_dispatch:
            logger.debug("Mock queue dispatch disabled, enqueue ignored", notification_id=task_id)
            return
        if self._closed:
            logger.warning("Mock queue closed, enqueue ignored", notification_id=task_id)
            return
        if self._handler is None:
            raise RuntimeError("MockQueueBackend has no dispatch handler bound")

        timer = asyncio.get_running_loop().create_task(self._deliver(task_id, delay))
        self._pending.add(timer)
        timer.add_done_callback(self._pending.discard)
        logger.debug("Mock delivery scheduled", notification_id=task_id, delay_seconds=delay)

    async def _deliver(self, task_id: str, delay: float):
        await asyncio.sleep(delay)
        async with self._semaphore:
            try:
                await self._handler(task_id)
            except Exception as e:
                logger.error("Mock delivery failed", notification_id=task_id, error=str(e))

    async def join(self):
        """Wait until no deliveries are pending, including ones scheduled meanwhile."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        self._closed = True
        timers = list(self._pending)
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        if timers:
            logger.info("Mock queue closed", cancelled=len(timers))
