from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from notification_service.core.config import Settings
from notification_service.core.logging import get_logger
from notification_service.core.redis_client import RedisClient, redis_client
from .base import QueueBackend
from .mock_backend import MockQueueBackend
from .redis_backend import RedisQueueBackend

logger = get_logger(__name__)


def build_queue_backend(
    config: Settings,
    session_factory: async_sessionmaker,
    redis: Optional[RedisClient] = None
) -> QueueBackend:
    """Select the queue backend for ``MQ_MODE`` once, at startup."""
    mode = config.MQ_MODE.lower()

    if mode == "redis":
        logger.info("Using Redis queue backend", queue=config.DISPATCH_QUEUE)
        return RedisQueueBackend(redis or redis_client, config.DISPATCH_QUEUE)

    if mode == "mock":
        # Imported here to avoid a circular import with the dispatcher
        from notification_service.services.dispatcher import make_dispatch_handler

        backend = MockQueueBackend(
            delay_scale_factor=config.MOCK_MQ_DELAY_SCALE_FACTOR,
            async_dispatch=config.MOCK_MQ_ASYNC_DISPATCH,
            dispatch_latency_ms=config.MOCK_MQ_DISPATCH_LATENCY_MS,
            max_concurrency=config.MOCK_MQ_MAX_CONCURRENCY
        )
        backend.bind(make_dispatch_handler(session_factory, backend))
        logger.info(
            "Using in-process mock queue backend",
            delay_scale_factor=backend.delay_scale_factor,
            async_dispatch=backend.async_dispatch
        )
        return backend

    raise ValueError(f"Unknown MQ_MODE: {config.MQ_MODE}")
