import asyncio

from .celery_app import celery_app
from notification_service.core.database import AsyncSessionLocal, db_manager
from notification_service.core.logging import get_logger, setup_logging
from notification_service.core.redis_client import redis_client
from notification_service.queue.redis_backend import RedisQueueBackend, RedisQueueConsumer
from notification_service.services.dispatcher import make_dispatch_handler
from notification_service.services.housekeeping_service import HousekeepingService

setup_logging()
logger = get_logger(__name__)


def _run(coro_factory):
    """
    Run one coroutine on a fresh event loop.

    Pools are bound to the loop that opened them, so Redis and the database
    engine are released before the loop closes.
    """
    async def _wrapped():
        try:
            return await coro_factory()
        finally:
            await redis_client.disconnect()
            await db_manager.close_connections()

    return asyncio.run(_wrapped())


@celery_app.task(bind=True)
def consume_dispatch_queue(self):
    """Claim dispatch messages and run one delivery attempt for each."""
    async def _consume():
        consumer = RedisQueueConsumer(redis_client)
        handler = make_dispatch_handler(AsyncSessionLocal, RedisQueueBackend(redis_client))
        return await consumer.consume_batch(handler)

    try:
        counts = _run(_consume)
        if counts:
            logger.info("Dispatch queue consumed", **counts)
        return counts
    except Exception as e:
        logger.error("Dispatch queue consumption failed", error=str(e))
        raise


@celery_app.task(bind=True)
def pump_delayed_queue(self):
    """Move due delayed messages onto the dispatch queue."""
    async def _pump():
        return await RedisQueueConsumer(redis_client).pump_delayed()

    try:
        return _run(_pump)
    except Exception as e:
        logger.error("Delayed queue pump failed", error=str(e))
        raise


@celery_app.task(bind=True)
def sweep_processing_queue(self):
    """Visibility sweeper: return orphaned :processing items to the dispatch queue."""
    async def _sweep():
        return await RedisQueueConsumer(redis_client).sweep_processing()

    try:
        return _run(_sweep)
    except Exception as e:
        logger.error("Processing sweep failed", error=str(e))
        raise


@celery_app.task(bind=True)
def requeue_stale_notifications(self):
    """Re-enqueue tasks whose delivery message was lost."""
    async def _requeue():
        async with AsyncSessionLocal() as session:
            service = HousekeepingService(session, RedisQueueBackend(redis_client))
            return await service.requeue_stale_tasks()

    try:
        return _run(_requeue)
    except Exception as e:
        logger.error("Stale task sweep failed", error=str(e))
        raise


@celery_app.task(bind=True)
def purge_terminal_notifications(self):
    """Delete finalized tasks past the retention period."""
    async def _purge():
        async with AsyncSessionLocal() as session:
            service = HousekeepingService(session, RedisQueueBackend(redis_client))
            return await service.purge_terminal_tasks()

    try:
        deleted = _run(_purge)
        logger.info("Terminal task purge completed", deleted=deleted)
        return deleted
    except Exception as e:
        logger.error("Terminal task purge failed", error=str(e))
        raise
