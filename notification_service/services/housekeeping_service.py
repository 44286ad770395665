from datetime import datetime, timedelta, timezone
from typing import Dict
from sqlalchemy.ext.asyncio import AsyncSession

from notification_service.core.config import settings
from notification_service.core.retry_policy import bucket_seconds, delay_bucket, delay_seconds
from notification_service.models.enums import TaskStatus
from notification_service.queue.base import QueueBackend
from .base_service import BaseService


class HousekeepingService(BaseService):
    """Recovery sweep for tasks whose enqueue was lost, and retention of old terminal tasks."""

    def __init__(self, session: AsyncSession, queue_backend: QueueBackend):
        super().__init__(session)
        self.queue = queue_backend

    async def requeue_stale_tasks(self) -> Dict[str, int]:
        """
        Re-enqueue in-progress tasks that should have been attempted by now.

        PENDING tasks qualify after STALE_PENDING_SECONDS without an update;
        RETRYING tasks once their backoff bucket plus the grace period has
        elapsed since the last update.
        """
        now = datetime.now(timezone.utc)
        grace = timedelta(seconds=settings.STALE_RETRY_GRACE_SECONDS)
        stats = {"pending": 0, "retrying": 0, "failed": 0}

        pending = await self.task_repo.find_stale(
            TaskStatus.PENDING.value,
            now - timedelta(seconds=settings.STALE_PENDING_SECONDS),
            limit=settings.STALE_SWEEP_BATCH_SIZE
        )
        retrying = await self.task_repo.find_stale(
            TaskStatus.RETRYING.value,
            now - grace,
            limit=settings.STALE_SWEEP_BATCH_SIZE
        )
        await self.commit()

        for task in pending:
            if await self._requeue(task.id):
                stats["pending"] += 1
            else:
                stats["failed"] += 1

        for task in retrying:
            backoff = timedelta(seconds=bucket_seconds(delay_bucket(delay_seconds(task.retry_count))))
            if task.updated_at + backoff + grace > now:
                continue
            if await self._requeue(task.id):
                stats["retrying"] += 1
            else:
                stats["failed"] += 1

        if stats["pending"] or stats["retrying"] or stats["failed"]:
            self.logger.warning("Stale notification tasks re-enqueued", **stats)
        return stats

    async def _requeue(self, task_id: str) -> bool:
        try:
            await self.queue.enqueue_now(task_id)
            return True
        except Exception as e:
            self.logger.error("Failed to re-enqueue stale task", notification_id=task_id, error=str(e))
            return False

    async def purge_terminal_tasks(self) -> int:
        """Delete SUCCESS/FAILED tasks created more than TASK_RETENTION_DAYS ago."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=settings.TASK_RETENTION_DAYS)
        batch_size = settings.STALE_SWEEP_BATCH_SIZE
        deleted = 0

        while True:
            task_ids = await self.task_repo.find_terminal_before(cutoff, limit=batch_size)
            if not task_ids:
                break
            deleted += await self.task_repo.delete_by_ids(task_ids)
            await self.commit()
            if len(task_ids) < batch_size:
                break

        if deleted:
            self.logger.info("Purged terminal notification tasks", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted
