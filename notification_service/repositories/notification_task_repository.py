from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from notification_service.models.notification_task import NotificationTask
from notification_service.models.enums import TaskStatus
from .base_repository import BaseRepository


class NotificationTaskRepository(BaseRepository[NotificationTask]):
    """Durable keyed storage for notification tasks."""

    def __init__(self, session: AsyncSession):
        super().__init__(NotificationTask, session)

    async def get_for_update(self, task_id: str) -> Optional[NotificationTask]:
        """Read the current row under a row lock, refreshing any cached copy."""
        query = (
            select(NotificationTask)
            .where(NotificationTask.id == task_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def save(self, task: NotificationTask) -> NotificationTask:
        """Write every mutable field of a task, including cleared ones."""
        self.session.add(task)
        await self.session.flush()
        return task

    async def find_by_idempotency_key(
        self,
        event_id: str,
        statuses: Iterable[str] = TaskStatus.in_progress()
    ) -> Optional[NotificationTask]:
        """Find a task with this event id whose status is one of ``statuses``."""
        query = (
            select(NotificationTask)
            .where(
                NotificationTask.event_id == event_id,
                NotificationTask.status.in_(list(statuses))
            )
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def find_stale(self, status: str, updated_before: datetime, limit: int = 500) -> List[NotificationTask]:
        """Tasks in ``status`` not touched since ``updated_before``, oldest first."""
        query = (
            select(NotificationTask)
            .where(
                NotificationTask.status == status,
                NotificationTask.updated_at < updated_before
            )
            .order_by(NotificationTask.updated_at)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_terminal_before(self, created_before: datetime, limit: int = 500) -> List[str]:
        """Ids of SUCCESS/FAILED tasks created before the cutoff."""
        query = (
            select(NotificationTask.id)
            .where(
                NotificationTask.status.in_(list(TaskStatus.terminal())),
                NotificationTask.created_at < created_before
            )
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_by_ids(self, task_ids: List[str]) -> int:
        if not task_ids:
            return 0
        # Terminal filter again so a concurrently revived id is never removed
        query = delete(NotificationTask).where(
            NotificationTask.id.in_(task_ids),
            NotificationTask.status.in_(list(TaskStatus.terminal()))
        )
        result = await self.session.execute(query)
        return result.rowcount
