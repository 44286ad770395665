from typing import Optional

from notification_service.core.exceptions import IdempotencyConflictError
from notification_service.core.logging import get_logger
from notification_service.repositories import NotificationTaskRepository

logger = get_logger(__name__)


class AdmissionGuard:
    """
    Rejects a new task while another task with the same event id is still
    PENDING or RETRYING. Terminal tasks never block reuse of their key.

    The lookup and the insert are not atomic; the partial unique index on
    ``event_id`` is the backstop and ``conflict_for`` turns its violation into
    the same conflict error.
    """

    def __init__(self, task_repo: NotificationTaskRepository):
        self.task_repo = task_repo

    async def check_idempotency(self, event_id: Optional[str]) -> None:
        if not event_id:
            return
        existing = await self.task_repo.find_by_idempotency_key(event_id)
        if existing is not None:
            logger.info(
                "Duplicate event rejected",
                event_id=event_id,
                existing_notification_id=existing.id
            )
            raise IdempotencyConflictError(event_id, existing.id)

    async def conflict_for(self, event_id: str) -> IdempotencyConflictError:
        existing = await self.task_repo.find_by_idempotency_key(event_id)
        return IdempotencyConflictError(event_id, existing.id if existing else None)
