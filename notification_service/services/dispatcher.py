from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notification_service.core.config import settings
from notification_service.core.http_invoker import HttpInvoker, InvocationOutcome
from notification_service.core.retry_policy import delay_bucket, delay_seconds, should_retry
from notification_service.models.enums import ErrorCode
from notification_service.models.notification_task import NotificationTask
from notification_service.queue.base import QueueBackend, DispatchHandler
from .base_service import BaseService
from .vendor_config_service import VendorConfigService


def truncate_error(message: Optional[str], limit: Optional[int] = None) -> Optional[str]:
    limit = limit or settings.MAX_ERROR_MESSAGE_LENGTH
    if message is None or len(message) <= limit:
        return message
    return message[:limit] + "..."


def classify_failure(outcome: InvocationOutcome) -> ErrorCode:
    """Error code for a non-2xx outcome."""
    if outcome.is_client_error:
        return ErrorCode.HTTP_4XX
    if outcome.is_server_error:
        return ErrorCode.HTTP_5XX
    if outcome.is_timeout:
        return ErrorCode.HTTP_TIMEOUT
    if outcome.is_network_error:
        return ErrorCode.NETWORK_ERROR
    return ErrorCode.HTTP_UNEXPECTED_STATUS


@dataclass
class CallSnapshot:
    """Call parameters captured before the read transaction ends."""

    url: str
    method: str
    headers: Dict[str, str]
    body: Optional[str]
    timeout_ms: int
    retry_count: int
    status: str


class NotificationDispatcher(BaseService):
    """
    Executes one delivery attempt for a task and moves it through its states:

        PENDING/RETRYING --2xx--> SUCCESS
        PENDING/RETRYING --4xx--> FAILED
        PENDING/RETRYING --5xx/timeout/network, budget left--> RETRYING (+1, delayed enqueue)
        PENDING/RETRYING --5xx/timeout/network, budget spent--> FAILED

    No transaction is held during the outbound call. The decision is applied
    to the row re-read under ``FOR UPDATE``, so a duplicate delivery that
    finished first wins and a terminal task is never modified again. A
    duplicate that finds the row advanced past its snapshot neither spends
    retry budget nor enqueues another redelivery.
    """

    def __init__(
        self,
        session: AsyncSession,
        queue_backend: QueueBackend,
        invoker: Optional[HttpInvoker] = None
    ):
        super().__init__(session)
        self.queue = queue_backend
        self.invoker = invoker or HttpInvoker()
        self.vendor_service = VendorConfigService(session)

    async def dispatch(self, task_id: str) -> Optional[str]:
        """
        Run one attempt for ``task_id``.

        Returns the task status after the attempt, or None when the task does
        not exist. Store failures propagate so the queue redelivers.
        """
        task = await self.task_repo.get_by_id(task_id)
        if task is None:
            self.logger.warning("Notification task not found, delivery skipped", notification_id=task_id)
            return None
        if task.is_terminal:
            self.logger.info(
                "Notification task already finalized, delivery skipped",
                notification_id=task_id,
                status=task.status
            )
            return task.status

        call = await self._snapshot(task)
        await self.commit()

        attempted_at = datetime.now(timezone.utc)
        outcome = await self.invoker.call(call.url, call.method, call.headers, call.body, call.timeout_ms)

        task = await self.task_repo.get_for_update(task_id)
        if task is None:
            self.logger.warning("Notification task removed during attempt", notification_id=task_id)
            await self.rollback()
            return None
        if task.is_terminal:
            self.logger.info(
                "Notification task finalized by a concurrent attempt, result discarded",
                notification_id=task_id,
                status=task.status,
                status_code=outcome.status_code
            )
            await self.rollback()
            return task.status

        # Another delivery of this task already recorded an attempt meanwhile
        superseded = (task.retry_count, task.status) != (call.retry_count, call.status)
        task.last_attempt_at = attempted_at
        bucket = self._apply_outcome(task, outcome, superseded)
        await self.task_repo.save(task)
        await self.commit()

        if bucket is not None:
            try:
                await self.queue.enqueue_delayed(task.id, bucket)
            except Exception as e:
                self.logger.error(
                    "Failed to enqueue retry, stale sweep will recover the task",
                    notification_id=task.id,
                    retry_count=task.retry_count,
                    error=str(e)
                )

        return task.status

    async def _snapshot(self, task: NotificationTask) -> CallSnapshot:
        headers = dict(task.headers or {})
        if task.vendor_code:
            vendor = await self.vendor_service.get_vendor_config(task.vendor_code)
            headers.update(self.vendor_service.auth_headers(vendor, task.body_json))
        return CallSnapshot(
            url=task.target_url,
            method=task.http_method,
            headers=headers,
            body=task.body_json,
            timeout_ms=task.timeout_ms,
            retry_count=task.retry_count,
            status=task.status
        )

    def _apply_outcome(
        self,
        task: NotificationTask,
        outcome: InvocationOutcome,
        superseded: bool = False
    ) -> Optional[int]:
        """
        Mutate ``task`` for this outcome; returns the delay bucket when a retry is due.

        A superseded attempt still finalizes on 2xx or 4xx, but a retryable
        failure only records its error: the attempt that advanced the row owns
        the retry budget and the pending redelivery.
        """
        log = self.logger.with_context(
            notification_id=task.id,
            status_code=outcome.status_code,
            cost_ms=outcome.cost_ms
        )

        if outcome.success:
            task.mark_success()
            log.info("Notification delivered")
            return None

        error_code = classify_failure(outcome)
        task.record_error(error_code.value, truncate_error(outcome.error_message))

        if error_code == ErrorCode.HTTP_4XX:
            task.mark_failed()
            log.warning("Notification rejected by receiver, not retried", error_code=error_code.value)
            return None

        if superseded:
            log.info(
                "Duplicate attempt failed, retry left to the newer attempt",
                error_code=error_code.value,
                retry_count=task.retry_count
            )
            return None

        if not should_retry(task):
            task.mark_failed()
            log.error(
                "Notification failed, retries exhausted",
                error_code=error_code.value,
                retry_count=task.retry_count,
                max_retry=task.max_retry
            )
            return None

        task.schedule_retry()
        delay = delay_seconds(task.retry_count)
        bucket = delay_bucket(delay)
        log.warning(
            "Notification attempt failed, retry scheduled",
            error_code=error_code.value,
            retry_count=task.retry_count,
            max_retry=task.max_retry,
            delay_seconds=delay,
            bucket=bucket
        )
        return bucket


def make_dispatch_handler(
    session_factory: async_sessionmaker,
    queue_backend: QueueBackend,
    invoker: Optional[HttpInvoker] = None
) -> DispatchHandler:
    """Per-delivery callable: a fresh session and dispatcher for every task id."""
    shared_invoker = invoker or HttpInvoker()

    async def handle(task_id: str) -> None:
        async with session_factory() as session:
            dispatcher = NotificationDispatcher(session, queue_backend, shared_invoker)
            await dispatcher.dispatch(task_id)

    return handle
