import json
from typing import Any, Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notification_service.core.config import settings
from notification_service.core.exceptions import NotificationValidationError, VendorDisabledError
from notification_service.core.ids import generate_notification_id
from notification_service.models.enums import HttpMethod, TaskStatus
from notification_service.models.vendor_config import VendorConfig
from notification_service.queue.base import QueueBackend
from notification_service.schemas.notification import (
    CreateNotificationRequest,
    CreateNotificationResponse,
    NotificationStatusResponse
)
from .admission_guard import AdmissionGuard
from .base_service import BaseService
from .vendor_config_service import VendorConfigService


class NotificationService(BaseService):
    """Creation path and status queries for notification tasks."""

    def __init__(self, session: AsyncSession, queue_backend: QueueBackend):
        super().__init__(session)
        self.queue = queue_backend
        self.guard = AdmissionGuard(self.task_repo)
        self.vendor_service = VendorConfigService(session)

    async def create_notification(self, request: CreateNotificationRequest) -> CreateNotificationResponse:
        """
        Persist a PENDING task and request its first delivery.

        The task row is committed before the enqueue; an enqueue failure is
        only logged because the stale-task sweep picks the task up later.
        """
        if not request.target_url and not request.vendor_code:
            raise NotificationValidationError("Either target_url or vendor_code must be provided")

        await self.guard.check_idempotency(request.event_id)

        vendor = None
        if request.vendor_code:
            vendor = await self.vendor_service.get_vendor_config(request.vendor_code)
            if vendor is None:
                raise VendorDisabledError(request.vendor_code)

        task_data = self._build_task(request, vendor)
        try:
            task = await self.task_repo.create(task_data)
            await self.commit()
        except IntegrityError:
            # Lost the admission race; the unique index caught the second insert
            if request.event_id:
                raise await self.guard.conflict_for(request.event_id)
            raise

        self.logger.info(
            "Notification task created",
            notification_id=task.id,
            vendor_code=task.vendor_code,
            event_id=task.event_id,
            target_url=task.target_url
        )

        try:
            await self.queue.enqueue_now(task.id)
        except Exception as e:
            self.logger.error(
                "Failed to enqueue notification, task is persisted",
                notification_id=task.id,
                error=str(e)
            )

        return CreateNotificationResponse.accepted(task.id)

    async def get_notification_status(self, notification_id: str) -> Optional[NotificationStatusResponse]:
        task = await self.task_repo.get_by_id(notification_id)
        if task is None:
            return None
        return NotificationStatusResponse.model_validate(task)

    def _build_task(self, request: CreateNotificationRequest, vendor: Optional[VendorConfig]) -> Dict[str, Any]:
        """Merge request values over vendor defaults over service defaults."""
        if request.http_method is not None:
            http_method = request.http_method.value
        elif vendor is not None:
            http_method = (vendor.default_http_method or HttpMethod.POST.value).upper()
        else:
            http_method = HttpMethod.POST.value
        if http_method not in HttpMethod.__members__:
            raise NotificationValidationError(f"Unsupported http_method: {http_method}")

        headers: Dict[str, str] = {}
        if vendor is not None and vendor.default_headers:
            headers.update(vendor.default_headers)
        if request.headers:
            headers.update(request.headers)

        # Vendor defaults apply only when positive; both values must stay > 0
        if request.max_retry is not None:
            max_retry = request.max_retry
        elif vendor is not None and vendor.default_max_retry is not None and vendor.default_max_retry > 0:
            max_retry = vendor.default_max_retry
        else:
            max_retry = settings.DEFAULT_MAX_RETRY

        if request.timeout_ms is not None:
            timeout_ms = request.timeout_ms
        elif vendor is not None and vendor.default_timeout_ms is not None and vendor.default_timeout_ms > 0:
            timeout_ms = vendor.default_timeout_ms
        else:
            timeout_ms = settings.DEFAULT_TIMEOUT_MS

        return {
            "id": generate_notification_id(),
            "vendor_code": request.vendor_code,
            "target_url": request.target_url or vendor.default_url,
            "http_method": http_method,
            "headers": headers or None,
            "body_json": json.dumps(request.body),
            "status": TaskStatus.PENDING.value,
            "retry_count": 0,
            "max_retry": max_retry,
            "timeout_ms": timeout_ms,
            "event_id": request.event_id,
        }
