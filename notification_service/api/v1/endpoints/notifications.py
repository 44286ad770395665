from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notification_service.core.database import get_async_session
from notification_service.core.exceptions import NotificationNotFoundError
from notification_service.queue.base import QueueBackend
from notification_service.schemas.notification import (
    CreateNotificationRequest,
    CreateNotificationResponse,
    NotificationStatusResponse,
    ErrorResponse
)
from notification_service.services.notification_service import NotificationService

router = APIRouter()


def get_queue_backend(request: Request) -> QueueBackend:
    return request.app.state.queue_backend


async def get_notification_service(
    session: AsyncSession = Depends(get_async_session),
    queue_backend: QueueBackend = Depends(get_queue_backend)
) -> NotificationService:
    return NotificationService(session, queue_backend)


@router.post(
    "",
    response_model=CreateNotificationResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}
)
async def create_notification(
    request: CreateNotificationRequest,
    service: NotificationService = Depends(get_notification_service)
):
    """
    Accept a callback for asynchronous delivery.

    - **target_url** or **vendor_code**: where to deliver (vendor defaults fill the rest)
    - **body**: JSON payload sent to the receiver
    - **event_id**: optional idempotency key; a second request while the first
      task is still in progress is rejected with 409
    """
    return await service.create_notification(request)


@router.get(
    "/{notification_id}",
    response_model=NotificationStatusResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_notification(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    """Current state of a notification task."""
    result = await service.get_notification_status(notification_id)
    if result is None:
        raise NotificationNotFoundError(notification_id)
    return result
