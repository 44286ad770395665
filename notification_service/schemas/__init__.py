from .notification import (
    CreateNotificationRequest,
    CreateNotificationResponse,
    NotificationStatusResponse,
    ErrorResponse,
)
from .queue import NotificationMessage, ConsumeResult

__all__ = [
    "CreateNotificationRequest",
    "CreateNotificationResponse",
    "NotificationStatusResponse",
    "ErrorResponse",
    "NotificationMessage",
    "ConsumeResult",
]
