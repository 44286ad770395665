from typing import Any, Dict, List, Optional

from notification_service.models.enums import ErrorCode


class NotificationError(Exception):
    """Base class for errors returned synchronously to API callers."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotificationValidationError(NotificationError):
    """Malformed creation request; rejected before anything is persisted."""

    error_code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class IdempotencyConflictError(NotificationError):
    """An in-progress task already exists for the idempotency key."""

    error_code = ErrorCode.IDEMPOTENCY_CONFLICT
    status_code = 409

    def __init__(self, event_id: str, existing_notification_id: Optional[str]):
        super().__init__(
            f"Duplicate eventId detected. Existing notificationId: {existing_notification_id}"
        )
        self.event_id = event_id
        self.existing_notification_id = existing_notification_id


class VendorDisabledError(NotificationError):
    error_code = ErrorCode.VENDOR_DISABLED
    status_code = 400

    def __init__(self, vendor_code: str):
        super().__init__(f"Vendor is disabled or unknown: {vendor_code}")
        self.vendor_code = vendor_code


class NotificationNotFoundError(NotificationError):
    error_code = ErrorCode.RESOURCE_NOT_FOUND
    status_code = 404

    def __init__(self, notification_id: str):
        super().__init__(f"Notification not found: {notification_id}")
        self.notification_id = notification_id
