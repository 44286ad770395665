from .enums import TaskStatus, HttpMethod, AuthType, ErrorCode
from .notification_task import NotificationTask
from .vendor_config import VendorConfig

__all__ = [
    "TaskStatus",
    "HttpMethod",
    "AuthType",
    "ErrorCode",
    "NotificationTask",
    "VendorConfig",
]
