from .base_repository import BaseRepository
from .notification_task_repository import NotificationTaskRepository
from .vendor_config_repository import VendorConfigRepository

__all__ = [
    "BaseRepository",
    "NotificationTaskRepository",
    "VendorConfigRepository",
]
