from .admission_guard import AdmissionGuard
from .vendor_config_service import VendorConfigService
from .notification_service import NotificationService
from .dispatcher import NotificationDispatcher, make_dispatch_handler
from .housekeeping_service import HousekeepingService

__all__ = [
    "AdmissionGuard",
    "VendorConfigService",
    "NotificationService",
    "NotificationDispatcher",
    "make_dispatch_handler",
    "HousekeepingService",
]
