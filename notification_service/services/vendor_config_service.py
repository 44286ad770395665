from typing import Dict, Optional

from notification_service.core.webhook_security import WebhookSigner
from notification_service.models.vendor_config import VendorConfig
from .base_service import BaseService


class VendorConfigService(BaseService):
    """Vendor default lookup and per-attempt vendor authentication."""

    async def get_vendor_config(self, vendor_code: str) -> Optional[VendorConfig]:
        vendor = await self.vendor_repo.get_enabled_by_code(vendor_code)
        if vendor is None:
            self.logger.warning("Vendor config not found or disabled", vendor_code=vendor_code)
        return vendor

    @staticmethod
    def auth_headers(vendor: Optional[VendorConfig], body: Optional[str]) -> Dict[str, str]:
        """Headers proving the callback comes from us, signed per attempt for HMAC vendors."""
        if vendor is None:
            return {}
        return WebhookSigner.auth_headers(vendor.auth_type, vendor.auth_config, body)
