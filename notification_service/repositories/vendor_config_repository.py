from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from notification_service.models.vendor_config import VendorConfig
from .base_repository import BaseRepository


class VendorConfigRepository(BaseRepository[VendorConfig]):
    """Repository for VendorConfig lookups."""

    def __init__(self, session: AsyncSession):
        super().__init__(VendorConfig, session)

    async def get_enabled_by_code(self, vendor_code: str) -> Optional[VendorConfig]:
        """Get an enabled vendor config by code."""
        query = select(VendorConfig).where(
            VendorConfig.vendor_code == vendor_code,
            VendorConfig.enabled.is_(True)
        ).limit(1)
        result = await self.session.execute(query)
        return result.scalars().first()
