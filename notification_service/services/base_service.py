from abc import ABC
from sqlalchemy.ext.asyncio import AsyncSession

from notification_service.core.logging import get_logger
from notification_service.repositories import (
    NotificationTaskRepository,
    VendorConfigRepository
)


class BaseService(ABC):
    """Base service class with common functionality."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = get_logger(self.__class__.__name__)

        # Initialize repositories
        self.task_repo = NotificationTaskRepository(session)
        self.vendor_repo = VendorConfigRepository(session)

    async def commit(self):
        """Commit the current transaction."""
        try:
            await self.session.commit()
        except Exception as e:
            self.logger.error("Error committing transaction", error=str(e))
            await self.session.rollback()
            raise

    async def rollback(self):
        """Rollback the current transaction."""
        try:
            await self.session.rollback()
        except Exception as e:
            self.logger.error("Error rolling back transaction", error=str(e))
            raise
