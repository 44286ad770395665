"""
Pytest configuration and fixtures for notification service tests.
"""
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone

from notification_service.core.redis_client import RedisClient
from notification_service.models.enums import AuthType, TaskStatus
from notification_service.models.notification_task import NotificationTask
from notification_service.models.vendor_config import VendorConfig
from notification_service.queue.base import QueueBackend


@pytest_asyncio.fixture
async def mock_session():
    """Mock database session."""
    session = AsyncMock(spec=AsyncSession)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def mock_redis():
    """Mock Redis client."""
    redis_mock = MagicMock(spec=RedisClient)
    redis_mock.client = AsyncMock()
    redis_mock.queue_message = AsyncMock()
    redis_mock.queue_delayed_message = AsyncMock()
    redis_mock.requeue_raw = AsyncMock()
    redis_mock.claim_message = AsyncMock(return_value=None)
    redis_mock.remove_from_processing = AsyncMock(return_value=1)
    redis_mock.list_processing = AsyncMock(return_value=[])
    redis_mock.move_ready_delayed_to_main = AsyncMock(return_value=0)
    redis_mock.push_failed = AsyncMock()
    redis_mock.set_lock = AsyncMock(return_value=True)
    redis_mock.release_lock = AsyncMock()
    redis_mock.lock_exists = AsyncMock(return_value=False)
    return redis_mock


@pytest.fixture
def mock_queue():
    """Mock queue backend."""
    queue = AsyncMock(spec=QueueBackend)
    queue.enqueue_now = AsyncMock()
    queue.enqueue_delayed = AsyncMock()
    return queue


@pytest.fixture
def mock_task_repo():
    """Mock notification task repository."""
    repo = AsyncMock()
    repo.get_by_id = AsyncMock()
    repo.get_for_update = AsyncMock()
    repo.create = AsyncMock()
    repo.save = AsyncMock()
    repo.find_by_idempotency_key = AsyncMock(return_value=None)
    repo.find_stale = AsyncMock(return_value=[])
    repo.find_terminal_before = AsyncMock(return_value=[])
    repo.delete_by_ids = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def mock_vendor_repo():
    """Mock vendor config repository."""
    repo = AsyncMock()
    repo.get_enabled_by_code = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def make_task():
    """Factory for notification tasks; every column is set explicitly."""
    def _make(**overrides):
        now = datetime.now(timezone.utc)
        fields = dict(
            id="ntf_20240101120000_0a1b2c3d",
            vendor_code=None,
            target_url="https://receiver.example.com/callback",
            http_method="POST",
            headers={"X-Source": "billing"},
            body_json='{"order_id": 42}',
            status=TaskStatus.PENDING.value,
            retry_count=0,
            max_retry=5,
            timeout_ms=3000,
            last_error_code=None,
            last_error_message=None,
            event_id=None,
            last_attempt_at=None,
            created_at=now,
            updated_at=now,
        )
        fields.update(overrides)
        return NotificationTask(**fields)
    return _make


@pytest.fixture
def sample_vendor():
    """Enabled vendor with token auth."""
    return VendorConfig(
        id=1,
        vendor_code="acme",
        base_url="https://hooks.acme.test/",
        default_path="/v2/events",
        default_http_method="PUT",
        default_headers={"X-Vendor": "acme", "X-Source": "vendor"},
        auth_type=AuthType.TOKEN.value,
        auth_config={"token": "secret-token"},
        default_max_retry=3,
        default_timeout_ms=1500,
        enabled=True,
    )
