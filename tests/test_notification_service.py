"""
Unit tests for NotificationService creation path and AdmissionGuard.
"""
import json
import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from notification_service.core.config import settings
from notification_service.core.exceptions import (
    IdempotencyConflictError,
    NotificationValidationError,
    VendorDisabledError,
)
from notification_service.models.enums import TaskStatus
from notification_service.schemas.notification import CreateNotificationRequest
from notification_service.services.admission_guard import AdmissionGuard
from notification_service.services.notification_service import NotificationService


class TestNotificationService:
    """Test cases for NotificationService."""

    @pytest_asyncio.fixture
    async def service(self, mock_session, mock_queue, mock_task_repo, mock_vendor_repo, make_task):
        """Create notification service with mocked dependencies."""
        service = NotificationService(mock_session, mock_queue)
        service.task_repo = mock_task_repo
        service.guard = AdmissionGuard(mock_task_repo)
        service.vendor_service.vendor_repo = mock_vendor_repo
        mock_task_repo.create.side_effect = lambda data: make_task(**data)
        return service

    @pytest.mark.asyncio
    async def test_create_with_target_url(self, service):
        request = CreateNotificationRequest(
            target_url="https://receiver.example.com/hook",
            body={"order_id": 42},
            event_id="evt-1"
        )

        response = await service.create_notification(request)

        assert response.status == "ACCEPTED"
        assert response.notification_id.startswith("ntf_")
        data = service.task_repo.create.call_args.args[0]
        assert data["status"] == TaskStatus.PENDING.value
        assert data["retry_count"] == 0
        assert data["http_method"] == "POST"
        assert data["max_retry"] == 5
        assert data["timeout_ms"] == 3000
        assert data["headers"] is None
        assert json.loads(data["body_json"]) == {"order_id": 42}
        assert data["event_id"] == "evt-1"
        service.session.commit.assert_awaited_once()
        service.queue.enqueue_now.assert_awaited_once_with(response.notification_id)

    @pytest.mark.asyncio
    async def test_requires_target_or_vendor(self, service):
        request = CreateNotificationRequest(body={"a": 1})

        with pytest.raises(NotificationValidationError):
            await service.create_notification(request)

        service.task_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_in_progress_event_rejected(self, service, make_task):
        service.task_repo.find_by_idempotency_key.return_value = make_task(
            id="ntf_20240101000000_deadbeef", event_id="evt-1"
        )
        request = CreateNotificationRequest(target_url="https://r.example.com", body={}, event_id="evt-1")

        with pytest.raises(IdempotencyConflictError) as exc_info:
            await service.create_notification(request)

        assert exc_info.value.existing_notification_id == "ntf_20240101000000_deadbeef"
        assert "ntf_20240101000000_deadbeef" in exc_info.value.message
        service.task_repo.create.assert_not_called()
        service.queue.enqueue_now.assert_not_called()

    @pytest.mark.asyncio
    async def test_key_reusable_after_terminal(self, service):
        # Only PENDING/RETRYING tasks are looked up, a finished task is invisible here
        service.task_repo.find_by_idempotency_key.return_value = None
        request = CreateNotificationRequest(target_url="https://r.example.com", body={}, event_id="evt-1")

        response = await service.create_notification(request)

        assert response.status == "ACCEPTED"
        service.task_repo.find_by_idempotency_key.assert_awaited_once_with("evt-1")

    @pytest.mark.asyncio
    async def test_no_event_id_skips_idempotency_lookup(self, service):
        request = CreateNotificationRequest(target_url="https://r.example.com", body={})

        await service.create_notification(request)

        service.task_repo.find_by_idempotency_key.assert_not_called()

    @pytest.mark.asyncio
    async def test_lost_admission_race_becomes_conflict(self, service, make_task):
        service.task_repo.find_by_idempotency_key.side_effect = [
            None,
            make_task(id="ntf_20240101000000_winner00", event_id="evt-1"),
        ]
        service.task_repo.create.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        request = CreateNotificationRequest(target_url="https://r.example.com", body={}, event_id="evt-1")

        with pytest.raises(IdempotencyConflictError) as exc_info:
            await service.create_notification(request)

        assert exc_info.value.existing_notification_id == "ntf_20240101000000_winner00"
        service.queue.enqueue_now.assert_not_called()

    @pytest.mark.asyncio
    async def test_vendor_defaults_merged(self, service, sample_vendor):
        service.vendor_service.vendor_repo.get_enabled_by_code.return_value = sample_vendor
        request = CreateNotificationRequest(
            vendor_code="acme",
            headers={"X-Source": "request"},
            body={"a": 1}
        )

        await service.create_notification(request)

        data = service.task_repo.create.call_args.args[0]
        assert data["target_url"] == "https://hooks.acme.test/v2/events"
        assert data["http_method"] == "PUT"
        assert data["headers"] == {"X-Vendor": "acme", "X-Source": "request"}
        assert data["max_retry"] == 3
        assert data["timeout_ms"] == 1500
        assert data["vendor_code"] == "acme"

    @pytest.mark.asyncio
    async def test_non_positive_vendor_defaults_fall_back(self, service, sample_vendor):
        sample_vendor.default_max_retry = 0
        sample_vendor.default_timeout_ms = 0
        service.vendor_service.vendor_repo.get_enabled_by_code.return_value = sample_vendor
        request = CreateNotificationRequest(vendor_code="acme", body={"a": 1})

        await service.create_notification(request)

        data = service.task_repo.create.call_args.args[0]
        assert data["max_retry"] == settings.DEFAULT_MAX_RETRY
        assert data["timeout_ms"] == settings.DEFAULT_TIMEOUT_MS

    @pytest.mark.asyncio
    async def test_service_defaults_without_vendor(self, service):
        request = CreateNotificationRequest(target_url="https://receiver.example.com/cb", body={"a": 1})

        await service.create_notification(request)

        data = service.task_repo.create.call_args.args[0]
        assert data["max_retry"] == settings.DEFAULT_MAX_RETRY
        assert data["timeout_ms"] == settings.DEFAULT_TIMEOUT_MS

    @pytest.mark.asyncio
    async def test_request_values_override_vendor(self, service, sample_vendor):
        service.vendor_service.vendor_repo.get_enabled_by_code.return_value = sample_vendor
        request = CreateNotificationRequest(
            vendor_code="acme",
            target_url="https://other.example.com/cb",
            http_method="delete",
            body={"a": 1},
            max_retry=7,
            timeout_ms=900
        )

        await service.create_notification(request)

        data = service.task_repo.create.call_args.args[0]
        assert data["target_url"] == "https://other.example.com/cb"
        assert data["http_method"] == "DELETE"
        assert data["max_retry"] == 7
        assert data["timeout_ms"] == 900

    @pytest.mark.asyncio
    async def test_unknown_or_disabled_vendor_rejected(self, service):
        service.vendor_service.vendor_repo.get_enabled_by_code.return_value = None
        request = CreateNotificationRequest(vendor_code="ghost", body={})

        with pytest.raises(VendorDisabledError):
            await service.create_notification(request)

        service.task_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_enqueue_failure_still_accepted(self, service):
        service.queue.enqueue_now.side_effect = Exception("broker down")
        request = CreateNotificationRequest(target_url="https://r.example.com", body={})

        response = await service.create_notification(request)

        assert response.status == "ACCEPTED"
        service.session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_notification_status(self, service, make_task):
        service.task_repo.get_by_id.return_value = make_task(
            status=TaskStatus.RETRYING.value,
            retry_count=2,
            last_error_code="HTTP_5XX",
            event_id="evt-9"
        )

        result = await service.get_notification_status("ntf_20240101120000_0a1b2c3d")

        assert result.notification_id == "ntf_20240101120000_0a1b2c3d"
        assert result.status == "RETRYING"
        assert result.retry_count == 2
        assert result.last_error_code == "HTTP_5XX"
        assert result.event_id == "evt-9"

    @pytest.mark.asyncio
    async def test_get_notification_status_missing(self, service):
        service.task_repo.get_by_id.return_value = None

        assert await service.get_notification_status("ntf_missing") is None
