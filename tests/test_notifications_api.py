"""
API tests for the notification endpoints with the service layer mocked.
"""
import httpx
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from notification_service.api.v1.endpoints.notifications import get_notification_service
from notification_service.core.exceptions import IdempotencyConflictError, VendorDisabledError
from notification_service.main import app
from notification_service.schemas.notification import (
    CreateNotificationResponse,
    NotificationStatusResponse,
)
from notification_service.services.notification_service import NotificationService


@pytest.fixture
def mock_service():
    service = MagicMock(spec=NotificationService)
    service.create_notification = AsyncMock(
        return_value=CreateNotificationResponse.accepted("ntf_20240101120000_0a1b2c3d")
    )
    service.get_notification_status = AsyncMock(return_value=None)
    return service


@pytest_asyncio.fixture
async def client(mock_service, mock_queue):
    app.dependency_overrides[get_notification_service] = lambda: mock_service
    app.state.queue_backend = mock_queue
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class TestNotificationsApi:
    """Test cases for /v1/notifications."""

    @pytest.mark.asyncio
    async def test_create_accepted(self, client, mock_service):
        response = await client.post("/v1/notifications", json={
            "target_url": "https://receiver.example.com/hook",
            "http_method": "post",
            "body": {"order_id": 42},
            "event_id": "evt-1"
        })

        assert response.status_code == 200
        assert response.json() == {
            "notification_id": "ntf_20240101120000_0a1b2c3d",
            "status": "ACCEPTED"
        }
        request = mock_service.create_notification.call_args.args[0]
        assert request.http_method.value == "POST"
        assert request.event_id == "evt-1"

    @pytest.mark.asyncio
    async def test_missing_body_is_validation_error(self, client, mock_service):
        response = await client.post("/v1/notifications", json={
            "target_url": "https://receiver.example.com/hook"
        })

        assert response.status_code == 400
        payload = response.json()
        assert payload["error"] == "VALIDATION_ERROR"
        assert any("body" in detail["field"] for detail in payload["details"])
        mock_service.create_notification.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value", [
        ("target_url", "ftp://receiver.example.com"),
        ("http_method", "PATCH"),
        ("max_retry", 0),
        ("timeout_ms", -1),
    ])
    async def test_invalid_fields_rejected(self, client, field, value):
        payload = {"target_url": "https://receiver.example.com/hook", "body": {}}
        payload[field] = value

        response = await client.post("/v1/notifications", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_idempotency_conflict(self, client, mock_service):
        mock_service.create_notification.side_effect = IdempotencyConflictError(
            "evt-1", "ntf_20240101000000_deadbeef"
        )

        response = await client.post("/v1/notifications", json={
            "target_url": "https://receiver.example.com/hook",
            "body": {},
            "event_id": "evt-1"
        })

        assert response.status_code == 409
        payload = response.json()
        assert payload["error"] == "IDEMPOTENCY_CONFLICT"
        assert "ntf_20240101000000_deadbeef" in payload["message"]

    @pytest.mark.asyncio
    async def test_vendor_disabled(self, client, mock_service):
        mock_service.create_notification.side_effect = VendorDisabledError("acme")

        response = await client.post("/v1/notifications", json={"vendor_code": "acme", "body": {}})

        assert response.status_code == 400
        assert response.json()["error"] == "VENDOR_DISABLED"

    @pytest.mark.asyncio
    async def test_get_status(self, client, mock_service):
        mock_service.get_notification_status.return_value = NotificationStatusResponse(
            notification_id="ntf_20240101120000_0a1b2c3d",
            target_url="https://receiver.example.com/hook",
            http_method="POST",
            status="FAILED",
            retry_count=5,
            max_retry=5,
            timeout_ms=3000,
            last_error_code="HTTP_5XX",
            last_error_message="HTTP 503"
        )

        response = await client.get("/v1/notifications/ntf_20240101120000_0a1b2c3d")

        assert response.status_code == 200
        payload = response.json()
        assert payload["notification_id"] == "ntf_20240101120000_0a1b2c3d"
        assert payload["status"] == "FAILED"
        assert payload["last_error_code"] == "HTTP_5XX"

    @pytest.mark.asyncio
    async def test_get_status_not_found(self, client):
        response = await client.get("/v1/notifications/ntf_missing")

        assert response.status_code == 404
        assert response.json()["error"] == "RESOURCE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/v1/health/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
