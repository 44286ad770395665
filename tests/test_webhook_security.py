"""
Unit tests for outbound callback signing and vendor auth headers.
"""
import base64
import hashlib
import hmac

from notification_service.core.webhook_security import WebhookSigner
from notification_service.models.enums import AuthType
from notification_service.services.vendor_config_service import VendorConfigService


class TestWebhookSigner:
    """Test cases for WebhookSigner."""

    def test_generate_signature_format(self):
        payload = '{"order_id": 42}'
        timestamp = "1640995200"
        secret = "test-secret-key"

        result = WebhookSigner.generate_signature(payload, timestamp, secret)

        expected = hmac.new(
            secret.encode("utf-8"),
            f"{timestamp}.{payload}".encode("utf-8"),
            hashlib.sha256
        ).hexdigest()
        assert result == f"sha256={expected}"
        assert len(result) == 71

    def test_signature_depends_on_timestamp_and_secret(self):
        payload = '{"order_id": 42}'
        base = WebhookSigner.generate_signature(payload, "1640995200", "s1")

        assert base != WebhookSigner.generate_signature(payload, "1640995201", "s1")
        assert base != WebhookSigner.generate_signature(payload, "1640995200", "s2")

    def test_signed_headers(self):
        headers = WebhookSigner.signed_headers('{"a": 1}', "secret", timestamp="1700000000")

        assert headers["X-Webhook-Timestamp"] == "1700000000"
        assert headers["X-Webhook-Signature"] == WebhookSigner.generate_signature(
            '{"a": 1}', "1700000000", "secret"
        )

    def test_token_auth(self):
        headers = WebhookSigner.auth_headers(AuthType.TOKEN.value, {"token": "abc"}, None)
        assert headers == {"Authorization": "Bearer abc"}

    def test_token_auth_custom_header(self):
        headers = WebhookSigner.auth_headers(
            AuthType.TOKEN.value, {"token": "abc", "header": "X-Api-Key", "scheme": ""}, None
        )
        assert headers == {"X-Api-Key": "abc"}

    def test_basic_auth(self):
        headers = WebhookSigner.auth_headers(
            AuthType.BASIC.value, {"username": "user", "password": "pass"}, None
        )
        assert headers == {"Authorization": "Basic " + base64.b64encode(b"user:pass").decode("ascii")}

    def test_hmac_auth_signs_body(self):
        headers = WebhookSigner.auth_headers(AuthType.HMAC.value, {"secret": "k"}, '{"a": 1}')

        expected = WebhookSigner.generate_signature('{"a": 1}', headers["X-Webhook-Timestamp"], "k")
        assert headers["X-Webhook-Signature"] == expected

    def test_hmac_without_secret_sends_unsigned(self):
        assert WebhookSigner.auth_headers(AuthType.HMAC.value, {}, "{}") == {}

    def test_no_auth(self):
        assert WebhookSigner.auth_headers(AuthType.NONE.value, None, "{}") == {}


class TestVendorAuthHeaders:
    """Test cases for VendorConfigService.auth_headers."""

    def test_no_vendor(self):
        assert VendorConfigService.auth_headers(None, "{}") == {}

    def test_vendor_token(self, sample_vendor):
        assert VendorConfigService.auth_headers(sample_vendor, "{}") == {"Authorization": "Bearer secret-token"}
