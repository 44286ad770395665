import base64
import hmac
import hashlib
import time
from typing import Any, Dict, Optional

from notification_service.models.enums import AuthType
from .logging import get_logger

logger = get_logger(__name__)


class WebhookSigner:
    """HMAC-SHA256 signing of outbound callbacks, plus static vendor credentials."""

    @staticmethod
    def generate_signature(payload: str, timestamp: str, secret: str) -> str:
        """
        Generate HMAC-SHA256 signature for a callback payload.

        Format: sha256=<hex_digest>
        Payload to sign: timestamp.payload

        Args:
            payload: Serialized request body
            timestamp: Unix timestamp as string
            secret: Vendor signing secret

        Returns:
            Signature in format: sha256=<hex_digest>
        """
        signed_payload = f"{timestamp}.{payload}"

        signature = hmac.new(
            secret.encode('utf-8'),
            signed_payload.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()

        return f"sha256={signature}"

    @classmethod
    def signed_headers(cls, payload: Optional[str], secret: str, timestamp: Optional[str] = None) -> Dict[str, str]:
        """Signature headers for one attempt; the timestamp is taken at call time."""
        timestamp = timestamp or str(int(time.time()))
        return {
            "X-Webhook-Signature": cls.generate_signature(payload or "", timestamp, secret),
            "X-Webhook-Timestamp": timestamp,
        }

    @classmethod
    def auth_headers(
        cls,
        auth_type: str,
        auth_config: Optional[Dict[str, Any]],
        payload: Optional[str]
    ) -> Dict[str, str]:
        """
        Build the authentication headers a vendor expects.

        auth_config keys by type:
            TOKEN: token, optional header (default Authorization) and scheme (default Bearer)
            BASIC: username, password
            HMAC: secret
        """
        config = auth_config or {}

        if auth_type == AuthType.TOKEN.value:
            header = config.get("header", "Authorization")
            scheme = config.get("scheme", "Bearer")
            token = config.get("token", "")
            return {header: f"{scheme} {token}" if scheme else token}

        if auth_type == AuthType.BASIC.value:
            raw = f"{config.get('username', '')}:{config.get('password', '')}"
            encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
            return {"Authorization": f"Basic {encoded}"}

        if auth_type == AuthType.HMAC.value:
            secret = config.get("secret")
            if not secret:
                logger.warning("HMAC auth configured without a secret, sending unsigned")
                return {}
            return cls.signed_headers(payload, secret)

        return {}
