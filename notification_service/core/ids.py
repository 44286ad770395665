import secrets
from datetime import datetime, timezone


def generate_notification_id() -> str:
    """ntf_<yyyyMMddHHmmss>_<8 hex chars>; lexically ordered by creation second."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"ntf_{timestamp}_{secrets.token_hex(4)}"
