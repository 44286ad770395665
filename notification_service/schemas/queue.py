from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field
import uuid


class NotificationMessage(BaseModel):
    """Queue envelope referencing a task; the task row stays the source of truth."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    notification_id: str
    redeliveries: int = 0  # consumer-side failures, not task retries
    enqueued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConsumeResult(BaseModel):
    status: str  # success|redelivered|failed|locked|invalid|no_message
    message_id: Optional[str] = None
    notification_id: Optional[str] = None
    error: Optional[str] = None
