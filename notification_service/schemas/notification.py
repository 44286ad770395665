from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from notification_service.models.enums import HttpMethod


class CreateNotificationRequest(BaseModel):
    """Request to deliver one HTTP callback to a third party."""

    vendor_code: Optional[str] = Field(None, max_length=64, description="Vendor whose defaults apply (alternative to target_url)")
    target_url: Optional[str] = Field(None, max_length=1024, description="Callback URL (alternative to vendor_code)")
    http_method: Optional[HttpMethod] = Field(None, description="GET, POST, PUT or DELETE; defaults to the vendor's or POST")
    headers: Optional[Dict[str, str]] = Field(None, description="Extra request headers")
    body: Any = Field(..., description="Callback payload, delivered as JSON")
    max_retry: Optional[int] = Field(None, gt=0, description="Maximum number of retries")
    timeout_ms: Optional[int] = Field(None, gt=0, description="Per-attempt timeout in milliseconds")
    event_id: Optional[str] = Field(None, max_length=255, description="Business idempotency key")

    @field_validator('http_method', mode='before')
    @classmethod
    def normalize_http_method(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('target_url')
    @classmethod
    def validate_target_url(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("target_url must be an http:// or https:// URL")
        return v

    @field_validator('body')
    @classmethod
    def validate_body(cls, v):
        if v is None:
            raise ValueError("body is required")
        return v


class CreateNotificationResponse(BaseModel):
    notification_id: str
    status: str = "ACCEPTED"

    @classmethod
    def accepted(cls, notification_id: str) -> "CreateNotificationResponse":
        return cls(notification_id=notification_id, status="ACCEPTED")


class NotificationStatusResponse(BaseModel):
    """Full projection of a notification task."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    notification_id: str = Field(..., validation_alias="id")
    vendor_code: Optional[str] = None
    target_url: str
    http_method: str
    status: str
    retry_count: int
    max_retry: int
    timeout_ms: int
    event_id: Optional[str] = None
    last_error_code: Optional[str] = None
    last_error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    """Uniform error body returned by the API."""

    error: str
    message: str
    details: Optional[List[Dict[str, Any]]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
