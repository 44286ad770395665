from datetime import datetime
from typing import Dict, Optional
from sqlalchemy import Column, Integer, String, Text, DateTime, Index, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped

from .base import BaseModel
from .enums import TaskStatus


class NotificationTask(BaseModel):
    """One unit of outbound callback delivery with its own retry state."""

    __tablename__ = "notification_tasks"
    __table_args__ = (
        # At most one in-progress task per business event
        Index(
            "uq_notification_tasks_active_event_id",
            "event_id",
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'RETRYING')"),
        ),
        Index("ix_notification_tasks_status_updated_at", "status", "updated_at"),
    )

    id: Mapped[str] = Column(String(64), primary_key=True)
    vendor_code: Mapped[Optional[str]] = Column(String(64), nullable=True, index=True)
    target_url: Mapped[str] = Column(String(1024), nullable=False)
    http_method: Mapped[str] = Column(String(10), nullable=False)
    headers: Mapped[Optional[Dict[str, str]]] = Column(JSONB, nullable=True)
    body_json: Mapped[Optional[str]] = Column(Text, nullable=True)
    status: Mapped[str] = Column(String(16), nullable=False, default=TaskStatus.PENDING.value)
    retry_count: Mapped[int] = Column(Integer, nullable=False, default=0)
    max_retry: Mapped[int] = Column(Integer, nullable=False)
    timeout_ms: Mapped[int] = Column(Integer, nullable=False)
    last_error_code: Mapped[Optional[str]] = Column(String(32), nullable=True)
    last_error_message: Mapped[Optional[str]] = Column(Text, nullable=True)
    event_id: Mapped[Optional[str]] = Column(String(255), nullable=True)
    last_attempt_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<NotificationTask(id={self.id}, status={self.status}, retry_count={self.retry_count})>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TaskStatus.terminal()

    @property
    def is_in_progress(self) -> bool:
        return self.status in TaskStatus.in_progress()

    def mark_success(self):
        self.status = TaskStatus.SUCCESS.value
        self.last_error_code = None
        self.last_error_message = None

    def mark_failed(self):
        self.status = TaskStatus.FAILED.value

    def record_error(self, error_code: str, error_message: Optional[str]):
        self.last_error_code = error_code
        self.last_error_message = error_message

    def schedule_retry(self):
        """Consume one unit of retry budget."""
        self.retry_count += 1
        self.status = TaskStatus.RETRYING.value
