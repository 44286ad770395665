from typing import Any, Dict, Optional
from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped

from .base import BaseModel
from .enums import AuthType


class VendorConfig(BaseModel):
    """Per-vendor defaults merged into tasks created with a vendor code."""

    __tablename__ = "vendor_configs"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    vendor_code: Mapped[str] = Column(String(64), unique=True, nullable=False, index=True)
    base_url: Mapped[str] = Column(String(512), nullable=False)
    default_path: Mapped[str] = Column(String(512), nullable=False, default="")
    default_http_method: Mapped[str] = Column(String(10), nullable=False, default="POST")
    default_headers: Mapped[Optional[Dict[str, str]]] = Column(JSONB, nullable=True)
    auth_type: Mapped[str] = Column(String(16), nullable=False, default=AuthType.NONE.value)
    auth_config: Mapped[Optional[Dict[str, Any]]] = Column(JSONB, nullable=True)
    default_max_retry: Mapped[int] = Column(Integer, nullable=False, default=5)
    default_timeout_ms: Mapped[int] = Column(Integer, nullable=False, default=3000)
    enabled: Mapped[bool] = Column(Boolean, nullable=False, default=True, index=True)

    def __repr__(self) -> str:
        return f"<VendorConfig(vendor_code='{self.vendor_code}', enabled={self.enabled})>"

    @property
    def default_url(self) -> str:
        """Target URL for tasks that reference this vendor without their own URL."""
        if not self.default_path:
            return self.base_url
        return f"{self.base_url.rstrip('/')}/{self.default_path.lstrip('/')}"
