"""TELEMON — Config Store Models."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel
from sqlmodel import SQLModel, Field


class LocalSetting(SQLModel, table=True):
    """Local fallback copy of a backend value, stored as JSON.

    Keys: ``metricsConfig`` (list of metric configs) and ``refreshInterval``.
    """

    __tablename__ = "local_settings"

    key: str = Field(primary_key=True, description="Setting key")
    value_json: str = Field(description="JSON-encoded value")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StoreResult(BaseModel):
    """Outcome of a config store mutation.

    A result with a ``warning`` was applied to the local copy only. It is
    still authoritative for subsequent reads.
    """

    success: bool = True
    id: Optional[str] = None
    warning: Optional[str] = None
    data: Optional[Any] = None

    @property
    def local_only(self) -> bool:
        return self.success and self.warning is not None
