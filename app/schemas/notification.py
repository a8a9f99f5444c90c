from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from app.schemas.common import CamelModel


class NotificationResponse(CamelModel):
    id: int
    type: str
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="payload")
    is_read: bool
    created_at: datetime
