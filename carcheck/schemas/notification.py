from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class PushResult(BaseModel):
    success: bool
    message: str
    token: Optional[str] = None


class BroadcastResult(BaseModel):
    sent: int = 0
    total: int = 0
    failed_batches: int = 0


class BroadcastCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1)
    data: Optional[dict[str, Any]] = None


class PushTokenRegister(BaseModel):
    token: str = Field(..., min_length=1)


class NotificationBroadcast(BaseModel):
    """Append-only audit row of an admin mass push."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str | int] = None
    sender_id: Optional[str] = None
    title: str
    body: str
    data: Optional[dict[str, Any]] = None
    recipients_count: int
    sent_at: datetime
