from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

RequestStatus = Literal["pending", "processing", "done", "rejected"]


class RequestCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_location: str = Field(..., alias="from", min_length=1)
    to_location: str = Field(..., alias="to", min_length=1)
    time: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=6, max_length=20)


class InspectionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | int
    from_location: str = Field(..., alias="from")
    to_location: str = Field(..., alias="to")
    time: str
    phone: str
    status: RequestStatus = "pending"
    created_at: Optional[datetime] = None


class RequestStats(BaseModel):
    admin_users: int = 0
    total_requests: int = 0
    pending_requests: int = 0
    processing_requests: int = 0
    rejected_requests: int = 0
    completed_requests: int = 0
