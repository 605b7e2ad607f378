"""Connection Request Schemas: owner view of requests from registered visitors."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ConnectionRequestResponse(BaseModel):
    id: UUID
    requester_id: UUID
    code: str
    message: str | None = None
    location: dict | None = None
    status: str
    created_at: datetime
    decided_at: datetime | None = None

    model_config = {"from_attributes": True}
