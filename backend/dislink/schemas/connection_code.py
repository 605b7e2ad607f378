"""Connection Code Schemas: the owner's freshly issued code."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ConnectionCodeResponse(BaseModel):
    code: str
    owner_id: UUID
    created_at: datetime
    expires_at: datetime
    public_profile_url: str
