"""Scan Schemas: visitor telemetry in, owner analytics out."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class GeoPoint(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float | None = Field(None, ge=0)


class ScanCreate(BaseModel):
    """Optional visitor context; every field may be omitted."""
    referrer: str | None = Field(None, max_length=2048)
    visitor_fingerprint: str | None = Field(None, max_length=128)
    location: GeoPoint | None = None


class ScanAccepted(BaseModel):
    status: str = "accepted"


class ScanEventResponse(BaseModel):
    id: UUID
    code: str
    outcome: str
    referrer: str | None = None
    location: dict | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ScanStatsResponse(BaseModel):
    total_scans: int
    last_scan_at: datetime | None = None
    recent: list[ScanEventResponse] = Field(default_factory=list)
