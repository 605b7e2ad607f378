"""Invitation Schemas: visitor submissions and owner-facing invitation views.

Invariants:
    - InvitationCreate is deliberately loose: email format, message length,
      and location bounds are checked by core.invitation_rules so the
      response carries per-field errors in one shape
    - Owner views never include another owner's rows (enforced by services)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from dislink.core.domain_types import InvitationFailureKind, ResolutionFailure


class InvitationCreate(BaseModel):
    email: str | None = None
    message: str | None = None
    location: dict | None = None

    @field_validator("message")
    @classmethod
    def blank_message_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class FieldError(BaseModel):
    field: str
    error_code: str
    message: str


class InvitationSubmitResponse(BaseModel):
    success: bool
    message: str
    invitation_id: UUID | None = None
    connection_request_id: UUID | None = None
    failure_kind: InvitationFailureKind | None = None
    reason: ResolutionFailure | None = None
    field_errors: list[FieldError] = Field(default_factory=list)


class InvitationResponse(BaseModel):
    """Owner view of one invitation."""
    id: UUID
    code: str
    email: str
    message: str | None = None
    location: dict | None = None
    status: str
    created_at: datetime
    expires_at: datetime
    email_sent_at: datetime | None = None
    accepted_at: datetime | None = None
    accepted_user_id: UUID | None = None

    model_config = {"from_attributes": True}
