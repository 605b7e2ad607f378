"""Auth Event Schemas: notifications from the auth collaborator."""

from uuid import UUID

from pydantic import BaseModel, Field


class SessionEstablished(BaseModel):
    user_id: UUID


class CompletionResponse(BaseModel):
    user_id: UUID
    connected: list[UUID] = Field(default_factory=list)
    already_connected: list[UUID] = Field(default_factory=list)
    expired: list[UUID] = Field(default_factory=list)
    rejected: list[UUID] = Field(default_factory=list)
    failed: list[UUID] = Field(default_factory=list)
