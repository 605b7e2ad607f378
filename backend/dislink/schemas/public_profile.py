"""Public Profile Schemas: what an anonymous visitor receives for a code.

Invariants:
    - PublicProfileView mirrors core.disclosure.PublicViewModel; nothing
      outside the disclosed view model is ever serialized
    - Failure bodies carry a machine-readable `error` and a user message
"""

from pydantic import BaseModel, Field

from dislink.core.domain_types import ResolutionFailure


class PublicProfileView(BaseModel):
    name: str
    profile_image: str | None = None
    job_title: str | None = None
    company: str | None = None
    bio: str | None = None
    location: str | None = None
    hometown: str | None = None
    interests: list[str] = Field(default_factory=list)
    social_links: dict[str, str] = Field(default_factory=dict)


class PublicProfileResponse(BaseModel):
    code: str
    profile: PublicProfileView


class ResolutionErrorResponse(BaseModel):
    error: ResolutionFailure
    message: str
