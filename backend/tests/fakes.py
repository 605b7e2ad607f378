"""Test doubles and seed helpers shared by service and route tests.

Invariants:
    - FakeMailer records instead of sending; can be told to fail
    - FixedClock is deterministic; advance() moves it forward
    - seed_profile writes a real Profile row (repositories stay real)
"""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from dislink.core.errors import PersistenceError
from dislink.core.format_invitation import InvitationEmail
from dislink.models.profile import Profile


class FakeMailer:
    def __init__(self, fail_with: Exception | None = None):
        self.sent: list[InvitationEmail] = []
        self.fail_with = fail_with

    async def send(self, email: InvitationEmail) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(email)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


class BrokenCodeRepository:
    """Every call fails the way an unreachable database does."""

    async def get(self, code: str):
        raise PersistenceError("connection refused", "code lookup")

    async def add(self, **fields):
        raise PersistenceError("connection refused", "code insert")

    async def supersede_active(self, owner_id, *, keep_code, at):
        raise PersistenceError("connection refused", "code supersede")

    async def record_usage(self, code, at):
        raise PersistenceError("connection refused", "code usage")


def profile_fields(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "email": "ada@example.com",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "job_title": "Engineer",
        "company": "Analytical Engines",
        "profile_image": "https://cdn.example.com/ada.png",
        "bio": {"about": "Numbers and poetry", "location": "London", "from": "Marylebone"},
        "interests": ["mathematics", "poetry"],
        "social_links": {
            "linkedin": "https://linkedin.com/in/ada",
            "twitter": "https://x.com/ada",
        },
        "public_profile": {
            "enabled": True,
            "allowedFields": {
                "bio": True,
                "location": False,
                "interests": True,
                "company": True,
                "jobTitle": True,
            },
            "defaultSharedLinks": {"linkedin": True, "twitter": False},
        },
    }
    fields.update(overrides)
    return fields


async def seed_profile(db: AsyncSession, **overrides: Any) -> Profile:
    profile = Profile(**profile_fields(**overrides))
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile
