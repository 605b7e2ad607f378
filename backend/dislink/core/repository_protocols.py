"""Boundary Protocols: contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection
    - Repository failures surface as PersistenceError, never raw driver errors

Design Decisions:
    - Protocol over ABC: structural subtyping, so tests can pass plain fakes
    - *Like protocols describe the record attributes services read, which
      keeps services decoupled from the ORM classes
"""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from dislink.core.format_invitation import InvitationEmail


# ─── Record shapes ───────────────────────────────────────────────

class ProfileLike(Protocol):
    id: UUID
    email: str | None

    def shareable_fields(self) -> dict[str, Any]: ...


class ConnectionCodeLike(Protocol):
    code: str
    owner_id: UUID
    profile_snapshot: dict
    expires_at: datetime
    superseded_at: datetime | None
    scan_count: int
    created_at: datetime


class InvitationLike(Protocol):
    id: UUID
    code: str
    owner_id: UUID
    email: str
    message: str | None
    location: dict | None
    status: str
    created_at: datetime
    expires_at: datetime
    email_sent_at: datetime | None
    accepted_at: datetime | None
    accepted_user_id: UUID | None


class ConnectionRequestLike(Protocol):
    id: UUID
    owner_id: UUID
    requester_id: UUID
    code: str
    message: str | None
    location: dict | None
    status: str
    created_at: datetime
    decided_at: datetime | None


class ScanEventLike(Protocol):
    id: UUID
    code: str
    owner_id: UUID | None
    outcome: str
    user_agent: str | None
    referrer: str | None
    location: dict | None
    created_at: datetime


# ─── Repositories ────────────────────────────────────────────────

class ProfileRepository(Protocol):
    """Read access to the external profile store."""
    async def get(self, profile_id: UUID) -> ProfileLike | None: ...
    async def find_by_email(self, email: str) -> ProfileLike | None:
        """Case-insensitive match on the profile email."""
        ...


class ConnectionCodeRepository(Protocol):
    async def get(self, code: str) -> ConnectionCodeLike | None: ...
    async def add(
        self, *, code: str, owner_id: UUID, profile_snapshot: dict,
        expires_at: datetime, created_at: datetime,
    ) -> ConnectionCodeLike: ...
    async def supersede_active(
        self, owner_id: UUID, *, keep_code: str, at: datetime,
    ) -> int: ...
    async def record_usage(self, code: str, at: datetime) -> None: ...


class ScanEventRepository(Protocol):
    async def add(self, **fields: object) -> None: ...
    async def count_for_owner(self, owner_id: UUID) -> int: ...
    async def recent_for_owner(
        self, owner_id: UUID, limit: int,
    ) -> list[ScanEventLike]: ...


class InvitationRepository(Protocol):
    async def get(self, invitation_id: UUID) -> InvitationLike | None: ...
    async def find_by_code_and_email(
        self, code: str, email: str,
    ) -> InvitationLike | None: ...
    async def add(self, **fields: object) -> InvitationLike | None:
        """Insert; returns None when (code, email) already exists."""
        ...
    async def update(
        self, invitation_id: UUID, **fields: object,
    ) -> InvitationLike: ...
    async def list_open_for_email(self, email: str) -> list[InvitationLike]: ...
    async def list_for_owner(
        self, owner_id: UUID, statuses: tuple[str, ...] | None = None,
    ) -> list[InvitationLike]: ...


class ConnectionRequestRepository(Protocol):
    async def get(self, request_id: UUID) -> ConnectionRequestLike | None: ...
    async def find(
        self, owner_id: UUID, requester_id: UUID,
    ) -> ConnectionRequestLike | None: ...
    async def add(self, **fields: object) -> ConnectionRequestLike | None:
        """Insert; returns None when (owner_id, requester_id) already exists."""
        ...
    async def update(
        self, request_id: UUID, **fields: object,
    ) -> ConnectionRequestLike: ...
    async def list_for_owner(
        self, owner_id: UUID, statuses: tuple[str, ...] | None = None,
    ) -> list[ConnectionRequestLike]: ...


class ConnectionRepository(Protocol):
    async def create_if_absent(
        self, *, user_a_id: UUID, user_b_id: UUID,
        initiator_id: UUID, invitation_id: UUID | None,
    ) -> bool:
        """Atomic insert-if-not-exists; True only when a row was created."""
        ...
    async def exists(self, user_a_id: UUID, user_b_id: UUID) -> bool: ...


# ─── Outbound messaging ──────────────────────────────────────────

class InvitationMailer(Protocol):
    """Sends rendered invitation emails. Raises EmailDispatchError on failure."""
    async def send(self, email: InvitationEmail) -> None: ...
