"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - ProfileId, InvitationId wrap UUIDs; ConnectionCodeToken wraps str
    - All valid states encoded as Enums, no raw string matching
    - DisclosableField values are the canonical (snake_case) preference keys

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

ProfileId = NewType("ProfileId", UUID)
InvitationId = NewType("InvitationId", UUID)
ConnectionRequestId = NewType("ConnectionRequestId", UUID)
ConnectionCodeToken = NewType("ConnectionCodeToken", str)


# ─── Constants ───────────────────────────────────────────────────

CODE_PREFIX = "conn_"
MAX_CODE_LENGTH = 128
REQUIRED_PROFILE_FIELDS = ("first_name", "last_name")
SCAN_STATS_LIMIT = 50


# ─── Enums ───────────────────────────────────────────────────────

class ResolutionFailure(str, Enum):
    """Why a connection code did not resolve to a shareable snapshot."""
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    NOT_PUBLIC = "not_public"


class InvitationStatus(str, Enum):
    """Invitation lifecycle states, maps to the DB `status` column."""
    PENDING = "pending"
    SENT = "sent"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REJECTED = "rejected"


class ConnectionRequestStatus(str, Enum):
    """Request from an already-registered visitor, decided by the code owner."""
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class DisclosableField(str, Enum):
    """Profile fields gated by SharingPreferences.allowed_fields."""
    BIO = "bio"
    LOCATION = "location"
    INTERESTS = "interests"
    COMPANY = "company"
    JOB_TITLE = "job_title"


class InvitationFailureKind(str, Enum):
    """Failure classes the UI renders differently."""
    INVALID_INPUT = "invalid_input"
    CODE_REJECTED = "code_rejected"
    SYSTEM_ERROR = "system_error"


# The product stores preference keys in camelCase; both spellings map here.
FIELD_KEY_ALIASES: dict[str, DisclosableField] = {
    "bio": DisclosableField.BIO,
    "location": DisclosableField.LOCATION,
    "interests": DisclosableField.INTERESTS,
    "company": DisclosableField.COMPANY,
    "job_title": DisclosableField.JOB_TITLE,
    "jobTitle": DisclosableField.JOB_TITLE,
}

# Statuses the completion hook still acts on.
OPEN_INVITATION_STATUSES = (InvitationStatus.PENDING, InvitationStatus.SENT)

