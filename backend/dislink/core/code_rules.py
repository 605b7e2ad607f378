"""Connection Code Rules: token minting, payload parsing, and validity checks.

Invariants:
    - Tokens come from `secrets` (CSPRNG); codes are the only access control
      for public disclosure
    - classify_code checks in fixed order: existence -> expiration -> sharing
      enabled, returning the first failure
    - A superseded code classifies as EXPIRED
    - Datetimes without tzinfo are treated as UTC (SQLite drops tzinfo)
"""

import json
import secrets
from datetime import datetime, timedelta, timezone

from dislink.core.domain_types import (
    CODE_PREFIX, MAX_CODE_LENGTH, ConnectionCodeToken, ResolutionFailure,
)


def generate_code_token(token_bytes: int = 24) -> ConnectionCodeToken:
    """Mint an unguessable code, e.g. conn_Qm9x...(32 chars for 24 bytes)."""
    return ConnectionCodeToken(f"{CODE_PREFIX}{secrets.token_urlsafe(token_bytes)}")


def compute_expiry(issued_at: datetime, validity_hours: float) -> datetime:
    return ensure_utc(issued_at) + timedelta(hours=validity_hours)


def extract_code(raw: str | None) -> str | None:
    """Normalize a scanned value to a bare code.

    Accepts the bare code or the QR JSON payload {"c": "<code>"}. Returns
    None for blank or oversized input.
    """
    if raw is None:
        return None
    value = raw.strip()
    if value.startswith("{"):
        try:
            payload = json.loads(value)
        except ValueError:
            return None
        inner = payload.get("c") if isinstance(payload, dict) else None
        value = inner.strip() if isinstance(inner, str) else ""
    if not value or len(value) > MAX_CODE_LENGTH:
        return None
    return value


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_past(deadline: datetime | None, now: datetime) -> bool:
    """True once `now` has reached the deadline. A missing deadline counts as past."""
    if deadline is None:
        return True
    return ensure_utc(now) >= ensure_utc(deadline)


def classify_code(
    *,
    found: bool,
    expires_at: datetime | None,
    superseded_at: datetime | None,
    sharing_enabled: bool,
    now: datetime,
) -> ResolutionFailure | None:
    """Return the first failing check, or None if the code resolves."""
    if not found:
        return ResolutionFailure.NOT_FOUND
    if superseded_at is not None or is_past(expires_at, now):
        return ResolutionFailure.EXPIRED
    if not sharing_enabled:
        return ResolutionFailure.NOT_PUBLIC
    return None


def public_profile_url(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/profile/{code}"
