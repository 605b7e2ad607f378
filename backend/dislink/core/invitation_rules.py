"""Invitation Rules: input validation and status transitions for invitations.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Return error dict on violation, None on success
    - Error dicts carry the offending `field` so the UI can render it inline
    - accepted is terminal; expired/rejected may be reopened by resubmission
"""

import re

from dislink.core.domain_types import InvitationStatus

_ALLOWED_TRANSITIONS: dict[InvitationStatus, frozenset[InvitationStatus]] = {
    InvitationStatus.PENDING: frozenset({
        InvitationStatus.SENT, InvitationStatus.ACCEPTED,
        InvitationStatus.EXPIRED, InvitationStatus.REJECTED,
    }),
    InvitationStatus.SENT: frozenset({
        InvitationStatus.PENDING, InvitationStatus.ACCEPTED,
        InvitationStatus.EXPIRED, InvitationStatus.REJECTED,
    }),
    InvitationStatus.EXPIRED: frozenset({InvitationStatus.PENDING}),
    InvitationStatus.REJECTED: frozenset({InvitationStatus.PENDING}),
    InvitationStatus.ACCEPTED: frozenset(),
}


def normalize_email(email: str) -> str:
    return email.strip().lower()


# --- Field checks -------------------------------------------------------------

def check_email_format(email: str | None, pattern: str) -> dict | None:
    """Email must be present and match the configured pattern."""
    if not email or not email.strip():
        return _error("EMAIL_REQUIRED", "email", "Email is required.")
    if not re.fullmatch(pattern, email.strip()):
        return _error(
            "EMAIL_INVALID", "email", "Please enter a valid email address.",
        )
    return None


def check_message_length(message: str | None, max_length: int) -> dict | None:
    if message is not None and len(message) > max_length:
        return _error(
            "MESSAGE_TOO_LONG", "message",
            f"Message must be {max_length} characters or fewer.",
        )
    return None


def check_location(location: dict | None) -> dict | None:
    """Optional geolocation: latitude in [-90, 90], longitude in [-180, 180]."""
    if location is None:
        return None
    lat = location.get("latitude")
    lon = location.get("longitude")
    if not _is_number(lat) or not _is_number(lon):
        return _error(
            "LOCATION_INVALID", "location",
            "Location needs numeric latitude and longitude.",
        )
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return _error(
            "LOCATION_OUT_OF_RANGE", "location",
            "Location coordinates are out of range.",
        )
    return None


def validate_invitation_input(
    email: str | None,
    message: str | None,
    location: dict | None,
    *,
    email_pattern: str,
    max_message_length: int,
) -> list[dict]:
    """Run every field check; returns all violations (empty list when valid)."""
    checks = (
        check_email_format(email, email_pattern),
        check_message_length(message, max_message_length),
        check_location(location),
    )
    return [error for error in checks if error is not None]


# --- Status transitions -------------------------------------------------------

def check_transition(
    current: InvitationStatus, target: InvitationStatus,
) -> dict | None:
    if target not in _ALLOWED_TRANSITIONS[current]:
        return _error(
            "INVALID_TRANSITION", "status",
            f"Cannot move invitation from '{current.value}' to '{target.value}'.",
        )
    return None


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _error(code: str, field: str, message: str) -> dict:
    return {"status": "error", "error_code": code, "field": field, "message": message}
