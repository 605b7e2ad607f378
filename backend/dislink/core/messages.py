"""User-facing Messages: actionable text for every outcome the UI renders.

Invariants:
    - Every ResolutionFailure has a distinct message
    - System failures never reveal which dependency failed
    - Visitors are never told whether an email is already connected to the
      code owner
"""

from dislink.core.domain_types import ResolutionFailure

RESOLUTION_MESSAGES: dict[ResolutionFailure, str] = {
    ResolutionFailure.NOT_FOUND: (
        "We couldn't find this profile. Check the link and try again."
    ),
    ResolutionFailure.EXPIRED: (
        "This code has expired. Ask the owner for a new code."
    ),
    ResolutionFailure.NOT_PUBLIC: (
        "The owner has not enabled profile sharing."
    ),
}

INVITATION_SENT = "Invitation sent! Check your email to complete the connection."
INVITATION_INVALID_INPUT = "Please correct the highlighted fields."
INVITATION_SYSTEM_ERROR = "Failed to send invitation. Please try again."

# Visitor whose email already belongs to a registered profile.
CONNECTION_REQUEST_SENT = "Connection request sent! The person will be notified."
CONNECTION_REQUEST_PENDING = "Connection request already sent and pending approval."
