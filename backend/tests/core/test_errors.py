"""Error Hierarchy: verifies codes, statuses, and the REST envelope."""

import pytest

from dislink.core.errors import (
    AuthenticationRequiredError, EmailDispatchError, ErrorCategory, ErrorContext,
    InvalidTransitionError, PermissionDeniedError, PersistenceError,
    ProfileIncompleteError, ResourceNotFoundError,
)


@pytest.mark.parametrize("error,code,status", [
    (ProfileIncompleteError(["first_name"]), "PROFILE_INCOMPLETE", 422),
    (ResourceNotFoundError("Profile", "x"), "RESOURCE_NOT_FOUND", 404),
    (AuthenticationRequiredError(), "AUTHENTICATION_REQUIRED", 401),
    (PermissionDeniedError("no"), "PERMISSION_DENIED", 403),
    (InvalidTransitionError("accepted", "rejected"), "INVALID_TRANSITION", 409),
    (PersistenceError("down", "code lookup"), "PERSISTENCE_ERROR", 503),
    (EmailDispatchError("down", "server_error"), "EMAIL_DISPATCH_ERROR", 503),
])
def test_codes_and_statuses(error, code, status):
    assert error.code == code
    assert error.http_status == status


def test_to_response_prefers_user_message():
    error = InvalidTransitionError(
        "expired", "sent",
        ErrorContext(invitation_id="abc", user_message="This invitation has expired."),
    )

    body = error.to_response()["error"]

    assert body["message"] == "This invitation has expired."
    assert body["category"] == ErrorCategory.BUSINESS_RULE.value
    assert body["context"]["invitation_id"] == "abc"


def test_email_dispatch_error_carries_retry_after():
    error = EmailDispatchError("slow down", "rate_limit", retry_after_ms=2000)
    assert error.to_response()["error"]["context"]["retry_after_ms"] == 2000


def test_invalid_transition_names_its_subject():
    error = InvalidTransitionError("approved", "declined", subject="connection request")
    assert error.message == "Cannot move connection request from 'approved' to 'declined'"
