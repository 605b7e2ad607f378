"""Invitation Intake: turns a visitor's "connect with me" request into an email.

Invariants:
    - Input is validated before any IO; invalid input persists nothing
    - The code is re-validated on submission (it may have expired or been
      made private since the page was rendered)
    - An email that already belongs to a profile becomes a connection request
      for the owner to decide, not a registration invite
    - One invitation per (code, email): resubmission updates the row
    - An accepted invitation is never reopened and never re-emailed; the
      visitor gets the ordinary success message so the form never confirms
      an existing connection
    - The email shows only the disclosure-filtered view of the owner
    - Status moves to `sent` only after the mailer returned; on persistence
      or email failure the row stays pending and the caller gets a generic,
      retryable failure

Design Decisions:
    - Visitor outcomes are returned as InvitationResult, never raised, so the
      route maps them to status codes in one place
    - Owner operations (list/cancel/resend) raise DislinkError subclasses,
      handled by the global FastAPI handlers
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import UUID

from dislink.core.code_rules import is_past
from dislink.core.disclosure import filter_snapshot
from dislink.core.domain_types import (
    InvitationFailureKind, InvitationStatus, OPEN_INVITATION_STATUSES,
    ResolutionFailure,
)
from dislink.core.errors import (
    EmailDispatchError, ErrorContext, InvalidTransitionError,
    PermissionDeniedError, PersistenceError, ResourceNotFoundError,
)
from dislink.core.format_invitation import format_invitation_email
from dislink.core.invitation_rules import (
    check_transition, normalize_email, validate_invitation_input,
)
from dislink.core.messages import (
    INVITATION_INVALID_INPUT, INVITATION_SENT, INVITATION_SYSTEM_ERROR,
    RESOLUTION_MESSAGES,
)
from dislink.core.repository_protocols import (
    InvitationLike, InvitationMailer, InvitationRepository, ProfileRepository,
)
from dislink.core.snapshot import ProfileSnapshot, snapshot_from_profile
from dislink.services.clock import Clock, utc_now
from dislink.services.code_validator import CodeResolution, CodeValidator
from dislink.services.connection_requests import ConnectionRequests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvitationResult:
    success: bool
    message: str
    invitation_id: UUID | None = None
    connection_request_id: UUID | None = None
    failure_kind: InvitationFailureKind | None = None
    reason: ResolutionFailure | None = None
    field_errors: list[dict] = field(default_factory=list)


class InvitationIntake:
    def __init__(
        self,
        validator: CodeValidator,
        invitations: InvitationRepository,
        profiles: ProfileRepository,
        mailer: InvitationMailer,
        connection_requests: ConnectionRequests,
        *,
        email_pattern: str,
        max_message_length: int,
        validity_hours: float,
        public_base_url: str,
        clock: Clock = utc_now,
    ):
        self.validator = validator
        self.invitations = invitations
        self.profiles = profiles
        self.mailer = mailer
        self.connection_requests = connection_requests
        self.email_pattern = email_pattern
        self.max_message_length = max_message_length
        self.validity_hours = validity_hours
        self.public_base_url = public_base_url
        self.clock = clock

    @property
    def validity_days(self) -> int:
        return max(1, round(self.validity_hours / 24))

    # ─── Visitor flow ────────────────────────────────────────────

    async def submit_invitation(
        self,
        code: str,
        email: str | None,
        message: str | None = None,
        location: dict | None = None,
    ) -> InvitationResult:
        errors = validate_invitation_input(
            email, message, location,
            email_pattern=self.email_pattern,
            max_message_length=self.max_message_length,
        )
        if errors:
            logger.info(
                f"Invitation rejected: {len(errors)} invalid field(s)",
                extra={"code": code, "error_code": errors[0]["error_code"]},
            )
            return InvitationResult(
                success=False,
                message=INVITATION_INVALID_INPUT,
                failure_kind=InvitationFailureKind.INVALID_INPUT,
                field_errors=errors,
            )

        try:
            resolution = await self.validator.validate(code)
            if not resolution.ok:
                return InvitationResult(
                    success=False,
                    message=RESOLUTION_MESSAGES[resolution.failure],
                    failure_kind=InvitationFailureKind.CODE_REJECTED,
                    reason=resolution.failure,
                )
            normalized = normalize_email(email)
            registered = await self.profiles.find_by_email(normalized)
            if registered is not None:
                outcome = await self.connection_requests.request_connection(
                    owner_id=resolution.owner_id,
                    requester_id=registered.id,
                    code=resolution.code,
                    message=message,
                    location=location,
                )
                return InvitationResult(
                    success=True,
                    message=outcome.message,
                    connection_request_id=outcome.request_id,
                )

            invitation = await self._upsert(resolution, normalized, message, location)
            if invitation.status == InvitationStatus.ACCEPTED.value:
                logger.info(
                    "Invitation already accepted, not re-sent",
                    extra={"code": resolution.code, "invitation_id": invitation.id},
                )
                return InvitationResult(
                    success=True, message=INVITATION_SENT, invitation_id=invitation.id,
                )
            await self._dispatch(invitation, resolution.snapshot)
        except (PersistenceError, EmailDispatchError, LookupError) as e:
            logger.error(
                f"Invitation submission failed: {e}",
                extra={"code": code, "error_code": getattr(e, "code", None)},
            )
            return InvitationResult(
                success=False,
                message=INVITATION_SYSTEM_ERROR,
                failure_kind=InvitationFailureKind.SYSTEM_ERROR,
            )

        logger.info(
            "Invitation sent",
            extra={"code": resolution.code, "invitation_id": invitation.id},
        )
        return InvitationResult(
            success=True, message=INVITATION_SENT, invitation_id=invitation.id,
        )

    async def _upsert(
        self,
        resolution: CodeResolution,
        email: str,
        message: str | None,
        location: dict | None,
    ) -> InvitationLike:
        now = self.clock()
        expires_at = now + timedelta(hours=self.validity_hours)
        existing = await self.invitations.find_by_code_and_email(
            resolution.code, email,
        )
        if existing is None:
            created = await self.invitations.add(
                id=uuid.uuid4(),
                code=resolution.code,
                owner_id=resolution.owner_id,
                email=email,
                message=message,
                location=location,
                status=InvitationStatus.PENDING.value,
                created_at=now,
                updated_at=now,
                expires_at=expires_at,
            )
            if created is not None:
                return created
            # Lost the insert race; the winner's row is updated below.
            existing = await self.invitations.find_by_code_and_email(
                resolution.code, email,
            )
            if existing is None:
                raise PersistenceError(
                    "row missing after unique conflict", "invitation upsert",
                )

        current = InvitationStatus(existing.status)
        if current is InvitationStatus.ACCEPTED:
            return existing
        if current is not InvitationStatus.PENDING and check_transition(
            current, InvitationStatus.PENDING,
        ):
            raise InvalidTransitionError(current.value, InvitationStatus.PENDING.value)
        return await self.invitations.update(
            existing.id,
            message=message,
            location=location,
            status=InvitationStatus.PENDING.value,
            expires_at=expires_at,
        )

    async def _dispatch(
        self, invitation: InvitationLike, inviter: ProfileSnapshot,
    ) -> InvitationLike:
        """Send the email (owner shown as the public view), then mark it sent."""
        email = format_invitation_email(
            to=invitation.email,
            inviter=filter_snapshot(inviter),
            invitation_id=str(invitation.id),
            base_url=self.public_base_url,
            validity_days=self.validity_days,
            message=invitation.message,
        )
        await self.mailer.send(email)
        return await self.invitations.update(
            invitation.id,
            status=InvitationStatus.SENT.value,
            email_sent_at=self.clock(),
        )

    # ─── Owner operations ────────────────────────────────────────

    async def list_invitations(
        self, owner_id: UUID, statuses: tuple[str, ...] | None = None,
    ) -> list[InvitationLike]:
        return await self.invitations.list_for_owner(owner_id, statuses)

    async def cancel_invitation(
        self, owner_id: UUID, invitation_id: UUID,
    ) -> InvitationLike:
        invitation = await self._owned_invitation(owner_id, invitation_id)
        current = InvitationStatus(invitation.status)
        if check_transition(current, InvitationStatus.REJECTED):
            raise InvalidTransitionError(
                current.value, InvitationStatus.REJECTED.value,
                ErrorContext(invitation_id=str(invitation_id)),
            )
        logger.info(
            "Invitation cancelled by owner",
            extra={"owner_id": owner_id, "invitation_id": invitation_id},
        )
        return await self.invitations.update(
            invitation_id, status=InvitationStatus.REJECTED.value,
        )

    async def resend_invitation(
        self, owner_id: UUID, invitation_id: UUID,
    ) -> InvitationLike:
        """Re-send the email for an open invitation, using the owner's current profile.

        Raises InvalidTransitionError when the invitation is closed or past
        its expiry (which is persisted as `expired` on the way out).
        """
        invitation = await self._owned_invitation(owner_id, invitation_id)
        current = InvitationStatus(invitation.status)
        if current not in OPEN_INVITATION_STATUSES:
            raise InvalidTransitionError(
                current.value, InvitationStatus.SENT.value,
                ErrorContext(invitation_id=str(invitation_id)),
            )
        if is_past(invitation.expires_at, self.clock()):
            await self.invitations.update(
                invitation_id, status=InvitationStatus.EXPIRED.value,
            )
            raise InvalidTransitionError(
                InvitationStatus.EXPIRED.value, InvitationStatus.SENT.value,
                ErrorContext(
                    invitation_id=str(invitation_id),
                    user_message="This invitation has expired.",
                ),
            )

        profile = await self.profiles.get(owner_id)
        if profile is None:
            raise ResourceNotFoundError("Profile", str(owner_id))
        return await self._dispatch(
            invitation, snapshot_from_profile(profile.shareable_fields()),
        )

    async def _owned_invitation(
        self, owner_id: UUID, invitation_id: UUID,
    ) -> InvitationLike:
        invitation = await self.invitations.get(invitation_id)
        if invitation is None:
            raise ResourceNotFoundError("Invitation", str(invitation_id))
        if invitation.owner_id != owner_id:
            raise PermissionDeniedError(
                "Invitation belongs to another profile",
                ErrorContext(owner_id=str(owner_id), invitation_id=str(invitation_id)),
            )
        return invitation
