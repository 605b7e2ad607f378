"""Connection Completion: turns open invitations into connections after registration.

Invariants:
    - Runs after the auth collaborator established the new user's first
      session; the profile email is the verified email
    - Only invitations in pending/sent are acted on
    - Idempotent: the connection insert is insert-if-not-exists on the
      canonical pair, so re-runs and concurrent runs create one row
    - Best-effort: NEVER raises; failures are logged and reported

Design Decisions:
    - The connection is written before the invitation is marked accepted:
      a crash between the two leaves an open invitation whose re-run finds
      the existing connection and completes the status change
    - Each invitation is handled independently; one failure does not stop
      the rest
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from dislink.core.code_rules import is_past
from dislink.core.connection_rules import canonical_pair
from dislink.core.domain_types import InvitationStatus
from dislink.core.invitation_rules import normalize_email
from dislink.core.repository_protocols import (
    ConnectionRepository, InvitationRepository, ProfileRepository,
)
from dislink.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass
class CompletionReport:
    user_id: UUID
    connected: list[UUID] = field(default_factory=list)
    already_connected: list[UUID] = field(default_factory=list)
    expired: list[UUID] = field(default_factory=list)
    rejected: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)
    error: str | None = None

    @property
    def processed(self) -> int:
        return (
            len(self.connected) + len(self.already_connected)
            + len(self.expired) + len(self.rejected)
        )


@dataclass(frozen=True)
class _OpenInvitation:
    id: UUID
    owner_id: UUID
    expires_at: datetime


class ConnectionCompletion:
    def __init__(
        self,
        profiles: ProfileRepository,
        invitations: InvitationRepository,
        connections: ConnectionRepository,
        clock: Clock = utc_now,
    ):
        self.profiles = profiles
        self.invitations = invitations
        self.connections = connections
        self.clock = clock

    async def complete_qr_connection(self, new_user_id: UUID) -> CompletionReport:
        report = CompletionReport(user_id=new_user_id)
        try:
            profile = await self.profiles.get(new_user_id)
            if profile is None or not profile.email:
                logger.info(
                    "No profile email yet, nothing to complete",
                    extra={"user_id": new_user_id},
                )
                return report
            # Plain values: a rollback inside the loop expires loaded rows.
            pending = [
                _OpenInvitation(i.id, i.owner_id, i.expires_at)
                for i in await self.invitations.list_open_for_email(
                    normalize_email(profile.email),
                )
            ]
        except Exception as e:
            logger.error(
                f"Connection completion lookup failed: {e}",
                extra={"user_id": new_user_id},
            )
            report.error = "lookup_failed"
            return report

        now = self.clock()
        for invitation in pending:
            try:
                bucket = await self._complete_one(invitation, new_user_id, now)
            except Exception as e:
                logger.error(
                    f"Connection completion failed: {e}",
                    extra={"user_id": new_user_id, "invitation_id": invitation.id},
                )
                report.failed.append(invitation.id)
                continue
            getattr(report, bucket).append(invitation.id)

        if pending:
            logger.info(
                f"Completed {report.processed}/{len(pending)} invitation(s), "
                f"{len(report.connected)} new connection(s)",
                extra={"user_id": new_user_id},
            )
        return report

    async def _complete_one(
        self, invitation: _OpenInvitation, new_user_id: UUID, now: datetime,
    ) -> str:
        """Settle one invitation. Returns the CompletionReport bucket name."""
        if is_past(invitation.expires_at, now):
            await self.invitations.update(
                invitation.id, status=InvitationStatus.EXPIRED.value,
            )
            return "expired"
        if invitation.owner_id == new_user_id:
            await self.invitations.update(
                invitation.id, status=InvitationStatus.REJECTED.value,
            )
            return "rejected"

        user_a, user_b = canonical_pair(invitation.owner_id, new_user_id)
        created = await self.connections.create_if_absent(
            user_a_id=user_a,
            user_b_id=user_b,
            initiator_id=invitation.owner_id,
            invitation_id=invitation.id,
        )
        await self.invitations.update(
            invitation.id,
            status=InvitationStatus.ACCEPTED.value,
            accepted_at=now,
            accepted_user_id=new_user_id,
        )
        if created:
            logger.info(
                "Connection created",
                extra={"user_id": new_user_id, "invitation_id": invitation.id},
            )
            return "connected"
        return "already_connected"

