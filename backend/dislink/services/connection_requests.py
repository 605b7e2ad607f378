"""Connection Requests: visitors who already have a profile ask the owner directly.

Invariants:
    - One request per (owner, requester): resubmission updates the row
    - A request never creates a connection by itself; only the owner's
      approval does
    - Visitor outcomes never reveal whether the pair is already connected
    - Approval writes the connection before marking the request approved,
      so a re-run after a crash finds the existing connection
    - Owner operations raise DislinkError subclasses for the global handlers

Design Decisions:
    - The visitor is anonymous (the code is the only credential), so the
      email they typed is not proof they own that account; the owner decides
"""

import logging
import uuid
from dataclasses import dataclass
from uuid import UUID

from dislink.core.connection_rules import canonical_pair, check_request_transition
from dislink.core.domain_types import ConnectionRequestStatus
from dislink.core.errors import (
    ErrorContext, InvalidTransitionError, PermissionDeniedError,
    PersistenceError, ResourceNotFoundError,
)
from dislink.core.messages import CONNECTION_REQUEST_PENDING, CONNECTION_REQUEST_SENT
from dislink.core.repository_protocols import (
    ConnectionRepository, ConnectionRequestLike, ConnectionRequestRepository,
)
from dislink.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestOutcome:
    message: str
    request_id: UUID | None = None


class ConnectionRequests:
    def __init__(
        self,
        requests: ConnectionRequestRepository,
        connections: ConnectionRepository,
        clock: Clock = utc_now,
    ):
        self.requests = requests
        self.connections = connections
        self.clock = clock

    # ─── Visitor flow ────────────────────────────────────────────

    async def request_connection(
        self,
        *,
        owner_id: UUID,
        requester_id: UUID,
        code: str,
        message: str | None = None,
        location: dict | None = None,
    ) -> RequestOutcome:
        """Record a pending request from a registered visitor to the code owner."""
        if owner_id == requester_id:
            logger.info("Owner submitted their own code", extra={"owner_id": owner_id})
            return RequestOutcome(message=CONNECTION_REQUEST_SENT)
        if await self.connections.exists(*canonical_pair(owner_id, requester_id)):
            logger.info(
                "Connection request for an existing connection ignored",
                extra={"owner_id": owner_id, "user_id": requester_id},
            )
            return RequestOutcome(message=CONNECTION_REQUEST_SENT)

        existing = await self.requests.find(owner_id, requester_id)
        if existing is None:
            now = self.clock()
            created = await self.requests.add(
                id=uuid.uuid4(),
                owner_id=owner_id,
                requester_id=requester_id,
                code=code,
                message=message,
                location=location,
                status=ConnectionRequestStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            if created is not None:
                logger.info(
                    "Connection request created",
                    extra={"owner_id": owner_id, "user_id": requester_id},
                )
                return RequestOutcome(
                    message=CONNECTION_REQUEST_SENT, request_id=created.id,
                )
            # Lost the insert race; the winner's row is handled below.
            existing = await self.requests.find(owner_id, requester_id)
            if existing is None:
                raise PersistenceError(
                    "row missing after unique conflict", "connection request upsert",
                )

        current = ConnectionRequestStatus(existing.status)
        if current is ConnectionRequestStatus.PENDING:
            return RequestOutcome(
                message=CONNECTION_REQUEST_PENDING, request_id=existing.id,
            )
        if current is ConnectionRequestStatus.APPROVED:
            # Approved but the connection row is gone; leave it to the owner.
            return RequestOutcome(message=CONNECTION_REQUEST_SENT)

        reopened = await self.requests.update(
            existing.id,
            code=code,
            message=message,
            location=location,
            status=ConnectionRequestStatus.PENDING.value,
            decided_at=None,
        )
        return RequestOutcome(message=CONNECTION_REQUEST_SENT, request_id=reopened.id)

    # ─── Owner operations ────────────────────────────────────────

    async def list_requests(
        self, owner_id: UUID, statuses: tuple[str, ...] | None = None,
    ) -> list[ConnectionRequestLike]:
        return await self.requests.list_for_owner(owner_id, statuses)

    async def approve_request(
        self, owner_id: UUID, request_id: UUID,
    ) -> ConnectionRequestLike:
        request = await self._owned_pending(
            owner_id, request_id, ConnectionRequestStatus.APPROVED,
        )
        # Plain value: a rollback inside create_if_absent expires ORM state.
        requester_id = request.requester_id
        user_a, user_b = canonical_pair(owner_id, requester_id)
        created = await self.connections.create_if_absent(
            user_a_id=user_a,
            user_b_id=user_b,
            initiator_id=requester_id,
            invitation_id=None,
        )
        logger.info(
            "Connection request approved",
            extra={
                "owner_id": owner_id,
                "user_id": requester_id,
                "outcome": "connected" if created else "already_connected",
            },
        )
        return await self.requests.update(
            request_id,
            status=ConnectionRequestStatus.APPROVED.value,
            decided_at=self.clock(),
        )

    async def decline_request(
        self, owner_id: UUID, request_id: UUID,
    ) -> ConnectionRequestLike:
        request = await self._owned_pending(
            owner_id, request_id, ConnectionRequestStatus.DECLINED,
        )
        logger.info(
            "Connection request declined",
            extra={"owner_id": owner_id, "user_id": request.requester_id},
        )
        return await self.requests.update(
            request_id,
            status=ConnectionRequestStatus.DECLINED.value,
            decided_at=self.clock(),
        )

    async def _owned_pending(
        self, owner_id: UUID, request_id: UUID, target: ConnectionRequestStatus,
    ) -> ConnectionRequestLike:
        request = await self.requests.get(request_id)
        if request is None:
            raise ResourceNotFoundError("ConnectionRequest", str(request_id))
        if request.owner_id != owner_id:
            raise PermissionDeniedError(
                "Connection request belongs to another profile",
                ErrorContext(owner_id=str(owner_id)),
            )
        current = ConnectionRequestStatus(request.status)
        if check_request_transition(current, target):
            raise InvalidTransitionError(
                current.value, target.value, ErrorContext(owner_id=str(owner_id)),
                subject="connection request",
            )
        return request
