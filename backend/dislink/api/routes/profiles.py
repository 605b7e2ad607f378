"""Owner Routes: code issuance, scan analytics, invitations, and connection requests.

Invariants:
    - Every route is scoped to the caller's own profile (require_owner)
    - Errors surface as DislinkError and are rendered by the global handlers
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Query, status

from dislink.api.dependencies import (
    CodeIssuerDep, ConnectionRequestsDep, InvitationIntakeDep, OwnerId,
    ScanTrackerDep,
)
from dislink.core.domain_types import ConnectionRequestStatus, InvitationStatus
from dislink.schemas.connection_code import ConnectionCodeResponse
from dislink.schemas.connection_request import ConnectionRequestResponse
from dislink.schemas.invitation import InvitationResponse
from dislink.schemas.scan import ScanEventResponse, ScanStatsResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/profiles", tags=["profiles"])


@router.post(
    "/{owner_id}/connection-codes",
    response_model=ConnectionCodeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def issue_connection_code(owner_id: OwnerId, issuer: CodeIssuerDep):
    """Mint a new QR connection code from the owner's current profile."""
    issued = await issuer.issue_code(owner_id)
    return ConnectionCodeResponse(
        code=issued.code,
        owner_id=issued.owner_id,
        created_at=issued.created_at,
        expires_at=issued.expires_at,
        public_profile_url=issued.public_profile_url,
    )


@router.get("/{owner_id}/scan-stats", response_model=ScanStatsResponse)
async def get_scan_stats(owner_id: OwnerId, tracker: ScanTrackerDep):
    stats = await tracker.scan_stats(owner_id)
    return ScanStatsResponse(
        total_scans=stats.total_scans,
        last_scan_at=stats.last_scan_at,
        recent=[ScanEventResponse.model_validate(e) for e in stats.recent],
    )


@router.get("/{owner_id}/invitations", response_model=list[InvitationResponse])
async def list_invitations(
    owner_id: OwnerId,
    intake: InvitationIntakeDep,
    status_filter: list[InvitationStatus] | None = Query(None, alias="status"),
):
    statuses = tuple(s.value for s in status_filter) if status_filter else None
    invitations = await intake.list_invitations(owner_id, statuses)
    return [InvitationResponse.model_validate(i) for i in invitations]


@router.post(
    "/{owner_id}/invitations/{invitation_id}/cancel",
    response_model=InvitationResponse,
)
async def cancel_invitation(
    owner_id: OwnerId, invitation_id: UUID, intake: InvitationIntakeDep,
):
    invitation = await intake.cancel_invitation(owner_id, invitation_id)
    return InvitationResponse.model_validate(invitation)


@router.post(
    "/{owner_id}/invitations/{invitation_id}/resend",
    response_model=InvitationResponse,
)
async def resend_invitation(
    owner_id: OwnerId, invitation_id: UUID, intake: InvitationIntakeDep,
):
    """Re-send an open invitation's email (expired ones are closed instead)."""
    invitation = await intake.resend_invitation(owner_id, invitation_id)
    return InvitationResponse.model_validate(invitation)


@router.get(
    "/{owner_id}/connection-requests",
    response_model=list[ConnectionRequestResponse],
)
async def list_connection_requests(
    owner_id: OwnerId,
    requests: ConnectionRequestsDep,
    status_filter: list[ConnectionRequestStatus] | None = Query(None, alias="status"),
):
    statuses = tuple(s.value for s in status_filter) if status_filter else None
    found = await requests.list_requests(owner_id, statuses)
    return [ConnectionRequestResponse.model_validate(r) for r in found]


@router.post(
    "/{owner_id}/connection-requests/{request_id}/approve",
    response_model=ConnectionRequestResponse,
)
async def approve_connection_request(
    owner_id: OwnerId, request_id: UUID, requests: ConnectionRequestsDep,
):
    """Accept a registered visitor's request; creates the connection."""
    request = await requests.approve_request(owner_id, request_id)
    return ConnectionRequestResponse.model_validate(request)


@router.post(
    "/{owner_id}/connection-requests/{request_id}/decline",
    response_model=ConnectionRequestResponse,
)
async def decline_connection_request(
    owner_id: OwnerId, request_id: UUID, requests: ConnectionRequestsDep,
):
    request = await requests.decline_request(owner_id, request_id)
    return ConnectionRequestResponse.model_validate(request)
