"""Auth Events: internal hook called by the auth collaborator.

Invariants:
    - Guarded by X-Internal-Token; never exposed to browsers
    - Always 200 for an authenticated call: completion is best-effort and
      must not fail the surrounding login
"""

import logging

from fastapi import APIRouter, Depends

from dislink.api.dependencies import ConnectionCompletionDep, require_internal_token
from dislink.schemas.auth_event import CompletionResponse, SessionEstablished

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/internal/v1/auth-events",
    tags=["internal"],
    dependencies=[Depends(require_internal_token)],
)


@router.post("/session-established", response_model=CompletionResponse)
async def session_established(
    body: SessionEstablished, completion: ConnectionCompletionDep,
):
    """A user's first authenticated session exists: settle their invitations."""
    report = await completion.complete_qr_connection(body.user_id)
    return CompletionResponse(
        user_id=report.user_id,
        connected=report.connected,
        already_connected=report.already_connected,
        expired=report.expired,
        rejected=report.rejected,
        failed=report.failed,
    )
