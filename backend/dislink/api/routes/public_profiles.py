"""Public Profiles: anonymous, code-addressed views and visitor actions.

Invariants:
    - No authentication: the code is the only credential
    - Only the disclosure-filtered view model is serialized
    - Resolution failures map to 404 (not_found), 410 (expired),
      403 (not_public) with a distinct message each
    - Scan tracking runs after the response and can never fail the request

Design Decisions:
    - Background scan tracking opens its own session through db_manager:
      the request session is closed once the response is sent
    - GET tracks by default; clients that post a richer scan (with
      geolocation) to /scans pass ?track=false to avoid double counting
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Request, status
from fastapi.responses import JSONResponse

from dislink.api.dependencies import CodeValidatorDep, InvitationIntakeDep
from dislink.core.code_rules import extract_code
from dislink.core.disclosure import filter_snapshot
from dislink.core.domain_types import InvitationFailureKind, ResolutionFailure
from dislink.core.messages import RESOLUTION_MESSAGES
from dislink.infrastructure import database
from dislink.infrastructure.sql_repositories import (
    SqlConnectionCodeRepository, SqlScanEventRepository,
)
from dislink.schemas.invitation import InvitationCreate, InvitationSubmitResponse
from dislink.schemas.public_profile import (
    PublicProfileResponse, PublicProfileView, ResolutionErrorResponse,
)
from dislink.schemas.scan import ScanAccepted, ScanCreate
from dislink.services.invitation_intake import InvitationResult
from dislink.services.scan_tracker import (
    OUTCOME_REPORTED, ScanTracker, VisitorContext,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/public-profiles", tags=["public-profiles"])

RESOLUTION_STATUS: dict[ResolutionFailure, int] = {
    ResolutionFailure.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ResolutionFailure.EXPIRED: status.HTTP_410_GONE,
    ResolutionFailure.NOT_PUBLIC: status.HTTP_403_FORBIDDEN,
}

_RESOLUTION_RESPONSES = {
    code: {"model": ResolutionErrorResponse}
    for code in RESOLUTION_STATUS.values()
}


async def track_scan_in_background(
    code: str, context: VisitorContext, outcome: str | None,
) -> None:
    """BackgroundTask body: own session, never raises."""
    if database.db_manager is None:
        logger.warning("Scan not tracked: database not initialized")
        return
    try:
        async with database.db_manager.session() as db:
            tracker = ScanTracker(
                SqlConnectionCodeRepository(db), SqlScanEventRepository(db),
            )
            await tracker.record_scan(code, context, outcome)
    except Exception as e:
        logger.warning(f"Scan tracking session failed: {e}", extra={"code": code})


def _visitor_context(request: Request, body: ScanCreate | None = None) -> VisitorContext:
    return VisitorContext(
        user_agent=request.headers.get("user-agent"),
        referrer=(body.referrer if body else None) or request.headers.get("referer"),
        visitor_fingerprint=body.visitor_fingerprint if body else None,
        location=body.location.model_dump() if body and body.location else None,
    )


def _resolution_error(failure: ResolutionFailure) -> JSONResponse:
    return JSONResponse(
        status_code=RESOLUTION_STATUS[failure],
        content=ResolutionErrorResponse(
            error=failure, message=RESOLUTION_MESSAGES[failure],
        ).model_dump(mode="json"),
    )


@router.get(
    "/{code}",
    response_model=PublicProfileResponse,
    responses=_RESOLUTION_RESPONSES,
)
async def get_public_profile(
    code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    validator: CodeValidatorDep,
    track: bool = True,
):
    """Resolve a scanned code to the owner's disclosed profile."""
    resolution = await validator.validate(code)
    if track and resolution.code:
        background_tasks.add_task(
            track_scan_in_background,
            resolution.code,
            _visitor_context(request),
            resolution.failure.value if resolution.failure else None,
        )
    if not resolution.ok:
        return _resolution_error(resolution.failure)

    view = filter_snapshot(resolution.snapshot)
    return PublicProfileResponse(
        code=resolution.code, profile=PublicProfileView(**view.to_dict()),
    )


@router.post(
    "/{code}/scans",
    response_model=ScanAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def report_scan(
    code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    body: ScanCreate | None = None,
):
    """Fire-and-forget scan telemetry from the visitor's client."""
    normalized = extract_code(code)
    if normalized is not None:
        background_tasks.add_task(
            track_scan_in_background,
            normalized,
            _visitor_context(request, body),
            OUTCOME_REPORTED,
        )
    return ScanAccepted()


@router.post(
    "/{code}/invitations",
    response_model=InvitationSubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_invitation(
    code: str, body: InvitationCreate, intake: InvitationIntakeDep,
):
    """Visitor asks to connect: an email invite, or a request when already registered."""
    result = await intake.submit_invitation(
        code, body.email, body.message, body.location,
    )
    return JSONResponse(
        status_code=_invitation_status(result),
        content=InvitationSubmitResponse(
            success=result.success,
            message=result.message,
            invitation_id=result.invitation_id,
            connection_request_id=result.connection_request_id,
            failure_kind=result.failure_kind,
            reason=result.reason,
            field_errors=result.field_errors,
        ).model_dump(mode="json"),
    )


def _invitation_status(result: InvitationResult) -> int:
    if result.success:
        return status.HTTP_201_CREATED
    if result.failure_kind is InvitationFailureKind.INVALID_INPUT:
        return status.HTTP_400_BAD_REQUEST
    if result.failure_kind is InvitationFailureKind.CODE_REJECTED:
        return RESOLUTION_STATUS[result.reason]
    return status.HTTP_503_SERVICE_UNAVAILABLE
