"""API Dependencies: builds request-scoped services for FastAPI routes.

Invariants:
    - Repositories share the request's AsyncSession (from get_db)
    - Policy values come from get_settings(), never from literals here
    - The mailer is a process-wide singleton (it owns an HTTP connection
      pool); close_mailer() is called by the lifespan on shutdown
    - Caller identity is asserted by the auth collaborator via X-User-Id;
      the internal hook is guarded by a shared token
"""

import logging
import secrets
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from dislink.config import Settings, get_settings
from dislink.core.errors import (
    AuthenticationRequiredError, ErrorContext, PermissionDeniedError,
)
from dislink.core.repository_protocols import InvitationMailer
from dislink.infrastructure.database import get_db
from dislink.infrastructure.email_client import build_mailer
from dislink.infrastructure.sql_repositories import (
    SqlConnectionCodeRepository, SqlConnectionRepository,
    SqlConnectionRequestRepository, SqlInvitationRepository,
    SqlProfileRepository, SqlScanEventRepository,
)
from dislink.services.code_issuer import CodeIssuer
from dislink.services.code_validator import CodeValidator
from dislink.services.connection_completion import ConnectionCompletion
from dislink.services.connection_requests import ConnectionRequests
from dislink.services.invitation_intake import InvitationIntake
from dislink.services.scan_tracker import ScanTracker

logger = logging.getLogger(__name__)

DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]

# Singleton mailer (built lazily from settings)
_mailer_instance: InvitationMailer | None = None


def get_mailer() -> InvitationMailer:
    global _mailer_instance
    if _mailer_instance is None:
        _mailer_instance = build_mailer(get_settings())
    return _mailer_instance


async def close_mailer() -> None:
    global _mailer_instance
    aclose = getattr(_mailer_instance, "aclose", None)
    if aclose is not None:
        await aclose()
    _mailer_instance = None


# ─── Services ────────────────────────────────────────────────────

def get_code_issuer(db: DbSession, settings: AppSettings) -> CodeIssuer:
    return CodeIssuer(
        SqlProfileRepository(db),
        SqlConnectionCodeRepository(db),
        validity_hours=settings.code_validity_hours,
        public_base_url=settings.public_base_url,
        token_bytes=settings.code_token_bytes,
        supersede_previous=settings.supersede_previous_codes,
    )


def get_code_validator(db: DbSession) -> CodeValidator:
    return CodeValidator(SqlConnectionCodeRepository(db))


def get_scan_tracker(db: DbSession) -> ScanTracker:
    return ScanTracker(SqlConnectionCodeRepository(db), SqlScanEventRepository(db))


def get_connection_requests(db: DbSession) -> ConnectionRequests:
    return ConnectionRequests(
        SqlConnectionRequestRepository(db), SqlConnectionRepository(db),
    )


def get_invitation_intake(
    db: DbSession,
    settings: AppSettings,
    mailer: Annotated[InvitationMailer, Depends(get_mailer)],
    connection_requests: Annotated[ConnectionRequests, Depends(get_connection_requests)],
) -> InvitationIntake:
    return InvitationIntake(
        CodeValidator(SqlConnectionCodeRepository(db)),
        SqlInvitationRepository(db),
        SqlProfileRepository(db),
        mailer,
        connection_requests,
        email_pattern=settings.email_validation_pattern,
        max_message_length=settings.max_invitation_message_length,
        validity_hours=settings.invitation_validity_hours,
        public_base_url=settings.public_base_url,
    )


def get_connection_completion(db: DbSession) -> ConnectionCompletion:
    return ConnectionCompletion(
        SqlProfileRepository(db),
        SqlInvitationRepository(db),
        SqlConnectionRepository(db),
    )


# ─── Caller identity ─────────────────────────────────────────────

def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """Authenticated caller, as asserted by the auth collaborator."""
    if not x_user_id:
        raise AuthenticationRequiredError()
    try:
        return UUID(x_user_id)
    except ValueError:
        raise AuthenticationRequiredError("Malformed X-User-Id header") from None


def require_owner(
    owner_id: UUID,
    current_user_id: Annotated[UUID, Depends(get_current_user_id)],
) -> UUID:
    """Owner routes act only on the caller's own profile."""
    if owner_id != current_user_id:
        raise PermissionDeniedError(
            "You can only manage your own profile",
            ErrorContext(owner_id=str(owner_id)),
        )
    return owner_id


def require_internal_token(
    settings: AppSettings,
    x_internal_token: Annotated[str | None, Header()] = None,
) -> None:
    """Shared-token check for auth collaborator calls. Unset token rejects all."""
    if not settings.internal_hook_token:
        logger.error("Internal hook called but INTERNAL_HOOK_TOKEN is not set")
        raise PermissionDeniedError("Internal hook is disabled")
    if not x_internal_token or not secrets.compare_digest(
        x_internal_token.encode(), settings.internal_hook_token.encode(),
    ):
        logger.warning("Internal hook called with a bad token")
        raise PermissionDeniedError("Invalid internal token")


CodeIssuerDep = Annotated[CodeIssuer, Depends(get_code_issuer)]
CodeValidatorDep = Annotated[CodeValidator, Depends(get_code_validator)]
ScanTrackerDep = Annotated[ScanTracker, Depends(get_scan_tracker)]
InvitationIntakeDep = Annotated[InvitationIntake, Depends(get_invitation_intake)]
ConnectionCompletionDep = Annotated[
    ConnectionCompletion, Depends(get_connection_completion),
]
ConnectionRequestsDep = Annotated[ConnectionRequests, Depends(get_connection_requests)]
OwnerId = Annotated[UUID, Depends(require_owner)]
