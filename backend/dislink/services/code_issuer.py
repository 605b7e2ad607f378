"""Code Issuer: mints time-bounded connection codes with a frozen profile snapshot.

Invariants:
    - Only owners with a persisted, complete profile get a code
    - The snapshot is taken once, here; later profile edits never reach it
    - expires_at = issuance time + code_validity_hours, always set
    - No notification side effects; persistence failures raise PersistenceError
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from dislink.core.code_rules import (
    compute_expiry, generate_code_token, public_profile_url,
)
from dislink.core.errors import (
    ErrorContext, ProfileIncompleteError, ResourceNotFoundError,
)
from dislink.core.repository_protocols import (
    ConnectionCodeRepository, ProfileRepository,
)
from dislink.core.snapshot import (
    ProfileSnapshot, find_missing_profile_fields, snapshot_from_profile,
)
from dislink.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedCode:
    code: str
    owner_id: UUID
    created_at: datetime
    expires_at: datetime
    public_profile_url: str
    snapshot: ProfileSnapshot


class CodeIssuer:
    """Issues connection codes for profile owners."""

    def __init__(
        self,
        profiles: ProfileRepository,
        codes: ConnectionCodeRepository,
        *,
        validity_hours: float,
        public_base_url: str,
        token_bytes: int = 24,
        supersede_previous: bool = True,
        clock: Clock = utc_now,
    ):
        self.profiles = profiles
        self.codes = codes
        self.validity_hours = validity_hours
        self.public_base_url = public_base_url
        self.token_bytes = token_bytes
        self.supersede_previous = supersede_previous
        self.clock = clock

    async def issue_code(self, owner_id: UUID) -> IssuedCode:
        profile = await self.profiles.get(owner_id)
        if profile is None:
            raise ResourceNotFoundError("Profile", str(owner_id))

        fields = profile.shareable_fields()
        missing = find_missing_profile_fields(fields)
        if missing:
            raise ProfileIncompleteError(
                missing, ErrorContext(owner_id=str(owner_id)),
            )

        snapshot = snapshot_from_profile(fields)
        now = self.clock()
        record = await self.codes.add(
            code=generate_code_token(self.token_bytes),
            owner_id=owner_id,
            profile_snapshot=snapshot.to_dict(),
            expires_at=compute_expiry(now, self.validity_hours),
            created_at=now,
        )
        if self.supersede_previous:
            superseded = await self.codes.supersede_active(
                owner_id, keep_code=record.code, at=now,
            )
            if superseded:
                logger.info(
                    f"Superseded {superseded} older code(s)",
                    extra={"owner_id": owner_id},
                )

        logger.info(
            "Connection code issued",
            extra={"owner_id": owner_id, "code": record.code},
        )
        return IssuedCode(
            code=record.code,
            owner_id=owner_id,
            created_at=now,
            expires_at=record.expires_at,
            public_profile_url=public_profile_url(self.public_base_url, record.code),
            snapshot=snapshot,
        )
