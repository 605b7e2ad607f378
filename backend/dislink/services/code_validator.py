"""Code Validator: resolves a scanned code to its snapshot or a classified failure.

Invariants:
    - Works for anonymous callers: the code string is the only input
    - Check order existence -> expiration -> sharing enabled (core.code_rules)
    - Expected failures are returned, never raised; storage outages raise
      PersistenceError
    - Returns the issuance-time snapshot, never live profile data
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from dislink.core.code_rules import classify_code, extract_code
from dislink.core.domain_types import ResolutionFailure
from dislink.core.repository_protocols import ConnectionCodeRepository
from dislink.core.snapshot import ProfileSnapshot, parse_snapshot
from dislink.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeResolution:
    """Discriminated result: snapshot on success, failure otherwise."""
    code: str | None
    snapshot: ProfileSnapshot | None = None
    owner_id: UUID | None = None
    failure: ResolutionFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class CodeValidator:
    def __init__(self, codes: ConnectionCodeRepository, clock: Clock = utc_now):
        self.codes = codes
        self.clock = clock

    async def validate(self, raw_code: str | None) -> CodeResolution:
        code = extract_code(raw_code)
        if code is None:
            return CodeResolution(code=None, failure=ResolutionFailure.NOT_FOUND)

        record = await self.codes.get(code)
        snapshot = parse_snapshot(record.profile_snapshot) if record else None
        failure = classify_code(
            found=record is not None,
            expires_at=record.expires_at if record else None,
            superseded_at=record.superseded_at if record else None,
            sharing_enabled=bool(
                snapshot and snapshot.sharing and snapshot.sharing.enabled
            ),
            now=self.clock(),
        )
        if failure is not None:
            logger.info(
                f"Code rejected: {failure.value}",
                extra={"code": code, "outcome": failure.value},
            )
            return CodeResolution(
                code=code,
                owner_id=record.owner_id if record else None,
                failure=failure,
            )
        return CodeResolution(code=code, snapshot=snapshot, owner_id=record.owner_id)
