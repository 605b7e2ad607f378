"""Scan Tracker: best-effort telemetry for public profile views.

Invariants:
    - record_scan NEVER raises: tracking failure must not affect the visitor
    - Failed validations are recorded too, tagged with their outcome
    - scan_count / last_scanned_at on the code move only when the code exists
    - Telemetry is never consulted for access control

Design Decisions:
    - Runs as a FastAPI BackgroundTask with its own DB session, after the
      response has been sent
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from dislink.core.domain_types import SCAN_STATS_LIMIT
from dislink.core.repository_protocols import (
    ConnectionCodeRepository, ScanEventLike, ScanEventRepository,
)
from dislink.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

OUTCOME_RESOLVED = "resolved"
# Scan reported by the client without a server-side resolution.
OUTCOME_REPORTED = "reported"


@dataclass(frozen=True)
class VisitorContext:
    """What the visitor's client tells us about the scan. All optional."""
    user_agent: str | None = None
    referrer: str | None = None
    visitor_fingerprint: str | None = None
    location: dict[str, Any] | None = None


@dataclass(frozen=True)
class ScanStats:
    total_scans: int
    last_scan_at: datetime | None
    recent: list[ScanEventLike] = field(default_factory=list)


class ScanTracker:
    def __init__(
        self,
        codes: ConnectionCodeRepository,
        scans: ScanEventRepository,
        clock: Clock = utc_now,
    ):
        self.codes = codes
        self.scans = scans
        self.clock = clock

    async def record_scan(
        self,
        code: str,
        context: VisitorContext | None = None,
        outcome: str | None = None,
    ) -> bool:
        """Append a scan event. Returns False when tracking failed."""
        context = context or VisitorContext()
        now = self.clock()
        try:
            record = await self.codes.get(code)
            await self.scans.add(
                code=code,
                owner_id=record.owner_id if record else None,
                outcome=outcome or OUTCOME_RESOLVED,
                visitor_fingerprint=context.visitor_fingerprint,
                user_agent=context.user_agent,
                referrer=context.referrer,
                location=context.location,
                created_at=now,
            )
            if record is not None:
                await self.codes.record_usage(code, now)
        except Exception as e:
            logger.warning(
                f"Scan tracking failed: {e}",
                extra={"code": code, "outcome": outcome},
            )
            return False
        return True

    async def scan_stats(
        self, owner_id: UUID, limit: int = SCAN_STATS_LIMIT,
    ) -> ScanStats:
        total = await self.scans.count_for_owner(owner_id)
        recent = await self.scans.recent_for_owner(owner_id, limit)
        return ScanStats(
            total_scans=total,
            last_scan_at=recent[0].created_at if recent else None,
            recent=recent,
        )
