"""ConnectionCode ORM: issued codes with their frozen profile snapshot.

Invariants:
    - code is the primary key (globally unique)
    - expires_at is never null
    - profile_snapshot is written once at issuance and never updated
    - scan_count / last_scanned_at are the only columns touched after insert
      (plus superseded_at when a newer code replaces this one)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from dislink.db.base import Base


class ConnectionCode(Base):
    __tablename__ = "connection_codes"

    code: Mapped[str] = mapped_column(String(128), primary_key=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    profile_snapshot: Mapped[dict] = mapped_column(JSON, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    superseded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    scan_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    last_scanned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
