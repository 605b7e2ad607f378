"""SQL Repositories: SQLAlchemy implementations of core/repository_protocols.py.

Invariants:
    - One AsyncSession per repository instance, shared across the repositories
      built for a single request
    - Every write commits before returning (no multi-step transactions span
      a service call, so a timed-out request leaves no partial state)
    - SQLAlchemyError never escapes: rolled back, then raised as PersistenceError
    - Unique-constraint races on insert-if-not-exists paths are reported as a
      return value (None / False), not as errors

Design Decisions:
    - Repositories return ORM instances; services read them through the
      *Like protocols only
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator
from uuid import UUID

from sqlalchemy import select, update, func, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dislink.core.domain_types import OPEN_INVITATION_STATUSES
from dislink.infrastructure.db_errors import translate_db_error
from dislink.models.profile import Profile
from dislink.models.connection_code import ConnectionCode
from dislink.models.scan_event import ScanEvent
from dislink.models.invitation_request import InvitationRequest
from dislink.models.connection import Connection
from dislink.models.connection_request import ConnectionRequest

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _guard(db: AsyncSession, operation: str) -> AsyncGenerator[None, None]:
    """Roll back and translate any SQLAlchemy failure inside the block."""
    try:
        yield
    except SQLAlchemyError as e:
        await db.rollback()
        raise translate_db_error(e, operation) from e


class SqlProfileRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, profile_id: UUID) -> Profile | None:
        async with _guard(self.db, "profile lookup"):
            return await self.db.get(Profile, profile_id)

    async def find_by_email(self, email: str) -> Profile | None:
        async with _guard(self.db, "profile lookup"):
            result = await self.db.execute(
                select(Profile).where(func.lower(Profile.email) == email.lower())
            )
            return result.scalars().first()


class SqlConnectionCodeRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, code: str) -> ConnectionCode | None:
        async with _guard(self.db, "code lookup"):
            # Bulk updates below bypass the identity map; always re-read.
            return await self.db.get(ConnectionCode, code, populate_existing=True)

    async def add(
        self, *, code: str, owner_id: UUID, profile_snapshot: dict,
        expires_at: datetime, created_at: datetime,
    ) -> ConnectionCode:
        record = ConnectionCode(
            code=code,
            owner_id=owner_id,
            profile_snapshot=profile_snapshot,
            expires_at=expires_at,
            created_at=created_at,
            scan_count=0,
        )
        async with _guard(self.db, "code insert"):
            self.db.add(record)
            await self.db.commit()
        return record

    async def supersede_active(
        self, owner_id: UUID, *, keep_code: str, at: datetime,
    ) -> int:
        """Mark the owner's other live codes superseded. Returns rows touched."""
        async with _guard(self.db, "code supersede"):
            result = await self.db.execute(
                update(ConnectionCode)
                .where(ConnectionCode.owner_id == owner_id)
                .where(ConnectionCode.code != keep_code)
                .where(ConnectionCode.superseded_at.is_(None))
                .where(ConnectionCode.expires_at > at)
                .values(superseded_at=at)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        return result.rowcount or 0

    async def record_usage(self, code: str, at: datetime) -> None:
        async with _guard(self.db, "code usage"):
            await self.db.execute(
                update(ConnectionCode)
                .where(ConnectionCode.code == code)
                .values(
                    scan_count=ConnectionCode.scan_count + 1,
                    last_scanned_at=at,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()


class SqlScanEventRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, **fields: object) -> None:
        async with _guard(self.db, "scan insert"):
            self.db.add(ScanEvent(**fields))
            await self.db.commit()

    async def count_for_owner(self, owner_id: UUID) -> int:
        async with _guard(self.db, "scan count"):
            result = await self.db.execute(
                select(func.count(ScanEvent.id))
                .where(ScanEvent.owner_id == owner_id)
            )
            return result.scalar_one()

    async def recent_for_owner(self, owner_id: UUID, limit: int) -> list[ScanEvent]:
        async with _guard(self.db, "scan listing"):
            result = await self.db.execute(
                select(ScanEvent)
                .where(ScanEvent.owner_id == owner_id)
                .order_by(ScanEvent.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())


class SqlInvitationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, invitation_id: UUID) -> InvitationRequest | None:
        async with _guard(self.db, "invitation lookup"):
            return await self.db.get(InvitationRequest, invitation_id)

    async def find_by_code_and_email(
        self, code: str, email: str,
    ) -> InvitationRequest | None:
        async with _guard(self.db, "invitation lookup"):
            result = await self.db.execute(
                select(InvitationRequest)
                .where(InvitationRequest.code == code)
                .where(InvitationRequest.email == email)
            )
            return result.scalar_one_or_none()

    async def add(self, **fields: object) -> InvitationRequest | None:
        invitation = InvitationRequest(**fields)
        try:
            self.db.add(invitation)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(
                "Invitation insert lost (code, email) race",
                extra={"code": fields.get("code")},
            )
            return None
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise translate_db_error(e, "invitation insert") from e
        return invitation

    async def update(self, invitation_id: UUID, **fields: object) -> InvitationRequest:
        async with _guard(self.db, "invitation update"):
            invitation = await self.db.get(InvitationRequest, invitation_id)
            if invitation is None:
                raise LookupError(f"Invitation {invitation_id} vanished")
            for name, value in fields.items():
                setattr(invitation, name, value)
            invitation.updated_at = datetime.now(timezone.utc)
            await self.db.commit()
        return invitation

    async def list_open_for_email(self, email: str) -> list[InvitationRequest]:
        statuses = [s.value for s in OPEN_INVITATION_STATUSES]
        async with _guard(self.db, "invitation listing"):
            result = await self.db.execute(
                select(InvitationRequest)
                .where(InvitationRequest.email == email)
                .where(InvitationRequest.status.in_(statuses))
                .order_by(InvitationRequest.created_at)
            )
            return list(result.scalars().all())

    async def list_for_owner(
        self, owner_id: UUID, statuses: tuple[str, ...] | None = None,
    ) -> list[InvitationRequest]:
        query = (
            select(InvitationRequest)
            .where(InvitationRequest.owner_id == owner_id)
            .order_by(InvitationRequest.created_at.desc())
        )
        if statuses:
            query = query.where(InvitationRequest.status.in_(statuses))
        async with _guard(self.db, "invitation listing"):
            result = await self.db.execute(query)
            return list(result.scalars().all())


class SqlConnectionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, user_a_id: UUID, user_b_id: UUID) -> bool:
        async with _guard(self.db, "connection lookup"):
            result = await self.db.execute(
                select(Connection.id).where(and_(
                    Connection.user_a_id == user_a_id,
                    Connection.user_b_id == user_b_id,
                ))
            )
            return result.first() is not None

    async def create_if_absent(
        self, *, user_a_id: UUID, user_b_id: UUID,
        initiator_id: UUID, invitation_id: UUID | None,
    ) -> bool:
        if await self.exists(user_a_id, user_b_id):
            return False
        try:
            self.db.add(Connection(
                user_a_id=user_a_id,
                user_b_id=user_b_id,
                initiator_id=initiator_id,
                invitation_id=invitation_id,
            ))
            await self.db.commit()
        except IntegrityError:
            # Concurrent completion inserted the pair first.
            await self.db.rollback()
            return False
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise translate_db_error(e, "connection insert") from e
        return True


class SqlConnectionRequestRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, request_id: UUID) -> ConnectionRequest | None:
        async with _guard(self.db, "connection request lookup"):
            return await self.db.get(ConnectionRequest, request_id)

    async def find(
        self, owner_id: UUID, requester_id: UUID,
    ) -> ConnectionRequest | None:
        async with _guard(self.db, "connection request lookup"):
            result = await self.db.execute(
                select(ConnectionRequest)
                .where(ConnectionRequest.owner_id == owner_id)
                .where(ConnectionRequest.requester_id == requester_id)
            )
            return result.scalar_one_or_none()

    async def add(self, **fields: object) -> ConnectionRequest | None:
        request = ConnectionRequest(**fields)
        try:
            self.db.add(request)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(
                "Connection request insert lost (owner, requester) race",
                extra={"owner_id": fields.get("owner_id")},
            )
            return None
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise translate_db_error(e, "connection request insert") from e
        return request

    async def update(self, request_id: UUID, **fields: object) -> ConnectionRequest:
        async with _guard(self.db, "connection request update"):
            request = await self.db.get(ConnectionRequest, request_id)
            if request is None:
                raise LookupError(f"Connection request {request_id} vanished")
            for name, value in fields.items():
                setattr(request, name, value)
            request.updated_at = datetime.now(timezone.utc)
            await self.db.commit()
        return request

    async def list_for_owner(
        self, owner_id: UUID, statuses: tuple[str, ...] | None = None,
    ) -> list[ConnectionRequest]:
        query = (
            select(ConnectionRequest)
            .where(ConnectionRequest.owner_id == owner_id)
            .order_by(ConnectionRequest.created_at.desc())
        )
        if statuses:
            query = query.where(ConnectionRequest.status.in_(statuses))
        async with _guard(self.db, "connection request listing"):
            result = await self.db.execute(query)
            return list(result.scalars().all())
