"""SQL Repositories: verifies constraint-backed idempotency and bulk updates.

Invariants:
    - (code, email) duplicate insert returns None instead of raising
    - Connection insert-if-not-exists returns False for an existing pair
    - supersede_active touches only the owner's other live codes
    - (owner, requester) duplicate request insert returns None
    - Profile email lookup is case-insensitive
    - Missing rows on update raise LookupError
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from dislink.core.connection_rules import canonical_pair
from dislink.infrastructure.sql_repositories import (
    SqlConnectionCodeRepository, SqlConnectionRepository,
    SqlConnectionRequestRepository, SqlInvitationRepository,
    SqlProfileRepository, SqlScanEventRepository,
)
from tests.fakes import seed_profile

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


async def _add_code(codes, owner_id, code, expires_in=timedelta(hours=24)):
    return await codes.add(
        code=code, owner_id=owner_id, profile_snapshot={"name": "Ada"},
        expires_at=NOW + expires_in, created_at=NOW,
    )


def _invitation_fields(owner_id, **overrides):
    fields = dict(
        id=uuid.uuid4(), code="conn_a", owner_id=owner_id,
        email="grace@example.com", status="pending",
        created_at=NOW, updated_at=NOW, expires_at=NOW + timedelta(days=7),
    )
    fields.update(overrides)
    return fields


async def test_duplicate_invitation_insert_returns_none(test_db, owner):
    invitations = SqlInvitationRepository(test_db)

    first = await invitations.add(**_invitation_fields(owner.id))
    second = await invitations.add(**_invitation_fields(owner.id))

    assert first is not None
    assert second is None
    # Session is usable again after the rollback.
    found = await invitations.find_by_code_and_email("conn_a", "grace@example.com")
    assert found.id == first.id


async def test_update_missing_invitation_raises_lookup_error(test_db):
    with pytest.raises(LookupError):
        await SqlInvitationRepository(test_db).update(uuid.uuid4(), status="sent")


async def test_list_open_for_email_skips_closed(test_db, owner):
    invitations = SqlInvitationRepository(test_db)
    await invitations.add(**_invitation_fields(owner.id, code="conn_a", status="sent"))
    await invitations.add(**_invitation_fields(owner.id, code="conn_b", status="accepted"))
    await invitations.add(**_invitation_fields(owner.id, code="conn_c", status="rejected"))
    await invitations.add(**_invitation_fields(owner.id, code="conn_d", status="pending"))

    open_rows = await invitations.list_open_for_email("grace@example.com")

    assert sorted(i.code for i in open_rows) == ["conn_a", "conn_d"]


async def test_connection_insert_is_idempotent(test_db, owner):
    other = await seed_profile(test_db, email="grace@example.com")
    connections = SqlConnectionRepository(test_db)
    user_a, user_b = canonical_pair(owner.id, other.id)

    created = await connections.create_if_absent(
        user_a_id=user_a, user_b_id=user_b, initiator_id=owner.id, invitation_id=None,
    )
    again = await connections.create_if_absent(
        user_a_id=user_a, user_b_id=user_b, initiator_id=other.id, invitation_id=None,
    )

    assert created is True
    assert again is False
    assert await connections.exists(user_a, user_b)


async def test_supersede_touches_only_other_live_codes_of_owner(test_db, owner):
    other = await seed_profile(test_db, email="grace@example.com")
    codes = SqlConnectionCodeRepository(test_db)
    await _add_code(codes, owner.id, "conn_old")
    await _add_code(codes, owner.id, "conn_dead", expires_in=timedelta(hours=-1))
    await _add_code(codes, other.id, "conn_theirs")
    await _add_code(codes, owner.id, "conn_new")

    touched = await codes.supersede_active(owner.id, keep_code="conn_new", at=NOW)

    assert touched == 1
    assert (await codes.get("conn_old")).superseded_at is not None
    assert (await codes.get("conn_dead")).superseded_at is None
    assert (await codes.get("conn_theirs")).superseded_at is None
    assert (await codes.get("conn_new")).superseded_at is None


async def test_scan_counts_are_per_owner(test_db, owner):
    other = await seed_profile(test_db, email="grace@example.com")
    scans = SqlScanEventRepository(test_db)
    for owner_id in (owner.id, owner.id, other.id, None):
        await scans.add(code="conn_x", owner_id=owner_id, outcome="resolved", created_at=NOW)

    assert await scans.count_for_owner(owner.id) == 2
    assert await scans.count_for_owner(other.id) == 1


async def test_find_by_email_ignores_case(test_db, owner):
    profiles = SqlProfileRepository(test_db)

    assert (await profiles.find_by_email("ADA@Example.com")).id == owner.id
    assert await profiles.find_by_email("nobody@example.com") is None


async def test_duplicate_connection_request_insert_returns_none(test_db, owner):
    other = await seed_profile(test_db, email="grace@example.com")
    requests = SqlConnectionRequestRepository(test_db)

    def fields():
        return dict(
            id=uuid.uuid4(), owner_id=owner.id, requester_id=other.id,
            code="conn_a", status="pending", created_at=NOW, updated_at=NOW,
        )

    first = await requests.add(**fields())
    second = await requests.add(**fields())

    assert first is not None
    assert second is None
    assert (await requests.find(owner.id, other.id)).id == first.id


async def test_update_missing_connection_request_raises_lookup_error(test_db):
    with pytest.raises(LookupError):
        await SqlConnectionRequestRepository(test_db).update(
            uuid.uuid4(), status="approved",
        )
