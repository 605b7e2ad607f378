"""Connection Requests: verifies the owner's approve/decline flow.

Invariants:
    - Approval creates exactly one connection, initiated by the requester
    - Decline leaves no connection; the visitor may ask again
    - Only pending requests can be decided, only by their owner
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from dislink.core.code_rules import ensure_utc
from dislink.core.connection_rules import canonical_pair
from dislink.core.domain_types import ConnectionRequestStatus
from dislink.core.errors import (
    InvalidTransitionError, PermissionDeniedError, ResourceNotFoundError,
)
from dislink.core.messages import CONNECTION_REQUEST_SENT
from dislink.models.connection import Connection
from tests.fakes import seed_profile


@pytest.fixture
async def grace(test_db):
    return await seed_profile(
        test_db, email="grace@example.com", first_name="Grace", last_name="Hopper",
    )


@pytest.fixture
async def pending(connection_requests, issued, owner, grace):
    outcome = await connection_requests.request_connection(
        owner_id=owner.id, requester_id=grace.id, code=issued.code, message="Hi!",
    )
    return outcome.request_id


async def _connection_count(test_db) -> int:
    result = await test_db.execute(select(func.count(Connection.id)))
    return result.scalar_one()


async def test_approve_connects_the_pair(
    connection_requests, pending, owner, grace, test_db, repos, clock,
):
    request = await connection_requests.approve_request(owner.id, pending)

    assert request.status == ConnectionRequestStatus.APPROVED.value
    assert ensure_utc(request.decided_at) == clock.now
    assert await repos.connections.exists(*canonical_pair(owner.id, grace.id))
    connection = (await test_db.execute(select(Connection))).scalar_one()
    assert connection.initiator_id == grace.id
    assert connection.invitation_id is None


async def test_approve_with_existing_connection_does_not_duplicate(
    connection_requests, pending, owner, grace, test_db, repos,
):
    user_a, user_b = canonical_pair(owner.id, grace.id)
    await repos.connections.create_if_absent(
        user_a_id=user_a, user_b_id=user_b, initiator_id=owner.id, invitation_id=None,
    )

    request = await connection_requests.approve_request(owner.id, pending)

    assert request.status == ConnectionRequestStatus.APPROVED.value
    assert await _connection_count(test_db) == 1


async def test_decline_leaves_no_connection(
    connection_requests, pending, owner, test_db, clock,
):
    request = await connection_requests.decline_request(owner.id, pending)

    assert request.status == ConnectionRequestStatus.DECLINED.value
    assert ensure_utc(request.decided_at) == clock.now
    assert await _connection_count(test_db) == 0


async def test_declined_request_is_reopened_by_visitor(
    connection_requests, pending, issued, owner, grace,
):
    await connection_requests.decline_request(owner.id, pending)

    outcome = await connection_requests.request_connection(
        owner_id=owner.id, requester_id=grace.id, code=issued.code, message="Again",
    )

    assert outcome.message == CONNECTION_REQUEST_SENT
    assert outcome.request_id == pending
    reopened = await connection_requests.requests.get(pending)
    assert reopened.status == ConnectionRequestStatus.PENDING.value
    assert reopened.decided_at is None
    assert reopened.message == "Again"


async def test_approved_request_is_not_reopened(
    connection_requests, pending, issued, owner, grace,
):
    await connection_requests.approve_request(owner.id, pending)

    outcome = await connection_requests.request_connection(
        owner_id=owner.id, requester_id=grace.id, code=issued.code,
    )

    assert outcome.message == CONNECTION_REQUEST_SENT
    assert outcome.request_id is None


async def test_list_filters_by_status(connection_requests, pending, owner, issued, test_db):
    other = await seed_profile(test_db, email="linus@example.com")
    second = await connection_requests.request_connection(
        owner_id=owner.id, requester_id=other.id, code=issued.code,
    )
    await connection_requests.decline_request(owner.id, second.request_id)

    everything = await connection_requests.list_requests(owner.id)
    open_only = await connection_requests.list_requests(
        owner.id, (ConnectionRequestStatus.PENDING.value,),
    )

    assert {r.id for r in everything} == {pending, second.request_id}
    assert [r.id for r in open_only] == [pending]


# ─── Owner checks ────────────────────────────────────────────────

async def test_deciding_twice_is_invalid(connection_requests, pending, owner):
    await connection_requests.approve_request(owner.id, pending)

    with pytest.raises(InvalidTransitionError) as exc:
        await connection_requests.decline_request(owner.id, pending)
    assert "connection request" in exc.value.message


async def test_other_owner_cannot_decide(connection_requests, pending, test_db):
    stranger = await seed_profile(test_db, email="mallory@example.com")
    with pytest.raises(PermissionDeniedError):
        await connection_requests.approve_request(stranger.id, pending)


async def test_unknown_request_is_not_found(connection_requests, owner):
    with pytest.raises(ResourceNotFoundError):
        await connection_requests.approve_request(owner.id, uuid4())
