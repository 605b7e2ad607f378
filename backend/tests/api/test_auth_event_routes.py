"""Auth Event Routes: verifies the internal completion hook.

Invariants:
    - Requires X-Internal-Token; an unset server token rejects every call
    - Settles the registering user's open invitations into connections
    - Idempotent across repeated session events
"""

from sqlalchemy import func, select

from dislink.config import Settings, get_settings
from dislink.main import app
from dislink.models.connection import Connection
from tests.fakes import seed_profile

HOOK = "/internal/v1/auth-events/session-established"
INTERNAL_TOKEN = "test-internal-token"


async def test_hook_rejects_missing_token(client, owner):
    res = await client.post(HOOK, json={"user_id": str(owner.id)})
    assert res.status_code == 403


async def test_hook_rejects_wrong_token(client, owner):
    res = await client.post(
        HOOK, json={"user_id": str(owner.id)}, headers={"X-Internal-Token": "guess"},
    )
    assert res.status_code == 403


async def test_scan_invite_register_connect(client, live_code, test_db, test_session_factory):
    submitted = await client.post(
        f"/api/v1/public-profiles/{live_code}/invitations",
        json={"email": "grace@example.com"},
    )
    invitation_id = submitted.json()["invitation_id"]
    visitor = await seed_profile(
        test_db, email="grace@example.com", first_name="Grace", last_name="Hopper",
    )

    first = await client.post(
        HOOK, json={"user_id": str(visitor.id)}, headers={"X-Internal-Token": INTERNAL_TOKEN},
    )
    second = await client.post(
        HOOK, json={"user_id": str(visitor.id)}, headers={"X-Internal-Token": INTERNAL_TOKEN},
    )

    assert first.status_code == 200
    assert first.json()["connected"] == [invitation_id]
    assert second.json()["connected"] == []
    async with test_session_factory() as session:
        count = (await session.execute(select(func.count(Connection.id)))).scalar_one()
    assert count == 1


async def test_hook_for_user_without_invitations(client, owner):
    res = await client.post(
        HOOK, json={"user_id": str(owner.id)}, headers={"X-Internal-Token": INTERNAL_TOKEN},
    )

    assert res.status_code == 200
    assert res.json()["connected"] == []


async def test_hook_is_disabled_without_configured_token(client, owner):
    app.dependency_overrides[get_settings] = lambda: Settings(internal_hook_token="")

    res = await client.post(
        HOOK, json={"user_id": str(owner.id)}, headers={"X-Internal-Token": ""},
    )
    guessed = await client.post(
        HOOK, json={"user_id": str(owner.id)}, headers={"X-Internal-Token": INTERNAL_TOKEN},
    )

    assert res.status_code == 403
    assert guessed.status_code == 403
    assert guessed.json()["error"]["message"] == "Internal hook is disabled"
