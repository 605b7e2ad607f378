"""Code Issuer: verifies issuance preconditions, expiry, and snapshot immutability.

Invariants:
    - Codes are unpredictable, prefixed, and unique per issuance
    - expires_at = issuance + validity window
    - Missing profile -> ResourceNotFoundError; incomplete -> ProfileIncompleteError
    - Profile edits after issuance never change what the code discloses
    - A newer code supersedes the owner's older live codes (when enabled)
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from dislink.core.code_rules import ensure_utc
from dislink.core.domain_types import CODE_PREFIX, ResolutionFailure
from dislink.core.errors import ProfileIncompleteError, ResourceNotFoundError
from dislink.services.code_issuer import CodeIssuer
from tests.fakes import seed_profile


async def test_issue_code_sets_expiry_and_url(issuer, owner, clock):
    issued = await issuer.issue_code(owner.id)

    assert issued.code.startswith(CODE_PREFIX)
    assert issued.owner_id == owner.id
    assert issued.expires_at == clock.now + timedelta(hours=24)
    assert issued.public_profile_url == f"https://dislink.test/profile/{issued.code}"


async def test_issue_code_persists_snapshot(issuer, owner, repos):
    issued = await issuer.issue_code(owner.id)

    record = await repos.codes.get(issued.code)
    assert record.profile_snapshot["name"] == "Ada Lovelace"
    assert record.profile_snapshot["sharing"]["enabled"] is True
    assert record.profile_snapshot["sharing"]["allowed_fields"]["job_title"] is True
    assert ensure_utc(record.expires_at) == issued.expires_at


async def test_each_issuance_mints_a_distinct_code(issuer, owner):
    codes = {(await issuer.issue_code(owner.id)).code for _ in range(5)}
    assert len(codes) == 5


async def test_unknown_owner_raises_not_found(issuer):
    with pytest.raises(ResourceNotFoundError):
        await issuer.issue_code(uuid4())


async def test_incomplete_profile_raises_with_missing_fields(issuer, test_db):
    profile = await seed_profile(test_db, email="nolast@example.com", last_name="  ")

    with pytest.raises(ProfileIncompleteError) as exc:
        await issuer.issue_code(profile.id)

    assert exc.value.missing_fields == ["last_name"]
    assert exc.value.http_status == 422


# ─── Snapshot immutability ───────────────────────────────────────

async def test_profile_edit_after_issuance_does_not_change_disclosure(
    issuer, validator, owner, test_db,
):
    issued = await issuer.issue_code(owner.id)

    owner.first_name = "Augusta"
    owner.company = "Somewhere Else"
    owner.public_profile = {"enabled": False}
    await test_db.commit()

    resolution = await validator.validate(issued.code)
    assert resolution.ok
    assert resolution.snapshot.name == "Ada Lovelace"
    assert resolution.snapshot.company == "Analytical Engines"


async def test_new_code_reflects_profile_edit(issuer, validator, owner, test_db):
    owner.job_title = "Analyst"
    await test_db.commit()

    issued = await issuer.issue_code(owner.id)

    resolution = await validator.validate(issued.code)
    assert resolution.snapshot.job_title == "Analyst"


# ─── Supersession ────────────────────────────────────────────────

async def test_newer_code_supersedes_older(issuer, validator, owner):
    first = await issuer.issue_code(owner.id)
    second = await issuer.issue_code(owner.id)

    assert (await validator.validate(first.code)).failure is ResolutionFailure.EXPIRED
    assert (await validator.validate(second.code)).ok


async def test_supersession_can_be_disabled(repos, validator, owner, clock):
    issuer = CodeIssuer(
        repos.profiles, repos.codes,
        validity_hours=24, public_base_url="https://dislink.test",
        supersede_previous=False, clock=clock,
    )
    first = await issuer.issue_code(owner.id)
    await issuer.issue_code(owner.id)

    assert (await validator.validate(first.code)).ok


async def test_supersession_is_scoped_to_owner(issuer, validator, owner, test_db):
    other = await seed_profile(test_db, email="grace@example.com", first_name="Grace")
    mine = await issuer.issue_code(owner.id)
    await issuer.issue_code(other.id)

    assert (await validator.validate(mine.code)).ok
