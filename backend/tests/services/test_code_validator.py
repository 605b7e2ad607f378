"""Code Validator: verifies check ordering and failure classification.

Invariants:
    - existence -> expiration -> sharing enabled, first failure wins
    - Expiration takes precedence over not_public
    - Blank, oversized, or unparsable input is not_found with no lookup
    - Missing `enabled` preference fails closed (not_public)
    - Storage outages raise PersistenceError (not a classified failure)
"""

import json

import pytest

from dislink.core.domain_types import MAX_CODE_LENGTH, ResolutionFailure
from dislink.core.errors import PersistenceError
from dislink.services.code_validator import CodeValidator
from tests.fakes import BrokenCodeRepository, seed_profile


async def test_valid_code_returns_snapshot(validator, issued, owner):
    resolution = await validator.validate(issued.code)

    assert resolution.ok
    assert resolution.code == issued.code
    assert resolution.owner_id == owner.id
    assert resolution.snapshot.name == "Ada Lovelace"


async def test_qr_json_payload_resolves(validator, issued):
    resolution = await validator.validate(json.dumps({"c": issued.code}))
    assert resolution.ok


async def test_surrounding_whitespace_is_ignored(validator, issued):
    assert (await validator.validate(f"  {issued.code}\n")).ok


async def test_unknown_code_is_not_found(validator):
    resolution = await validator.validate("conn_does-not-exist")
    assert resolution.failure is ResolutionFailure.NOT_FOUND
    assert resolution.snapshot is None


@pytest.mark.parametrize("raw", [None, "", "   ", "x" * (MAX_CODE_LENGTH + 1), "{not json"])
async def test_malformed_input_is_not_found_without_lookup(raw):
    validator = CodeValidator(BrokenCodeRepository())
    resolution = await validator.validate(raw)
    assert resolution.failure is ResolutionFailure.NOT_FOUND


async def test_code_past_expiry_is_expired(validator, issued, clock):
    clock.advance(hours=25)
    resolution = await validator.validate(issued.code)
    assert resolution.failure is ResolutionFailure.EXPIRED


async def test_code_at_exact_expiry_is_expired(validator, issued, clock):
    clock.advance(hours=24)
    assert (await validator.validate(issued.code)).failure is ResolutionFailure.EXPIRED


async def test_code_just_before_expiry_resolves(validator, issued, clock):
    clock.advance(hours=23, minutes=59)
    assert (await validator.validate(issued.code)).ok


async def test_sharing_disabled_is_not_public(issuer, validator, test_db):
    private = await seed_profile(
        test_db, email="private@example.com",
        public_profile={"enabled": False, "allowedFields": {"bio": True}},
    )
    issued = await issuer.issue_code(private.id)

    resolution = await validator.validate(issued.code)
    assert resolution.failure is ResolutionFailure.NOT_PUBLIC
    assert resolution.owner_id == private.id


async def test_expired_takes_precedence_over_not_public(issuer, validator, test_db, clock):
    private = await seed_profile(
        test_db, email="private@example.com", public_profile={"enabled": False},
    )
    issued = await issuer.issue_code(private.id)
    clock.advance(days=2)

    resolution = await validator.validate(issued.code)
    assert resolution.failure is ResolutionFailure.EXPIRED


@pytest.mark.parametrize("public_profile", [None, {}, {"enabled": "true"}, {"enabled": None}])
async def test_missing_or_non_bool_enabled_fails_closed(
    issuer, validator, test_db, public_profile,
):
    profile = await seed_profile(
        test_db, email="unset@example.com", public_profile=public_profile,
    )
    issued = await issuer.issue_code(profile.id)

    assert (await validator.validate(issued.code)).failure is ResolutionFailure.NOT_PUBLIC


async def test_storage_outage_raises():
    validator = CodeValidator(BrokenCodeRepository())
    with pytest.raises(PersistenceError):
        await validator.validate("conn_abc")
