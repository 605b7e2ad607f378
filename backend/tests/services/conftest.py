"""Service test fixtures: services wired to real SQL repositories.

Invariants:
    - Repositories share the per-test SQLite session (test_db)
    - Services get the deterministic FixedClock and the recording FakeMailer
"""

from types import SimpleNamespace

import pytest

from dislink.config import DEFAULT_EMAIL_PATTERN
from dislink.infrastructure.sql_repositories import (
    SqlConnectionCodeRepository, SqlConnectionRepository,
    SqlConnectionRequestRepository, SqlInvitationRepository,
    SqlProfileRepository, SqlScanEventRepository,
)
from dislink.services.code_issuer import CodeIssuer
from dislink.services.code_validator import CodeValidator
from dislink.services.connection_completion import ConnectionCompletion
from dislink.services.connection_requests import ConnectionRequests
from dislink.services.invitation_intake import InvitationIntake
from dislink.services.scan_tracker import ScanTracker

BASE_URL = "https://dislink.test"


@pytest.fixture
def repos(test_db):
    return SimpleNamespace(
        profiles=SqlProfileRepository(test_db),
        codes=SqlConnectionCodeRepository(test_db),
        scans=SqlScanEventRepository(test_db),
        invitations=SqlInvitationRepository(test_db),
        connections=SqlConnectionRepository(test_db),
        requests=SqlConnectionRequestRepository(test_db),
    )


@pytest.fixture
def issuer(repos, clock):
    return CodeIssuer(
        repos.profiles, repos.codes,
        validity_hours=24, public_base_url=BASE_URL, clock=clock,
    )


@pytest.fixture
def validator(repos, clock):
    return CodeValidator(repos.codes, clock=clock)


@pytest.fixture
def tracker(repos, clock):
    return ScanTracker(repos.codes, repos.scans, clock=clock)


@pytest.fixture
def connection_requests(repos, clock):
    return ConnectionRequests(repos.requests, repos.connections, clock=clock)


@pytest.fixture
def make_intake(repos, clock, connection_requests):
    """Factory for intakes with a custom validator or mailer."""
    def _make(validator, mailer):
        return InvitationIntake(
            validator, repos.invitations, repos.profiles, mailer, connection_requests,
            email_pattern=DEFAULT_EMAIL_PATTERN,
            max_message_length=500,
            validity_hours=168,
            public_base_url=BASE_URL,
            clock=clock,
        )
    return _make


@pytest.fixture
def intake(make_intake, validator, mailer):
    return make_intake(validator, mailer)


@pytest.fixture
def completion(repos, clock):
    return ConnectionCompletion(
        repos.profiles, repos.invitations, repos.connections, clock=clock,
    )


@pytest.fixture
async def issued(issuer, owner):
    """A live code for the default owner."""
    return await issuer.issue_code(owner.id)
