"""ORM Models: SQLAlchemy declarative models for all persisted records.

Invariants:
    - All models inherit from Base (db/base.py)
    - connection_codes, invitation_requests, connection_requests, connections
      are independently owned rows; no component locks across them

Design Decisions:
    - One file per entity
    - All models imported here so Base.metadata is complete before
      create_all or any query runs
"""

from dislink.models.profile import Profile  # noqa: F401
from dislink.models.connection_code import ConnectionCode  # noqa: F401
from dislink.models.scan_event import ScanEvent  # noqa: F401
from dislink.models.invitation_request import InvitationRequest  # noqa: F401
from dislink.models.connection import Connection  # noqa: F401
from dislink.models.connection_request import ConnectionRequest  # noqa: F401
