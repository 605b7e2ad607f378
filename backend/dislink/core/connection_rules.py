"""Connection Rules: canonical ordering and connection-request transitions.

Invariants:
    - A pair of profiles maps to exactly one (user_a_id, user_b_id) key,
      independent of who initiated, so a unique constraint prevents duplicates
    - A profile cannot connect to itself
    - approved is terminal; a declined request may be reopened by the visitor
"""

from uuid import UUID

from dislink.core.domain_types import ConnectionRequestStatus

_REQUEST_TRANSITIONS: dict[ConnectionRequestStatus, frozenset[ConnectionRequestStatus]] = {
    ConnectionRequestStatus.PENDING: frozenset({
        ConnectionRequestStatus.APPROVED, ConnectionRequestStatus.DECLINED,
    }),
    ConnectionRequestStatus.DECLINED: frozenset({ConnectionRequestStatus.PENDING}),
    ConnectionRequestStatus.APPROVED: frozenset(),
}


def canonical_pair(first: UUID, second: UUID) -> tuple[UUID, UUID]:
    if first == second:
        raise ValueError("A profile cannot connect to itself")
    return (first, second) if str(first) < str(second) else (second, first)


def check_request_transition(
    current: ConnectionRequestStatus, target: ConnectionRequestStatus,
) -> dict | None:
    if target not in _REQUEST_TRANSITIONS[current]:
        return {
            "status": "error",
            "error_code": "INVALID_TRANSITION",
            "field": "status",
            "message": (
                f"Cannot move connection request from '{current.value}' "
                f"to '{target.value}'."
            ),
        }
    return None
