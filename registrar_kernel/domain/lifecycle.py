"""
Lifecycle -- the legal state graph of a document request.

Responsibility:
    Defines request-status and pickup-status, the transition table, the
    derived fields each transition sets, and replay of a tracking history
    against the table.

Architecture position:
    Kernel > Domain.  Pure: no session, no clock, no logging.  The
    lifecycle service applies what this module decides.

Invariants enforced:
    - Request status moves PENDING -> SET -> READY -> RECEIVED, or to
      FAILED from any non-terminal status.  RECEIVED and FAILED are
      terminal.
    - Pickup status moves pending -> completed | failed, and only as a
      consequence of a request-status transition (RECEIVED or FAILED).
    - Rescheduling is allowed only in SET or READY.

    Transition table:

        From      | To              | Effects
        ----------|-----------------|----------------------------------------
        PENDING   | SET, FAILED     | SET: scheduled_pickup (if provided)
        SET       | READY, FAILED   | READY: date_processed, processed_by
        READY     | RECEIVED,FAILED | RECEIVED: date_completed, pickup completed
        RECEIVED  | (none)          | terminal
        FAILED    | (none)          | terminal; pickup failed on entry
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol

from registrar_kernel.exceptions import IllegalTransitionError, ValidationError


class RequestStatus(str, Enum):
    """Office processing status of a request."""

    PENDING = "PENDING"
    SET = "SET"
    READY = "READY"
    RECEIVED = "RECEIVED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class PickupStatus(str, Enum):
    """Whether the physical handoff happened."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TrackingAction(str, Enum):
    """What produced a tracking entry."""

    CREATED = "created"
    TRANSITION = "transition"
    RESCHEDULED = "rescheduled"
    NOTES = "notes"


LEGAL_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.SET, RequestStatus.FAILED}),
    RequestStatus.SET: frozenset({RequestStatus.READY, RequestStatus.FAILED}),
    RequestStatus.READY: frozenset({RequestStatus.RECEIVED, RequestStatus.FAILED}),
    RequestStatus.RECEIVED: frozenset(),
    RequestStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({RequestStatus.RECEIVED, RequestStatus.FAILED})

RESCHEDULABLE_STATUSES = frozenset({RequestStatus.SET, RequestStatus.READY})

PICKUP_TRANSITIONS: dict[PickupStatus, frozenset[PickupStatus]] = {
    PickupStatus.PENDING: frozenset({PickupStatus.COMPLETED, PickupStatus.FAILED}),
    PickupStatus.COMPLETED: frozenset(),
    PickupStatus.FAILED: frozenset(),
}


def parse_status(value: RequestStatus | str) -> RequestStatus:
    """
    Raises:
        ValidationError: If ``value`` names no request status.
    """
    try:
        return RequestStatus(value.upper() if isinstance(value, str) else value)
    except ValueError:
        raise ValidationError(f"Unknown request status: {value!r}", field="status") from None


def is_legal(current: RequestStatus | str, target: RequestStatus | str) -> bool:
    """Return True if ``current -> target`` is an edge of the graph."""
    return RequestStatus(target) in LEGAL_TRANSITIONS[RequestStatus(current)]


def check_transition(
    current: RequestStatus | str,
    target: RequestStatus | str,
    request_id: int | None = None,
) -> None:
    """
    Validate a request-status transition.

    Raises:
        IllegalTransitionError: If the edge is not in the table, including
            self-transitions and anything leaving a terminal status.
    """
    current = RequestStatus(current)
    target = RequestStatus(target)
    if target in LEGAL_TRANSITIONS[current]:
        return
    reason = "terminal status" if current.is_terminal else None
    raise IllegalTransitionError(request_id, current.value, target.value, reason)


def check_pickup_transition(current: PickupStatus | str, target: PickupStatus | str) -> None:
    """Validate a pickup-status move; a pickup outcome is recorded once."""
    current = PickupStatus(current)
    target = PickupStatus(target)
    if target not in PICKUP_TRANSITIONS[current]:
        raise IllegalTransitionError(
            None, current.value, target.value, "pickup status already settled"
        )


def check_reschedulable(status: RequestStatus | str, request_id: int | None = None) -> None:
    """
    Raises:
        IllegalTransitionError: If the request is not SET or READY.
    """
    status = RequestStatus(status)
    if status not in RESCHEDULABLE_STATUSES:
        raise IllegalTransitionError(
            request_id,
            status.value,
            status.value,
            "pickup can only be rescheduled while SET or READY",
        )


@dataclass(frozen=True)
class TransitionEffects:
    """Derived fields a transition sets on the request."""

    sets_scheduled_pickup: bool = False
    sets_date_processed: bool = False
    sets_processed_by: bool = False
    sets_date_completed: bool = False
    pickup_status: PickupStatus | None = None


_EFFECTS: dict[RequestStatus, TransitionEffects] = {
    RequestStatus.SET: TransitionEffects(sets_scheduled_pickup=True),
    RequestStatus.READY: TransitionEffects(
        sets_date_processed=True,
        sets_processed_by=True,
    ),
    RequestStatus.RECEIVED: TransitionEffects(
        sets_date_completed=True,
        pickup_status=PickupStatus.COMPLETED,
    ),
    RequestStatus.FAILED: TransitionEffects(pickup_status=PickupStatus.FAILED),
}


def effects_of(target: RequestStatus | str) -> TransitionEffects:
    """Return the side effects of entering ``target``."""
    return _EFFECTS.get(RequestStatus(target), TransitionEffects())


class _TrackedStep(Protocol):
    status: str
    action: str


def replay_history(entries: Iterable[_TrackedStep], request_id: int | None = None) -> RequestStatus:
    """
    Replay a tracking sequence from PENDING and return the final status.

    The first entry must be the ``created`` entry at PENDING.  Every
    ``transition`` entry must be a legal edge from the previous status.
    Other actions (rescheduled, notes) must repeat the current status.

    Raises:
        IllegalTransitionError: On a skipped or illegal edge, or a history
            that does not start with the creation entry.
    """
    current: RequestStatus | None = None
    for entry in entries:
        status = RequestStatus(entry.status)
        action = TrackingAction(entry.action)
        if current is None:
            if action is not TrackingAction.CREATED or status is not RequestStatus.PENDING:
                raise IllegalTransitionError(
                    request_id, "(none)", status.value,
                    "history must start with the PENDING creation entry",
                )
            current = status
            continue
        if action is TrackingAction.TRANSITION:
            check_transition(current, status, request_id)
            current = status
        elif action is TrackingAction.CREATED:
            raise IllegalTransitionError(
                request_id, current.value, status.value, "duplicate creation entry"
            )
        elif status is not current:
            raise IllegalTransitionError(
                request_id, current.value, status.value,
                f"{action.value} entry changed status",
            )
    if current is None:
        raise IllegalTransitionError(request_id, "(none)", "(none)", "empty history")
    return current
