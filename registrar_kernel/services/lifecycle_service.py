"""
RequestLifecycleService -- applies status changes to a locked request.

Responsibility:
    The single writer of request status, pickup status and the derived
    fields (scheduled_pickup, rescheduled_pickup, date_processed,
    date_completed, processed_by, admin_notes).  Every mutation is
    followed, in the same transaction, by an AuditTrailRecorder append.

Architecture position:
    Kernel > Services.  Called by DocumentRequestEngine.  Legality comes
    from ``domain.lifecycle``; this class only loads, locks, applies and
    records.

Invariants enforced:
    - The request row is read with SELECT ... FOR UPDATE OF
      document_requests before any change, so concurrent transitions on
      one request serialize.
    - A caller that passes the status or version it decided on gets
      ConcurrentTransitionError when the locked row no longer carries
      them, instead of applying a decision made on stale state.
    - An illegal edge raises before anything is written.
    - ``version`` is bumped on every mutation.

Failure modes:
    - RequestNotFoundError: no such request.
    - IllegalTransitionError: edge not in the transition table, or
      reschedule outside SET/READY.
    - ConcurrentTransitionError: expected status/version no longer holds.
    - ValidationError: malformed pickup date or empty notes.
"""

from datetime import datetime

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, lazyload

from registrar_kernel.domain.clock import Clock
from registrar_kernel.domain.lifecycle import (
    PickupStatus,
    RequestStatus,
    TrackingAction,
    check_pickup_transition,
    check_reschedulable,
    check_transition,
    effects_of,
)
from registrar_kernel.exceptions import (
    ConcurrentTransitionError,
    RequestNotFoundError,
    ValidationError,
)
from registrar_kernel.logging_config import get_logger
from registrar_kernel.models.document_request import DocumentRequest
from registrar_kernel.services.audit_trail import AuditTrailRecorder
from registrar_kernel.services.base import BaseService

logger = get_logger("services.lifecycle")


def require_aware(value: object, field: str) -> datetime:
    """
    Raises:
        ValidationError: If ``value`` is not a timezone-aware datetime.
    """
    if not isinstance(value, datetime) or value.tzinfo is None:
        raise ValidationError(
            f"{field} must be a timezone-aware datetime, got {value!r}", field=field
        )
    return value


def lock_statement(request_pk: int) -> Select:
    """
    SELECT ... FOR UPDATE of one request row.

    Eager joins are switched off and the lock names document_requests
    only; PostgreSQL refuses FOR UPDATE on the nullable side of the outer
    joins that ``course`` and ``purpose`` would otherwise add.
    """
    return (
        select(DocumentRequest)
        .where(DocumentRequest.id == request_pk)
        .options(lazyload("*"))
        .with_for_update(of=DocumentRequest)
        .execution_options(populate_existing=True)
    )


class RequestLifecycleService(BaseService):
    """
    Contract:
        Each public method locks the request, validates, mutates, bumps
        the version, flushes and appends exactly one tracking entry.

    Non-goals:
        Scope checks (the engine resolves the caller's scope first) and
        notifications (dispatched after commit).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        auditor: AuditTrailRecorder | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._auditor = auditor or AuditTrailRecorder(session, clock)

    def lock(self, request_pk: int) -> DocumentRequest:
        """
        Load the request with a row lock, bypassing the identity map.

        Raises:
            RequestNotFoundError: No such request.
        """
        request = self.session.execute(lock_statement(request_pk)).scalar_one_or_none()
        if request is None:
            raise RequestNotFoundError(request_pk)
        return request

    def _lock_checked(
        self,
        request_pk: int,
        expected_status: RequestStatus | None,
        expected_version: int | None,
    ) -> DocumentRequest:
        request = self.lock(request_pk)

        if expected_status is not None and RequestStatus(request.status) != expected_status:
            raise ConcurrentTransitionError(
                request_pk, expected_status.value, RequestStatus(request.status).value
            )
        if expected_version is not None and request.version != expected_version:
            raise ConcurrentTransitionError(
                request_pk, f"version {expected_version}", f"version {request.version}"
            )
        return request

    def transition(
        self,
        request_pk: int,
        target: RequestStatus,
        actor_id: int | None,
        notes: str | None = None,
        *,
        scheduled_pickup: datetime | None = None,
        expected_status: RequestStatus | None = None,
        expected_version: int | None = None,
    ) -> DocumentRequest:
        """
        Move a request to ``target``.

        Preconditions:
            - The caller owns an open transaction.
        Postconditions:
            - status is ``target``; derived fields per ``effects_of``;
              version + 1; one tracking row appended.

        Args:
            request_pk: Surrogate key of the request.
            target: Status to enter.
            actor_id: Acting staff user, None for system transitions.
            notes: Stored on the tracking entry.
            scheduled_pickup: Pickup slot, honoured when entering SET.
            expected_status: Status the caller based its decision on.
            expected_version: Version the caller based its decision on.

        Raises:
            RequestNotFoundError, IllegalTransitionError,
            ConcurrentTransitionError, ValidationError.
        """
        target = RequestStatus(target)
        if scheduled_pickup is not None:
            require_aware(scheduled_pickup, "scheduled_pickup")

        request = self._lock_checked(request_pk, expected_status, expected_version)
        current = RequestStatus(request.status)

        check_transition(current, target, request_pk)

        now = self._clock.now()
        effects = effects_of(target)
        if effects.pickup_status is not None:
            check_pickup_transition(request.pickup_status, effects.pickup_status)
            request.pickup_status = effects.pickup_status.value
        if effects.sets_scheduled_pickup and scheduled_pickup is not None:
            request.scheduled_pickup = scheduled_pickup
        if effects.sets_date_processed:
            request.date_processed = now
        if effects.sets_processed_by:
            request.processed_by = actor_id
        if effects.sets_date_completed:
            request.date_completed = now

        request.status = target.value
        request.bump_version()
        self.session.flush()

        self._auditor.record(
            request.id,
            target,
            actor_id,
            notes,
            pickup_status=PickupStatus(request.pickup_status),
            action=TrackingAction.TRANSITION,
        )

        logger.info(
            "request_transitioned",
            extra={
                "request_pk": request.id,
                "from_status": current.value,
                "to_status": target.value,
                "pickup_status": request.pickup_status,
                "actor_id": actor_id,
                "version": request.version,
            },
        )
        return request

    def reschedule_pickup(
        self,
        request_pk: int,
        new_date: datetime,
        actor_id: int | None = None,
        notes: str | None = None,
        *,
        expected_version: int | None = None,
    ) -> DocumentRequest:
        """
        Set ``rescheduled_pickup`` without changing status.

        Raises:
            IllegalTransitionError: Request is not SET or READY.
            ValidationError: new_date is naive or not after now.
        """
        require_aware(new_date, "new_date")
        if new_date <= self._clock.now():
            raise ValidationError("Pickup can only be rescheduled to a future date", field="new_date")

        request = self._lock_checked(request_pk, None, expected_version)
        status = RequestStatus(request.status)
        check_reschedulable(status, request_pk)

        previous = request.rescheduled_pickup or request.scheduled_pickup
        request.rescheduled_pickup = new_date
        request.bump_version()
        self.session.flush()

        self._auditor.record(
            request.id,
            status,
            actor_id,
            notes or f"Pickup rescheduled to {new_date.isoformat()}",
            pickup_status=PickupStatus(request.pickup_status),
            action=TrackingAction.RESCHEDULED,
        )

        logger.info(
            "pickup_rescheduled",
            extra={
                "request_pk": request.id,
                "previous_pickup": previous,
                "new_pickup": new_date,
                "actor_id": actor_id,
            },
        )
        return request

    def add_admin_notes(
        self,
        request_pk: int,
        notes: str,
        actor_id: int | None,
    ) -> DocumentRequest:
        """
        Replace the request's admin notes and record the change.

        Raises:
            ValidationError: Blank notes.
        """
        if not notes or not notes.strip():
            raise ValidationError("Admin notes must not be empty", field="notes")

        request = self._lock_checked(request_pk, None, None)
        request.admin_notes = notes.strip()
        request.bump_version()
        self.session.flush()

        self._auditor.record(
            request.id,
            RequestStatus(request.status),
            actor_id,
            notes.strip(),
            pickup_status=PickupStatus(request.pickup_status),
            action=TrackingAction.NOTES,
        )
        logger.info(
            "admin_notes_updated",
            extra={"request_pk": request.id, "actor_id": actor_id},
        )
        return request
