"""
AuditTrailRecorder -- append-only request history.

Responsibility:
    Appends one RequestTracking row per status transition, reschedule,
    admin note and creation, and reads the ordered history back.

Architecture position:
    Kernel > Services.  Called by the lifecycle and intake services inside
    the same transaction as the mutation it records.

Invariants enforced:
    - Append only: this class exposes no update or delete; the ORM
      listeners in db/immutability.py reject both.
    - If the append fails to flush, the exception propagates and the
      owning transaction rolls the mutation back with it.
    - History order is (changed_at, id).
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from registrar_kernel.domain.clock import Clock
from registrar_kernel.domain.dtos import TrackingRecord
from registrar_kernel.domain.lifecycle import PickupStatus, RequestStatus, TrackingAction
from registrar_kernel.logging_config import get_logger
from registrar_kernel.models.request_tracking import RequestTracking
from registrar_kernel.services.base import BaseService

logger = get_logger("services.audit_trail")


class AuditTrailRecorder(BaseService):
    """
    Contract:
        ``record`` is a pure append.  Two identical calls produce two rows;
        each is a distinct historical fact.
    """

    def __init__(self, session: Session, clock: Clock):
        super().__init__(session)
        self._clock = clock

    def record(
        self,
        request_pk: int,
        status: RequestStatus,
        changed_by: int | None = None,
        notes: str | None = None,
        *,
        pickup_status: PickupStatus,
        action: TrackingAction = TrackingAction.TRANSITION,
    ) -> TrackingRecord:
        """
        Append a history entry.

        Args:
            request_pk: Surrogate key of the request.
            status: Request status after the change.
            changed_by: Acting user id, None when system-initiated.
            notes: Free text shown in the history.
            pickup_status: Pickup status after the change.
            action: What produced the entry.

        Returns:
            The persisted entry as a TrackingRecord.
        """
        entry = RequestTracking(
            request_pk=request_pk,
            status=RequestStatus(status).value,
            pickup_status=PickupStatus(pickup_status).value,
            action=TrackingAction(action).value,
            changed_by=changed_by,
            notes=notes,
            changed_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "tracking_recorded",
            extra={
                "request_pk": request_pk,
                "status": entry.status,
                "action": entry.action,
                "changed_by": changed_by,
                "tracking_id": entry.id,
            },
        )
        return TrackingRecord.from_model(entry)

    def history(self, request_pk: int) -> list[TrackingRecord]:
        rows = self.session.execute(
            select(RequestTracking)
            .where(RequestTracking.request_pk == request_pk)
            .order_by(RequestTracking.changed_at, RequestTracking.id)
        ).scalars()
        return [TrackingRecord.from_model(row) for row in rows]
