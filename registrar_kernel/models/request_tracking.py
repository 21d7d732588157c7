"""
Module: registrar_kernel.models.request_tracking
Responsibility: ORM persistence for the append-only request history.
Architecture position: Kernel > Models.  May import from db/ and the
    domain enums.

Invariants enforced:
    - Rows are inserted once and never updated or deleted
      (db/immutability.py rejects both at flush time).
    - One row per status transition, plus one per reschedule or admin
      note, plus the initial ``created`` row.
    - History order is (changed_at, id): insertion order breaks ties.

Audit relevance:
    Replaying a request's rows from the ``created`` entry reproduces its
    path through the lifecycle graph.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from registrar_kernel.db.base import Base
from registrar_kernel.domain.lifecycle import PickupStatus, RequestStatus, TrackingAction


class RequestTracking(Base):
    """
    Immutable history entry of a document request.

    ``changed_by`` is None for system-initiated entries, including the
    creation entry written on behalf of the requester.
    """

    __tablename__ = "request_tracking"

    __table_args__ = (
        Index("idx_request_tracking_history", "request_pk", "changed_at", "id"),
    )

    request_pk: Mapped[int] = mapped_column(
        ForeignKey("document_requests.id"),
        nullable=False,
    )
    status: Mapped[RequestStatus] = mapped_column(String(20), nullable=False)
    pickup_status: Mapped[PickupStatus] = mapped_column(String(20), nullable=False)
    action: Mapped[TrackingAction] = mapped_column(String(20), nullable=False)
    changed_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<RequestTracking {self.request_pk}: {self.action} {self.status}>"
