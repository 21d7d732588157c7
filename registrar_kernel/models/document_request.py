"""
Module: registrar_kernel.models.document_request
Responsibility: ORM persistence for the request aggregate: the
    DocumentRequest root and its RequestDocument line items.
Architecture position: Kernel > Models.  May import from db/ and the
    domain enums.

Invariants enforced:
    - request_id, request_no and reference_number are each UNIQUE across
      every request ever stored.  Identifier minting retries on collision.
    - total_amount equals the sum of line total_price values when
      persisted.  Only RequestIntakeService writes it.
    - status and pickup_status change only through RequestLifecycleService,
      and every change is paired with a RequestTracking row.
    - version increases by one on every mutation of the row.
    - Line items are immutable once flushed (db/immutability.py).
    - unit_price is a snapshot of DocumentType.base_price at submission.

Failure modes:
    - IntegrityError on identifier collision (handled by intake retry).
    - ImmutabilityViolationError on UPDATE or DELETE of a line item.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from registrar_kernel.db.base import Base, TrackedBase
from registrar_kernel.domain.lifecycle import PickupStatus, RequestStatus
from registrar_kernel.models.catalog import Course, DocumentType, RequestPurpose


class DocumentRequest(TrackedBase):
    """
    Aggregate root of a document request.

    Contract:
        Created with status PENDING and pickup_status pending.  Derived
        fields (date_processed, date_completed, processed_by) are written
        by the lifecycle service only.

    Non-goals:
        No foreign key on requester_id; the variant is resolved by
        requester_type.
    """

    __tablename__ = "document_requests"

    __table_args__ = (
        UniqueConstraint("request_id", name="uq_document_request_request_id"),
        UniqueConstraint("request_no", name="uq_document_request_request_no"),
        UniqueConstraint("reference_number", name="uq_document_request_reference"),
        CheckConstraint("total_amount >= 0", name="ck_document_request_total"),
        CheckConstraint(
            "requester_type IN ('student', 'alumni')",
            name="ck_document_request_requester_type",
        ),
        Index("idx_document_request_requester", "requester_type", "requester_id"),
        Index("idx_document_request_status", "status"),
        Index("idx_document_request_created", "created_at"),
        Index("idx_document_request_course", "course_id"),
    )

    request_id: Mapped[str] = mapped_column(String(32), nullable=False)
    request_no: Mapped[str] = mapped_column(String(32), nullable=False)
    reference_number: Mapped[str] = mapped_column(String(32), nullable=False)

    requester_id: Mapped[int] = mapped_column(nullable=False)
    requester_type: Mapped[str] = mapped_column(String(20), nullable=False)

    course_id: Mapped[int | None] = mapped_column(
        ForeignKey("courses.id"),
        nullable=True,
    )
    purpose_id: Mapped[int | None] = mapped_column(
        ForeignKey("request_purposes.id"),
        nullable=True,
    )
    other_purpose: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[RequestStatus] = mapped_column(
        String(20),
        default=RequestStatus.PENDING,
        nullable=False,
    )
    pickup_status: Mapped[PickupStatus] = mapped_column(
        String(20),
        default=PickupStatus.PENDING,
        nullable=False,
    )

    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    scheduled_pickup: Mapped[datetime | None] = mapped_column(nullable=True)
    rescheduled_pickup: Mapped[datetime | None] = mapped_column(nullable=True)
    date_processed: Mapped[datetime | None] = mapped_column(nullable=True)
    date_completed: Mapped[datetime | None] = mapped_column(nullable=True)

    processed_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Academic term for student requests
    school_year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    semester: Mapped[str | None] = mapped_column(String(20), nullable=True)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    lines: Mapped[list["RequestDocument"]] = relationship(
        back_populates="request",
        order_by="RequestDocument.id",
        lazy="selectin",
    )
    course: Mapped[Course | None] = relationship(lazy="joined")
    purpose: Mapped[RequestPurpose | None] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<DocumentRequest {self.request_no}: {self.status}>"

    def bump_version(self) -> None:
        self.version = (self.version or 0) + 1


class RequestDocument(Base):
    """
    One requested document line.

    Contract:
        ``total_price == quantity * unit_price``.  The unit price is a
        snapshot and is never recomputed from DocumentType.
    """

    __tablename__ = "request_documents"

    __table_args__ = (
        UniqueConstraint(
            "request_pk", "document_type_id", name="uq_request_document_type"
        ),
        CheckConstraint("quantity >= 1", name="ck_request_document_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_request_document_unit_price"),
    )

    request_pk: Mapped[int] = mapped_column(
        ForeignKey("document_requests.id"),
        nullable=False,
    )
    document_type_id: Mapped[int] = mapped_column(
        ForeignKey("document_types.id"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    total_price: Mapped[Decimal] = mapped_column(nullable=False)

    # Year and semester printed on the document (alumni requests)
    year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    semester: Mapped[str | None] = mapped_column(String(20), nullable=True)

    request: Mapped[DocumentRequest] = relationship(back_populates="lines")
    document_type: Mapped[DocumentType] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<RequestDocument {self.document_type_id} x{self.quantity} "
            f"@ {self.unit_price}>"
        )
