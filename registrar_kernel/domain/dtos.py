"""
DTOs -- plain records crossing the engine boundary.

Responsibility:
    Inputs to ``create_request`` (RequesterRef, PurposeSpec, LineItem) and
    the frozen records every operation returns.  No ORM instance or
    session handle leaves the engine.

Architecture position:
    Kernel > Domain.  ``from_model`` converters exist for the service and
    selector layers; domain logic never calls them.

Data flow:
    LineItem -> PricedLine -> RequestDocument (ORM) -> RequestLineRecord
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from registrar_kernel.domain.lifecycle import (
    PickupStatus,
    RequestStatus,
    TrackingAction,
)
from registrar_kernel.domain.requester import RequesterType
from registrar_kernel.exceptions import ValidationError

if TYPE_CHECKING:
    from registrar_kernel.models.document_request import (
        DocumentRequest as DocumentRequestModel,
        RequestDocument as RequestDocumentModel,
    )
    from registrar_kernel.models.request_tracking import (
        RequestTracking as RequestTrackingModel,
    )


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequesterRef:
    requester_id: int
    requester_type: RequesterType

    def __post_init__(self) -> None:
        object.__setattr__(self, "requester_type", RequesterType.parse(self.requester_type))


@dataclass(frozen=True)
class PurposeSpec:
    """A catalogued purpose, free text, or both (free text elaborating "Others")."""

    purpose_id: int | None = None
    other_purpose: str | None = None

    def __post_init__(self) -> None:
        other = (self.other_purpose or "").strip() or None
        object.__setattr__(self, "other_purpose", other)
        if self.purpose_id is None and other is None:
            raise ValidationError(
                "A purpose or a free-text purpose is required", field="purpose"
            )


@dataclass(frozen=True)
class LineItem:
    document_type_id: int
    quantity: int = 1
    year: str | None = None
    semester: str | None = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestLineRecord:
    id: int
    document_type_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    year: str | None = None
    semester: str | None = None

    @classmethod
    def from_model(cls, model: RequestDocumentModel) -> RequestLineRecord:
        return cls(
            id=model.id,
            document_type_id=model.document_type_id,
            quantity=model.quantity,
            unit_price=model.unit_price,
            total_price=model.total_price,
            year=model.year,
            semester=model.semester,
        )


@dataclass(frozen=True)
class DocumentRequestRecord:
    id: int
    request_id: str
    request_no: str
    reference_number: str
    requester_id: int
    requester_type: RequesterType
    course_id: int | None
    purpose_id: int | None
    other_purpose: str | None
    status: RequestStatus
    pickup_status: PickupStatus
    total_amount: Decimal
    scheduled_pickup: datetime | None
    rescheduled_pickup: datetime | None
    date_processed: datetime | None
    date_completed: datetime | None
    processed_by: int | None
    admin_notes: str | None
    school_year: str | None
    semester: str | None
    version: int
    created_at: datetime
    lines: tuple[RequestLineRecord, ...] = field(default_factory=tuple)

    @property
    def effective_pickup(self) -> datetime | None:
        return self.rescheduled_pickup or self.scheduled_pickup

    @classmethod
    def from_model(cls, model: DocumentRequestModel) -> DocumentRequestRecord:
        return cls(
            id=model.id,
            request_id=model.request_id,
            request_no=model.request_no,
            reference_number=model.reference_number,
            requester_id=model.requester_id,
            requester_type=RequesterType(model.requester_type),
            course_id=model.course_id,
            purpose_id=model.purpose_id,
            other_purpose=model.other_purpose,
            status=RequestStatus(model.status),
            pickup_status=PickupStatus(model.pickup_status),
            total_amount=model.total_amount,
            scheduled_pickup=model.scheduled_pickup,
            rescheduled_pickup=model.rescheduled_pickup,
            date_processed=model.date_processed,
            date_completed=model.date_completed,
            processed_by=model.processed_by,
            admin_notes=model.admin_notes,
            school_year=model.school_year,
            semester=model.semester,
            version=model.version,
            created_at=model.created_at,
            lines=tuple(
                RequestLineRecord.from_model(line)
                for line in sorted(model.lines, key=lambda line: line.id)
            ),
        )


@dataclass(frozen=True)
class TrackingRecord:
    id: int
    request_pk: int
    status: RequestStatus
    pickup_status: PickupStatus
    action: TrackingAction
    changed_by: int | None
    notes: str | None
    changed_at: datetime

    @classmethod
    def from_model(cls, model: RequestTrackingModel) -> TrackingRecord:
        return cls(
            id=model.id,
            request_pk=model.request_pk,
            status=RequestStatus(model.status),
            pickup_status=PickupStatus(model.pickup_status),
            action=TrackingAction(model.action),
            changed_by=model.changed_by,
            notes=model.notes,
            changed_at=model.changed_at,
        )


@dataclass(frozen=True)
class ReportRow:
    """One exported request with the joined names a report shows."""

    request: DocumentRequestRecord
    requester_name: str | None
    course_name: str | None
    department_id: int | None
    department_name: str | None
    purpose_name: str | None


@dataclass(frozen=True)
class RequestOutcome:
    """
    Result of a mutating engine call.

    ``side_effect_errors`` lists post-commit notification failures.  The
    state change itself is committed either way.
    """

    request: DocumentRequestRecord
    side_effect_errors: tuple[str, ...] = ()

    @property
    def partial_success(self) -> bool:
        return bool(self.side_effect_errors)
