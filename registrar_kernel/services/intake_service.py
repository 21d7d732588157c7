"""
RequestIntakeService -- creates a request aggregate in one unit of work.

Responsibility:
    Validates a submission, resolves requester, course and purpose,
    applies the intake protections, prices the lines, mints identifiers,
    inserts the request with its lines and appends the initial PENDING
    tracking entry.

Architecture position:
    Kernel > Services.  Called by DocumentRequestEngine inside its
    transaction.  Flushes, never commits.

Invariants enforced:
    - total_amount is the sum of the priced lines, written once here.
    - Every foreign key is checked before the insert, so the only
      IntegrityError the insert can raise is an identifier collision.
    - The insert runs in a SAVEPOINT.  On collision the savepoint is
      rolled back and a fresh identifier triple is minted, up to
      ``identifier_retry_limit`` attempts.
    - The creation entry is recorded in the same transaction.

Failure modes:
    - RequesterNotFoundError, CourseNotFoundError, PurposeNotFoundError.
    - InvalidDocumentTypeError, ValidationError.
    - DuplicateRequestError, RequestCooldownError, PendingLimitError.
    - IdentifierConflictError after exhausting retries.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from registrar_kernel.domain.clock import Clock
from registrar_kernel.domain.dtos import LineItem, PurposeSpec, RequesterRef
from registrar_kernel.domain.identifiers import IdentifierGenerator
from registrar_kernel.domain.lifecycle import PickupStatus, RequestStatus, TrackingAction
from registrar_kernel.domain.pricing import PriceQuote
from registrar_kernel.domain.requester import RequesterView
from registrar_kernel.exceptions import (
    CourseNotFoundError,
    DuplicateRequestError,
    IdentifierConflictError,
    InvalidDocumentTypeError,
    PendingLimitError,
    PurposeNotFoundError,
    RequestCooldownError,
)
from registrar_kernel.logging_config import get_logger
from registrar_kernel.models.catalog import Course, RequestPurpose
from registrar_kernel.models.document_request import DocumentRequest, RequestDocument
from registrar_kernel.services.audit_trail import AuditTrailRecorder
from registrar_kernel.services.base import BaseService
from registrar_kernel.services.pricing_service import PricingCalculator
from registrar_kernel.services.requester_resolver import RequesterResolver

logger = get_logger("services.intake")

INITIAL_TRACKING_NOTE = "Request submitted and pending review"

_IDENTIFIER_COLUMNS = ("request_id", "request_no", "reference_number")


@dataclass(frozen=True)
class IntakePolicy:
    """
    Intake limits applied to every new request.

    A zero cooldown or a zero pending limit disables that check.
    """

    cooldown_minutes: int = 5
    max_pending_requests: int = 3
    duplicate_guard: bool = True
    enforce_purpose_documents: bool = True
    identifier_retry_limit: int = 5

    def __post_init__(self) -> None:
        if self.cooldown_minutes < 0:
            raise ValueError("cooldown_minutes must be >= 0")
        if self.max_pending_requests < 0:
            raise ValueError("max_pending_requests must be >= 0")
        if self.identifier_retry_limit < 1:
            raise ValueError("identifier_retry_limit must be >= 1")


def _is_identifier_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(column in message for column in _IDENTIFIER_COLUMNS)


class RequestIntakeService(BaseService):
    """
    Contract:
        ``create_request`` returns the flushed DocumentRequest with its
        lines and one ``created`` tracking entry, or raises before
        anything is left in the session.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        policy: IntakePolicy | None = None,
        generator: IdentifierGenerator | None = None,
        auditor: AuditTrailRecorder | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policy = policy or IntakePolicy()
        self._generator = generator or IdentifierGenerator(clock)
        self._auditor = auditor or AuditTrailRecorder(session, clock)
        self._resolver = RequesterResolver(session)
        self._pricing = PricingCalculator(session)

    # ------------------------------------------------------------------
    # Reference checks
    # ------------------------------------------------------------------

    def _load_course(self, course_id: int | None, requester: RequesterView) -> int | None:
        if course_id is None:
            return requester.course_id
        if self.session.get(Course, course_id) is None:
            raise CourseNotFoundError(course_id)
        return course_id

    def _load_purpose(self, purpose: PurposeSpec) -> RequestPurpose | None:
        if purpose.purpose_id is None:
            return None
        found = self.session.get(RequestPurpose, purpose.purpose_id)
        if found is None or not found.is_active:
            raise PurposeNotFoundError(purpose.purpose_id)
        return found

    def _check_purpose_documents(self, purpose: RequestPurpose | None, quote: PriceQuote) -> None:
        if purpose is None or not self._policy.enforce_purpose_documents:
            return
        allowed = {doc_type.id for doc_type in purpose.document_types}
        # A purpose with no configured documents accepts any active type.
        if not allowed:
            return
        for line in quote.lines:
            if line.document_type_id not in allowed:
                raise InvalidDocumentTypeError(
                    line.document_type_id,
                    f"is not offered for purpose '{purpose.purpose_name}'",
                )

    # ------------------------------------------------------------------
    # Intake protections
    # ------------------------------------------------------------------

    def _requester_filter(self, requester: RequesterView):
        return (
            DocumentRequest.requester_type == requester.requester_type.value,
            DocumentRequest.requester_id == requester.requester_id,
        )

    def _check_duplicate(self, requester: RequesterView, purpose_id: int | None, quote: PriceQuote) -> None:
        if not self._policy.duplicate_guard or purpose_id is None:
            return
        duplicates = self.session.execute(
            select(func.count(DocumentRequest.id))
            .join(RequestDocument, RequestDocument.request_pk == DocumentRequest.id)
            .where(
                *self._requester_filter(requester),
                DocumentRequest.purpose_id == purpose_id,
                DocumentRequest.status == RequestStatus.PENDING.value,
                RequestDocument.document_type_id.in_(sorted(quote.document_type_ids)),
            )
        ).scalar_one()
        if duplicates:
            raise DuplicateRequestError(
                requester.requester_type.value, requester.requester_id, purpose_id
            )

    def _check_cooldown(self, requester: RequesterView) -> None:
        minutes = self._policy.cooldown_minutes
        if minutes == 0:
            return
        last = self.session.execute(
            select(func.max(DocumentRequest.created_at)).where(
                *self._requester_filter(requester)
            )
        ).scalar_one_or_none()
        if last is None:
            return
        elapsed = self._clock.now() - last
        window = timedelta(minutes=minutes)
        if elapsed < window:
            remaining = math.ceil((window - elapsed).total_seconds() / 60)
            raise RequestCooldownError(
                requester.requester_type.value, requester.requester_id, max(remaining, 1)
            )

    def _check_pending_limit(self, requester: RequesterView) -> None:
        limit = self._policy.max_pending_requests
        if limit == 0:
            return
        pending = self.session.execute(
            select(func.count(DocumentRequest.id)).where(
                *self._requester_filter(requester),
                DocumentRequest.status == RequestStatus.PENDING.value,
            )
        ).scalar_one()
        if pending >= limit:
            raise PendingLimitError(
                requester.requester_type.value, requester.requester_id, limit
            )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _insert(
        self,
        requester: RequesterView,
        course_id: int | None,
        purpose: PurposeSpec,
        quote: PriceQuote,
        school_year: str | None,
        semester: str | None,
    ) -> DocumentRequest:
        limit = self._policy.identifier_retry_limit
        for attempt in range(1, limit + 1):
            identifiers = self._generator.mint()
            request = DocumentRequest(
                request_id=identifiers.request_id,
                request_no=identifiers.request_no,
                reference_number=identifiers.reference_number,
                requester_id=requester.requester_id,
                requester_type=requester.requester_type.value,
                course_id=course_id,
                purpose_id=purpose.purpose_id,
                other_purpose=purpose.other_purpose,
                status=RequestStatus.PENDING.value,
                pickup_status=PickupStatus.PENDING.value,
                total_amount=quote.total_amount,
                school_year=school_year,
                semester=semester,
                version=1,
                created_at=self._clock.now(),
                lines=[
                    RequestDocument(
                        document_type_id=line.document_type_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        total_price=line.total_price,
                        year=line.year,
                        semester=line.semester,
                    )
                    for line in quote.lines
                ],
            )

            savepoint = self.session.begin_nested()
            try:
                self.session.add(request)
                self.session.flush()
                savepoint.commit()
                return request
            except IntegrityError as exc:
                savepoint.rollback()
                if not _is_identifier_collision(exc):
                    raise
                logger.warning(
                    "identifier_collision_retry",
                    extra={"attempt": attempt, "max_attempts": limit},
                )

        logger.error("identifier_retries_exhausted", extra={"attempts": limit})
        raise IdentifierConflictError(limit)

    def create_request(
        self,
        requester_ref: RequesterRef,
        course_id: int | None,
        purpose: PurposeSpec,
        lines: Sequence[LineItem],
        *,
        school_year: str | None = None,
        semester: str | None = None,
    ) -> DocumentRequest:
        """
        Create a PENDING request with its priced lines.

        Preconditions:
            - The caller owns an open transaction.
        Postconditions:
            - One document_requests row, one request_documents row per
              line, one ``created`` tracking row.  Flushed, not committed.

        Args:
            requester_ref: Who is asking.
            course_id: Program the request is filed under; defaults to the
                requester's own course.
            purpose: Catalogued purpose and/or free text.
            lines: Requested documents and quantities.
            school_year, semester: Academic term (student requests).
        """
        requester = self._resolver.resolve(
            requester_ref.requester_id, requester_ref.requester_type
        )
        effective_course = self._load_course(course_id, requester)
        purpose_row = self._load_purpose(purpose)
        quote = self._pricing.price(lines)
        self._check_purpose_documents(purpose_row, quote)

        self._check_duplicate(requester, purpose.purpose_id, quote)
        self._check_cooldown(requester)
        self._check_pending_limit(requester)

        request = self._insert(
            requester, effective_course, purpose, quote, school_year, semester
        )

        self._auditor.record(
            request.id,
            RequestStatus.PENDING,
            None,
            INITIAL_TRACKING_NOTE,
            pickup_status=PickupStatus.PENDING,
            action=TrackingAction.CREATED,
        )

        logger.info(
            "request_created",
            extra={
                "request_pk": request.id,
                "request_no": request.request_no,
                "reference_number": request.reference_number,
                "requester_type": requester.requester_type.value,
                "requester_id": requester.requester_id,
                "line_count": len(quote.lines),
                "total_amount": quote.total_amount,
            },
        )
        return request
