"""
DocumentRequestEngine -- the operations exposed to the outside world.

Responsibility:
    createRequest, transition, reschedulePickup, history and report, plus
    the read operations the staff and requester pages need.  Each call
    validates its input, opens exactly one write transaction, delegates to the
    kernel services, converts the result to plain records, commits, and
    only then dispatches notifications.

Architecture position:
    Kernel > Services, outermost.  Owns transaction boundaries; the
    services it calls only flush.

Invariants enforced:
    - Malformed input is rejected before a session is opened.
    - A request mutation and its tracking entry commit together or not
      at all.
    - transition and reschedule_pickup first read (status, version) in a
      short snapshot transaction and apply only if the locked row still
      carries both.  A caller that decided on a row another writer has
      since changed gets ConcurrentTransitionError.
    - Notifier failures never roll back a committed change.  They are
      logged and returned on RequestOutcome.side_effect_errors.
    - Store failures surface as PersistenceError and are not retried.

Failure modes:
    - Every RegistrarKernelError raised by the services propagates as is.
    - IntegrityError outside identifier minting -> ConflictError.
    - Other DBAPIError (connection loss, lock timeout) -> PersistenceError.
"""

import time
from contextlib import contextmanager
from datetime import date, datetime, timezone, tzinfo
from typing import Generator, Iterator, Protocol, Sequence
from uuid import uuid4

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from registrar_kernel.db.engine import SNAPSHOT_READ, session_scope
from registrar_kernel.db.immutability import register_immutability_listeners
from registrar_kernel.domain.clock import Clock, SystemClock
from registrar_kernel.domain.dtos import (
    DocumentRequestRecord,
    LineItem,
    PurposeSpec,
    ReportRow,
    RequesterRef,
    RequestOutcome,
    TrackingRecord,
)
from registrar_kernel.domain.identifiers import IdentifierGenerator
from registrar_kernel.domain.lifecycle import RequestStatus, parse_status
from registrar_kernel.domain.pricing import validate_quantity
from registrar_kernel.domain.report import build_report_filter, parse_range
from registrar_kernel.exceptions import (
    ConflictError,
    PersistenceError,
    RequestNotFoundError,
    ValidationError,
)
from registrar_kernel.logging_config import LogContext, get_logger
from registrar_kernel.models.document_request import DocumentRequest
from registrar_kernel.selectors.request_selector import RequestSelector
from registrar_kernel.services.audit_trail import AuditTrailRecorder
from registrar_kernel.services.authorization import AuthorizationScopeResolver
from registrar_kernel.services.intake_service import IntakePolicy, RequestIntakeService
from registrar_kernel.services.lifecycle_service import (
    RequestLifecycleService,
    require_aware,
)

logger = get_logger("services.request_engine")

MAX_PAGE_SIZE = 500


class RequestNotifier(Protocol):
    """
    Post-commit side-effect hook (email, SMS, dashboards).

    Events: ``request_created``, ``status_changed``, ``pickup_rescheduled``,
    ``notes_updated``.
    """

    def notify(self, event: str, request: DocumentRequestRecord) -> None: ...


class DocumentRequestEngine:
    """
    Contract:
        All operations take and return plain data.  No session or ORM
        instance crosses this boundary.

    Guarantees:
        - One write transaction per call.
        - Mutating calls return RequestOutcome; ``partial_success`` is
          True when the change committed but a notification failed.

    Non-goals:
        - Retrying store failures.  The caller decides.
        - Authentication.  ``actor_id``/``user_id`` are trusted.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        policy: IntakePolicy | None = None,
        notifier: RequestNotifier | None = None,
        generator: IdentifierGenerator | None = None,
        report_timezone: tzinfo = timezone.utc,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._policy = policy or IntakePolicy()
        self._notifier = notifier
        self._generator = generator or IdentifierGenerator(self._clock)
        self._report_timezone = report_timezone
        register_immutability_listeners()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Session, None, None]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except IntegrityError as exc:
            raise ConflictError(f"{operation}: {exc.orig}") from exc
        except DBAPIError as exc:
            logger.error(
                "persistence_failure",
                extra={"operation": operation, "connection_invalidated": exc.connection_invalidated},
            )
            raise PersistenceError(operation, str(exc.orig)) from exc

    @contextmanager
    def _operation(self, name: str, **context) -> Iterator[None]:
        with LogContext.bind(correlation_id=uuid4().hex, **context):
            logger.info(f"{name}_started")
            t0 = time.monotonic()
            try:
                yield
            except Exception as exc:
                logger.warning(
                    f"{name}_failed",
                    extra={
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                        "error_code": getattr(exc, "code", type(exc).__name__),
                    },
                )
                raise
            logger.info(
                f"{name}_completed",
                extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )

    def _dispatch(self, event: str, record: DocumentRequestRecord) -> tuple[str, ...]:
        if self._notifier is None:
            return ()
        try:
            self._notifier.notify(event, record)
        except Exception as exc:
            logger.warning(
                "notification_failed",
                extra={"event": event, "request_pk": record.id},
                exc_info=True,
            )
            return (f"{event}: {type(exc).__name__}: {exc}",)
        return ()

    @staticmethod
    def _load(session: Session, request_pk: int) -> DocumentRequest:
        request = session.get(DocumentRequest, request_pk)
        if request is None:
            raise RequestNotFoundError(request_pk)
        return request

    def _require_visible(self, session: Session, request_pk: int, user_id: int | None) -> DocumentRequest:
        request = self._load(session, request_pk)
        if user_id is not None:
            AuthorizationScopeResolver(session).require_request_visible(user_id, request)
        return request

    def _snapshot(self, request_pk: int) -> tuple[RequestStatus, int]:
        """Committed (status, version), read outside the write transaction."""
        with self._transaction("snapshot") as session:
            session.connection(execution_options={SNAPSHOT_READ: True})
            state = RequestSelector(session).state_of(request_pk)
        if state is None:
            raise RequestNotFoundError(request_pk)
        return state

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_request(
        self,
        requester: RequesterRef,
        course_id: int | None,
        purpose: PurposeSpec,
        lines: Sequence[LineItem],
        *,
        school_year: str | None = None,
        semester: str | None = None,
    ) -> RequestOutcome:
        """
        Submit a new request.

        Returns:
            RequestOutcome with the PENDING request, its priced lines and
            identifiers.

        Raises:
            ValidationError (and subclasses), NotFoundError subclasses,
            IdentifierConflictError, PersistenceError.
        """
        lines = list(lines)
        if not lines:
            raise ValidationError("A request needs at least one document", field="lines")
        for line in lines:
            validate_quantity(line.quantity)

        with self._operation("create_request"):
            with self._transaction("create_request") as session:
                request = RequestIntakeService(
                    session, self._clock, self._policy, self._generator
                ).create_request(
                    requester,
                    course_id,
                    purpose,
                    lines,
                    school_year=school_year,
                    semester=semester,
                )
                record = DocumentRequestRecord.from_model(request)

        return RequestOutcome(record, self._dispatch("request_created", record))

    def transition(
        self,
        request_pk: int,
        target_status: RequestStatus | str,
        actor_id: int | None,
        notes: str | None = None,
        *,
        scheduled_pickup: datetime | None = None,
        expected_status: RequestStatus | str | None = None,
        expected_version: int | None = None,
    ) -> RequestOutcome:
        """
        Move a request along the lifecycle graph.

        The edge is taken from the status the request had when the call
        arrived.  If another writer changes the row before the lock is
        taken, the call fails with ConcurrentTransitionError rather than
        applying ``target_status`` to a state the caller never saw.

        Args:
            request_pk: Surrogate key of the request.
            target_status: Status to enter.
            actor_id: Staff user; None for system-initiated changes (no
                scope check).
            notes: Stored on the tracking entry.
            scheduled_pickup: Pickup slot when entering SET.
            expected_status: Status the caller saw; defaults to the
                status read when the call arrives.
            expected_version: Version the caller saw; defaults to the
                version read when the call arrives.

        Raises:
            IllegalTransitionError, ConcurrentTransitionError,
            ForbiddenError, RequestNotFoundError, ValidationError,
            PersistenceError.
        """
        target = parse_status(target_status)
        expected = parse_status(expected_status) if expected_status is not None else None
        if scheduled_pickup is not None:
            require_aware(scheduled_pickup, "scheduled_pickup")

        with self._operation("transition", actor_id=actor_id, request_id=request_pk):
            observed_status, observed_version = self._snapshot(request_pk)
            with self._transaction("transition") as session:
                self._require_visible(session, request_pk, actor_id)
                request = RequestLifecycleService(session, self._clock).transition(
                    request_pk,
                    target,
                    actor_id,
                    notes,
                    scheduled_pickup=scheduled_pickup,
                    expected_status=expected or observed_status,
                    expected_version=(
                        expected_version if expected_version is not None else observed_version
                    ),
                )
                record = DocumentRequestRecord.from_model(request)

        return RequestOutcome(record, self._dispatch("status_changed", record))

    def reschedule_pickup(
        self,
        request_pk: int,
        new_date: datetime,
        actor_id: int | None = None,
        notes: str | None = None,
        *,
        expected_version: int | None = None,
    ) -> RequestOutcome:
        """
        Set a new pickup date on a SET or READY request.

        ``expected_version`` defaults to the version read when the call
        arrives, as for ``transition``.

        Raises:
            IllegalTransitionError, ConcurrentTransitionError,
            ForbiddenError, RequestNotFoundError, ValidationError,
            PersistenceError.
        """
        require_aware(new_date, "new_date")

        with self._operation("reschedule_pickup", actor_id=actor_id, request_id=request_pk):
            _, observed_version = self._snapshot(request_pk)
            with self._transaction("reschedule_pickup") as session:
                self._require_visible(session, request_pk, actor_id)
                request = RequestLifecycleService(session, self._clock).reschedule_pickup(
                    request_pk,
                    new_date,
                    actor_id,
                    notes,
                    expected_version=(
                        expected_version if expected_version is not None else observed_version
                    ),
                )
                record = DocumentRequestRecord.from_model(request)

        return RequestOutcome(record, self._dispatch("pickup_rescheduled", record))

    def add_admin_notes(self, request_pk: int, notes: str, actor_id: int) -> RequestOutcome:
        if not notes or not notes.strip():
            raise ValidationError("Admin notes must not be empty", field="notes")

        with self._operation("add_admin_notes", actor_id=actor_id, request_id=request_pk):
            with self._transaction("add_admin_notes") as session:
                self._require_visible(session, request_pk, actor_id)
                request = RequestLifecycleService(session, self._clock).add_admin_notes(
                    request_pk, notes, actor_id
                )
                record = DocumentRequestRecord.from_model(request)

        return RequestOutcome(record, self._dispatch("notes_updated", record))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def history(self, request_pk: int, user_id: int | None = None) -> list[TrackingRecord]:
        """
        Ordered tracking entries of a request, oldest first.

        ``user_id`` None means a trusted internal caller (no scope check).
        """
        with self._transaction("history") as session:
            self._require_visible(session, request_pk, user_id)
            return AuditTrailRecorder(session, self._clock).history(request_pk)

    def report(
        self,
        from_date: date | str,
        to_date: date | str,
        user_id: int,
        department_id: int | None = None,
        status: RequestStatus | str | None = None,
    ) -> list[ReportRow]:
        """
        Requests created between two calendar dates (inclusive), limited
        to the caller's scope.

        Raises:
            InvalidRangeError: Malformed or inverted dates.
            ForbiddenError: department_id outside the caller's scope.
            UserNotFoundError.
        """
        parse_range(from_date, to_date)
        if status is not None:
            parse_status(status)

        with self._operation("report", actor_id=user_id):
            with self._transaction("report") as session:
                scope = AuthorizationScopeResolver(session).scope_for(user_id)
                report_filter = build_report_filter(
                    from_date,
                    to_date,
                    scope,
                    department_id=department_id,
                    status=status,
                    user_id=user_id,
                    tz=self._report_timezone,
                )
                rows = RequestSelector(session).report(report_filter)
            logger.info(
                "report_generated",
                extra={
                    "from_date": report_filter.from_date,
                    "to_date": report_filter.to_date,
                    "department_id": department_id,
                    "row_count": len(rows),
                },
            )
        return rows

    def get_request(self, request_pk: int, user_id: int) -> DocumentRequestRecord:
        with self._transaction("get_request") as session:
            request = self._require_visible(session, request_pk, user_id)
            return DocumentRequestRecord.from_model(request)

    def track(self, public_id: str) -> DocumentRequestRecord:
        """
        Requester-facing lookup by reference number or request number.

        Raises:
            RequestNotFoundError: Unknown or malformed identifier.
        """
        with self._transaction("track") as session:
            record = RequestSelector(session).find_by_public_id(public_id)
        if record is None:
            raise RequestNotFoundError(public_id)
        return record

    def list_requests(
        self,
        user_id: int,
        status: RequestStatus | str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DocumentRequestRecord]:
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
        if offset < 0:
            raise ValidationError("offset must not be negative", field="offset")
        status_filter = parse_status(status) if status is not None else None

        with self._transaction("list_requests") as session:
            scope = AuthorizationScopeResolver(session).scope_for(user_id)
            return RequestSelector(session).list_requests(
                scope, status=status_filter, limit=limit, offset=offset
            )

    def count_requests(self, user_id: int, status: RequestStatus | str | None = None) -> int:
        status_filter = parse_status(status) if status is not None else None
        with self._transaction("count_requests") as session:
            scope = AuthorizationScopeResolver(session).scope_for(user_id)
            return RequestSelector(session).count_requests(scope, status=status_filter)
