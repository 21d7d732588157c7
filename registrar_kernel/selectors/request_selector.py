"""
Module: registrar_kernel.selectors.request_selector
Responsibility: Read side of document requests: single lookups, public
    tracking lookups, scoped listings and date-ranged reports.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every listing and report is filtered by a DepartmentScope joined
      through Course -> Department.  An empty scope yields no rows.
      Requests without a course (or whose course has no department) are
      visible only under ALL.
    - Results are ordered newest first (created_at DESC, id DESC).
"""

from sqlalchemy import Select, and_, false, func, select
from sqlalchemy.orm import aliased

from registrar_kernel.domain.dtos import DocumentRequestRecord, ReportRow
from registrar_kernel.domain.identifiers import (
    looks_like_reference_number,
    looks_like_request_no,
)
from registrar_kernel.domain.lifecycle import RequestStatus
from registrar_kernel.domain.report import ReportFilter
from registrar_kernel.domain.requester import RequesterType
from registrar_kernel.domain.scope import DepartmentScope
from registrar_kernel.models.catalog import Course, RequestPurpose
from registrar_kernel.models.document_request import DocumentRequest
from registrar_kernel.models.organization import Department
from registrar_kernel.models.requester import Alumni, Student
from registrar_kernel.selectors.base import BaseSelector

_ScopeCourse = aliased(Course, name="scope_course")


def apply_scope(stmt: Select, scope: DepartmentScope) -> Select:
    """Restrict a DocumentRequest query to ``scope``."""
    if scope.is_all:
        return stmt
    if scope.is_empty:
        return stmt.where(false())
    return stmt.where(
        DocumentRequest.course_id.in_(
            select(_ScopeCourse.id).where(
                _ScopeCourse.department_id.in_(sorted(scope.departments))
            )
        )
    )


class RequestSelector(BaseSelector):
    """Read-only access to document requests."""

    def get(self, request_pk: int) -> DocumentRequestRecord | None:
        request = self.session.get(DocumentRequest, request_pk)
        return DocumentRequestRecord.from_model(request) if request else None

    def state_of(self, request_pk: int) -> tuple[RequestStatus, int] | None:
        """(status, version) of a request, or None if it does not exist."""
        row = self.session.execute(
            select(DocumentRequest.status, DocumentRequest.version).where(
                DocumentRequest.id == request_pk
            )
        ).one_or_none()
        return (RequestStatus(row.status), row.version) if row else None

    def department_of(self, request_pk: int) -> int | None:
        return self.session.execute(
            select(Course.department_id)
            .join(DocumentRequest, DocumentRequest.course_id == Course.id)
            .where(DocumentRequest.id == request_pk)
        ).scalar_one_or_none()

    def find_by_public_id(self, public_id: str) -> DocumentRequestRecord | None:
        """
        Look a request up by reference number or request number.

        Strings matching neither format return None without querying.
        """
        value = (public_id or "").strip().upper()
        if looks_like_reference_number(value):
            column = DocumentRequest.reference_number
        elif looks_like_request_no(value):
            column = DocumentRequest.request_no
        else:
            return None
        request = self.session.execute(
            select(DocumentRequest).where(column == value)
        ).scalar_one_or_none()
        return DocumentRequestRecord.from_model(request) if request else None

    def _listing(self, scope: DepartmentScope, status: RequestStatus | None) -> Select:
        stmt = select(DocumentRequest)
        if status is not None:
            stmt = stmt.where(DocumentRequest.status == RequestStatus(status).value)
        return apply_scope(stmt, scope)

    def list_requests(
        self,
        scope: DepartmentScope,
        status: RequestStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DocumentRequestRecord]:
        stmt = (
            self._listing(scope, status)
            .order_by(DocumentRequest.created_at.desc(), DocumentRequest.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [
            DocumentRequestRecord.from_model(row)
            for row in self.session.execute(stmt).scalars()
        ]

    def count_requests(self, scope: DepartmentScope, status: RequestStatus | None = None) -> int:
        subquery = self._listing(scope, status).subquery()
        return self.session.execute(select(func.count()).select_from(subquery)).scalar_one()

    def report(self, report_filter: ReportFilter) -> list[ReportRow]:
        """
        Requests created inside the filter's range and scope, newest first.
        """
        student_match = and_(
            DocumentRequest.requester_type == RequesterType.STUDENT.value,
            Student.id == DocumentRequest.requester_id,
        )
        alumni_match = and_(
            DocumentRequest.requester_type == RequesterType.ALUMNI.value,
            Alumni.id == DocumentRequest.requester_id,
        )
        stmt = (
            select(
                DocumentRequest,
                Student.first_name,
                Student.surname,
                Alumni.first_name,
                Alumni.surname,
                Course.course_name,
                Department.id,
                Department.name,
                RequestPurpose.purpose_name,
            )
            .outerjoin(Course, Course.id == DocumentRequest.course_id)
            .outerjoin(Department, Department.id == Course.department_id)
            .outerjoin(RequestPurpose, RequestPurpose.id == DocumentRequest.purpose_id)
            .outerjoin(Student, student_match)
            .outerjoin(Alumni, alumni_match)
            .where(
                DocumentRequest.created_at >= report_filter.start,
                DocumentRequest.created_at < report_filter.end,
            )
        )
        if report_filter.status is not None:
            stmt = stmt.where(DocumentRequest.status == report_filter.status.value)

        scope = report_filter.scope
        if scope.is_empty:
            stmt = stmt.where(false())
        elif not scope.is_all:
            stmt = stmt.where(Department.id.in_(sorted(scope.departments)))

        stmt = stmt.order_by(DocumentRequest.created_at.desc(), DocumentRequest.id.desc())

        rows = []
        for (
            request,
            student_first,
            student_last,
            alumni_first,
            alumni_last,
            course_name,
            department_id,
            department_name,
            purpose_name,
        ) in self.session.execute(stmt):
            first = student_first or alumni_first
            last = student_last or alumni_last
            rows.append(
                ReportRow(
                    request=DocumentRequestRecord.from_model(request),
                    requester_name=f"{first} {last}" if first or last else None,
                    course_name=course_name,
                    department_id=department_id,
                    department_name=department_name,
                    purpose_name=purpose_name or request.other_purpose,
                )
            )
        return rows
