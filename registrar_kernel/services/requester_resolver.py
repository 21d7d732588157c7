"""
RequesterResolver -- polymorphic lookup over students and alumni.

Responsibility:
    Maps ``(requester_id, requester_type)`` to a RequesterView, one
    resolver function per variant.  Downstream code (pricing, reports,
    notifications) only ever sees the view.

Failure modes:
    - RequesterNotFoundError when the id is absent from the variant's
      table.  Never defaulted: it means a broken reference.
    - ValidationError for an unknown requester type.
"""

from typing import Callable

from sqlalchemy.orm import Session

from registrar_kernel.domain.requester import RequesterType, RequesterView
from registrar_kernel.exceptions import RequesterNotFoundError
from registrar_kernel.logging_config import get_logger
from registrar_kernel.models.requester import Alumni, Student
from registrar_kernel.services.base import BaseService

logger = get_logger("services.requester_resolver")


def _resolve_student(session: Session, requester_id: int) -> RequesterView | None:
    student = session.get(Student, requester_id)
    if student is None:
        return None
    return RequesterView(
        requester_id=student.id,
        requester_type=RequesterType.STUDENT,
        email=student.email,
        surname=student.surname,
        first_name=student.first_name,
        middle_initial=student.middle_initial,
        suffix=student.suffix,
        contact_no=student.contact_no,
        course_id=student.course_id,
        program=student.course.course_name if student.course else None,
        year_context=student.year_level,
        natural_key=student.student_number,
    )


def _resolve_alumni(session: Session, requester_id: int) -> RequesterView | None:
    alumni = session.get(Alumni, requester_id)
    if alumni is None:
        return None
    return RequesterView(
        requester_id=alumni.id,
        requester_type=RequesterType.ALUMNI,
        email=alumni.email,
        surname=alumni.surname,
        first_name=alumni.first_name,
        middle_initial=alumni.middle_initial,
        suffix=alumni.suffix,
        contact_no=alumni.contact_no,
        course_id=alumni.course_id,
        program=alumni.course.course_name if alumni.course else None,
        year_context=(
            str(alumni.graduation_year) if alumni.graduation_year is not None else None
        ),
        natural_key=alumni.email,
    )


_RESOLVERS: dict[RequesterType, Callable[[Session, int], RequesterView | None]] = {
    RequesterType.STUDENT: _resolve_student,
    RequesterType.ALUMNI: _resolve_alumni,
}

class RequesterResolver(BaseService):
    """
    Contract:
        ``resolve`` returns a RequesterView or raises.  It never guesses
        the other variant when the declared one has no such id.
    """

    def resolve(self, requester_id: int, requester_type: RequesterType | str) -> RequesterView:
        """
        Raises:
            RequesterNotFoundError: id absent from the declared variant.
            ValidationError: unknown requester_type.
        """
        kind = RequesterType.parse(requester_type)
        view = _RESOLVERS[kind](self.session, requester_id)
        if view is None:
            logger.warning(
                "requester_not_found",
                extra={"requester_type": kind.value, "requester_id": requester_id},
            )
            raise RequesterNotFoundError(kind.value, requester_id)
        return view
