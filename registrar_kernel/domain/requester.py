"""
Requester -- tagged variant over the two kinds of requester.

Responsibility:
    Names the variants (student, alumni) and the uniform view the rest of
    the engine works with, so pricing, notifications and reports never
    branch on the underlying table.

Architecture position:
    Kernel > Domain.  Pure.  The resolver service builds RequesterView
    instances from ORM rows.
"""

from dataclasses import dataclass
from enum import Enum

from registrar_kernel.exceptions import ValidationError


class RequesterType(str, Enum):
    """Discriminator stored next to ``requester_id`` on every request."""

    STUDENT = "student"
    ALUMNI = "alumni"

    @classmethod
    def parse(cls, value: "RequesterType | str") -> "RequesterType":
        try:
            return cls(value.lower() if isinstance(value, str) else value)
        except ValueError:
            raise ValidationError(
                f"Unknown requester type: {value!r}", field="requester_type"
            ) from None


@dataclass(frozen=True)
class RequesterView:
    """
    Uniform projection of a student or alumni requester.

    ``year_context`` is the year level for students and the graduation
    year for alumni, rendered as text so callers need no type-casing.
    """

    requester_id: int
    requester_type: RequesterType
    email: str
    surname: str
    first_name: str
    middle_initial: str | None
    suffix: str | None
    contact_no: str | None
    course_id: int | None
    program: str | None
    year_context: str | None
    natural_key: str

    @property
    def full_name(self) -> str:
        parts = [self.first_name]
        if self.middle_initial:
            parts.append(f"{self.middle_initial.rstrip('.')}.")
        parts.append(self.surname)
        if self.suffix:
            parts.append(self.suffix)
        return " ".join(parts)
