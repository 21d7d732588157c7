"""
Module: registrar_kernel.models.requester
Responsibility: ORM persistence for the two requester variants.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - email is unique per variant table; student_number is unique.
    - ``document_requests.requester_id`` points into exactly one of these
      tables, chosen by ``requester_type``.  There is no database foreign
      key on that column; RequesterResolver checks it instead.
"""

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from registrar_kernel.db.base import TrackedBase
from registrar_kernel.models.catalog import Course


class Student(TrackedBase):
    """Currently enrolled requester."""

    __tablename__ = "students"

    __table_args__ = (
        UniqueConstraint("student_number", name="uq_student_number"),
        UniqueConstraint("email", name="uq_student_email"),
    )

    student_number: Mapped[str] = mapped_column(String(30), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_initial: Mapped[str | None] = mapped_column(String(5), nullable=True)
    suffix: Mapped[str | None] = mapped_column(String(10), nullable=True)
    contact_no: Mapped[str | None] = mapped_column(String(30), nullable=True)

    course_id: Mapped[int | None] = mapped_column(
        ForeignKey("courses.id", ondelete="SET NULL"),
        nullable=True,
    )
    # e.g. "3rd Year"
    year_level: Mapped[str | None] = mapped_column(String(20), nullable=True)

    course: Mapped[Course | None] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Student {self.student_number}: {self.surname}, {self.first_name}>"


class Alumni(TrackedBase):
    """Graduated requester."""

    __tablename__ = "alumni"

    __table_args__ = (UniqueConstraint("email", name="uq_alumni_email"),)

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_initial: Mapped[str | None] = mapped_column(String(5), nullable=True)
    suffix: Mapped[str | None] = mapped_column(String(10), nullable=True)
    contact_no: Mapped[str | None] = mapped_column(String(30), nullable=True)

    course_id: Mapped[int | None] = mapped_column(
        ForeignKey("courses.id", ondelete="SET NULL"),
        nullable=True,
    )
    graduation_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    course: Mapped[Course | None] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Alumni {self.id}: {self.surname}, {self.first_name}>"
