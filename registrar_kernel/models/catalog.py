"""
Module: registrar_kernel.models.catalog
Responsibility: ORM persistence for the request catalog: courses, document
    types, request purposes and the purpose-document join.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - course_name, document_name and purpose_name are unique.
    - base_price is non-negative (CHECK constraint).
    - Document types and purposes are soft-deleted via ``is_active``:
      historic requests keep referencing them, new requests may not.
"""

from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from registrar_kernel.db.base import Base, SurrogateKey, TrackedBase
from registrar_kernel.models.organization import Department

purpose_document_types = Table(
    "purpose_document_types",
    Base.metadata,
    Column(
        "purpose_id",
        SurrogateKey,
        ForeignKey("request_purposes.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "document_type_id",
        SurrogateKey,
        ForeignKey("document_types.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Course(TrackedBase):
    """Academic program.  Belongs to at most one department."""

    __tablename__ = "courses"

    __table_args__ = (
        UniqueConstraint("course_name", name="uq_course_name"),
        Index("idx_course_department", "department_id"),
    )

    course_name: Mapped[str] = mapped_column(String(150), nullable=False)

    # e.g. "College", "Senior High", "Graduate School"
    educational_level: Mapped[str | None] = mapped_column(String(50), nullable=True)

    department_id: Mapped[int | None] = mapped_column(
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
    )

    department: Mapped[Department | None] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Course {self.id}: {self.course_name}>"


class DocumentType(TrackedBase):
    """Requestable document with its current base price."""

    __tablename__ = "document_types"

    __table_args__ = (
        UniqueConstraint("document_name", name="uq_document_type_name"),
        CheckConstraint("base_price >= 0", name="ck_document_type_price"),
    )

    document_name: Mapped[str] = mapped_column(String(150), nullable=False)

    base_price: Mapped[Decimal] = mapped_column(nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<DocumentType {self.id}: {self.document_name} {self.base_price}>"


class RequestPurpose(TrackedBase):
    """Reason a document is requested (employment, board exam, ...)."""

    __tablename__ = "request_purposes"

    __table_args__ = (UniqueConstraint("purpose_name", name="uq_purpose_name"),)

    purpose_name: Mapped[str] = mapped_column(String(150), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    document_types: Mapped[list[DocumentType]] = relationship(
        secondary=purpose_document_types,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<RequestPurpose {self.id}: {self.purpose_name}>"
