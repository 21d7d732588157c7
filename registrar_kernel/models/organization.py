"""
Module: registrar_kernel.models.organization
Responsibility: ORM persistence for departments, staff users and the
    user-department membership join that drives authorization scope.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Department name is unique.
    - User role is ``admin`` or ``staff`` (CHECK constraint).
    - A (user, department) membership exists at most once (composite PK).
"""

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from registrar_kernel.db.base import Base, SurrogateKey, TrackedBase


class UserRole(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"


user_departments = Table(
    "user_departments",
    Base.metadata,
    Column(
        "user_id",
        SurrogateKey,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "department_id",
        SurrogateKey,
        ForeignKey("departments.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Department(TrackedBase):
    """Academic department grouping courses and staff."""

    __tablename__ = "departments"

    __table_args__ = (UniqueConstraint("name", name="uq_department_name"),)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<Department {self.id}: {self.name}>"


class User(TrackedBase):
    """
    Staff or admin account.

    Contract:
        Admins see every department.  Staff see the departments in
        ``departments``; an empty list means no visibility.

    Non-goals:
        Credentials and sessions live outside the kernel.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("username", name="uq_user_username"),
        UniqueConstraint("email", name="uq_user_email"),
        CheckConstraint("role IN ('admin', 'staff')", name="ck_user_role"),
    )

    username: Mapped[str] = mapped_column(String(50), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str] = mapped_column(String(150), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        String(20),
        default=UserRole.STAFF,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    departments: Mapped[list[Department]] = relationship(
        secondary=user_departments,
        lazy="selectin",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.username} ({self.role})>"
