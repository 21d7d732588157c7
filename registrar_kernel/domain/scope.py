"""
Scope -- which departments a staff user may see.

Responsibility:
    Represents the result of scope resolution: ``ALL`` for admins or an
    explicit, possibly empty, set of department ids for staff.

Invariants enforced:
    - An empty set means no visibility.  Only ``DepartmentScope.all()``
      grants unrestricted access; there is no way to reach it from an
      empty membership list.
    - Requests whose course has no department are visible under ALL only.
"""

from dataclasses import dataclass

from registrar_kernel.exceptions import ForbiddenError


@dataclass(frozen=True)
class DepartmentScope:
    """
    Contract:
        ``departments is None`` means ALL.  Construct through ``all()`` or
        ``of()`` rather than passing None by hand.
    """

    departments: frozenset[int] | None

    @classmethod
    def all(cls) -> "DepartmentScope":
        return cls(None)

    @classmethod
    def of(cls, department_ids) -> "DepartmentScope":
        return cls(frozenset(int(d) for d in department_ids))

    @property
    def is_all(self) -> bool:
        return self.departments is None

    @property
    def is_empty(self) -> bool:
        return self.departments is not None and not self.departments

    def permits(self, department_id: int | None) -> bool:
        if self.departments is None:
            return True
        return department_id is not None and department_id in self.departments

    def restrict(self, department_id: int | None, user_id: int | None = None) -> "DepartmentScope":
        """
        Narrow this scope to one explicitly requested department.

        Raises:
            ForbiddenError: If the department is outside this scope.  The
                caller asked for it by name, so an empty result would hide
                the misconfiguration.
        """
        if department_id is None:
            return self
        if not self.permits(department_id):
            raise ForbiddenError(
                user_id, department_id, f"department {department_id} is outside your scope"
            )
        return DepartmentScope.of([department_id])

    def __repr__(self) -> str:
        if self.departments is None:
            return "DepartmentScope(ALL)"
        return f"DepartmentScope({sorted(self.departments)})"


ALL = DepartmentScope.all()
