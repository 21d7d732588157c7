"""
AuthorizationScopeResolver -- department scope of a staff user.

Responsibility:
    Resolves a user to a DepartmentScope and enforces it on single-record
    reads and explicit department filters.

Invariants enforced:
    - admin -> ALL.  staff -> the departments in user_departments.
    - No memberships -> empty scope -> nothing visible.  There is no
      fallback to ALL.
    - Inactive accounts are refused outright.
    - An explicit out-of-scope department or record raises ForbiddenError,
      never an empty result.
"""

from registrar_kernel.domain.scope import DepartmentScope
from registrar_kernel.exceptions import ForbiddenError, UserNotFoundError
from registrar_kernel.logging_config import get_logger
from registrar_kernel.models.catalog import Course
from registrar_kernel.models.document_request import DocumentRequest
from registrar_kernel.models.organization import User, UserRole
from registrar_kernel.services.base import BaseService

logger = get_logger("services.authorization")


class AuthorizationScopeResolver(BaseService):
    """Resolves and enforces department scope."""

    def load_user(self, user_id: int) -> User:
        """
        Raises:
            UserNotFoundError: No such user.
            ForbiddenError: Account deactivated.
        """
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        if not user.is_active:
            raise ForbiddenError(user_id, None, "account is inactive")
        return user

    def scope_for(self, user: User | int) -> DepartmentScope:
        if not isinstance(user, User):
            user = self.load_user(user)
        if UserRole(user.role) is UserRole.ADMIN:
            return DepartmentScope.all()
        scope = DepartmentScope.of(dept.id for dept in user.departments)
        if scope.is_empty:
            logger.info("scope_empty", extra={"user_id": user.id})
        return scope

    def require_department(self, user: User | int, department_id: int | None) -> DepartmentScope:
        """
        Return the caller's scope narrowed to ``department_id``.

        Raises:
            ForbiddenError: department outside the caller's scope.
        """
        user_id = user.id if isinstance(user, User) else user
        scope = self.scope_for(user)
        try:
            return scope.restrict(department_id, user_id=user_id)
        except ForbiddenError:
            logger.warning(
                "scope_violation",
                extra={"user_id": user_id, "department_id": department_id},
            )
            raise

    def department_of(self, request: DocumentRequest) -> int | None:
        if request.course_id is None:
            return None
        course = request.course or self.session.get(Course, request.course_id)
        return course.department_id if course is not None else None

    def require_request_visible(self, user: User | int, request: DocumentRequest) -> None:
        """
        Raises:
            ForbiddenError: The request's department is outside scope.
        """
        user_id = user.id if isinstance(user, User) else user
        scope = self.scope_for(user)
        department_id = self.department_of(request)
        if not scope.permits(department_id):
            logger.warning(
                "scope_violation",
                extra={
                    "user_id": user_id,
                    "department_id": department_id,
                    "request_pk": request.id,
                },
            )
            raise ForbiddenError(
                user_id, department_id, f"request {request.id} is outside your scope"
            )
