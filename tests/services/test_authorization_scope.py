"""
Tests for department-scoped authorization.

Verifies:
- admin -> ALL, staff -> memberships, no memberships -> nothing
- Inactive and unknown users are refused
- Out-of-scope departments and records raise ForbiddenError
"""

import pytest

from registrar_kernel.domain.scope import DepartmentScope
from registrar_kernel.exceptions import ForbiddenError, UserNotFoundError
from registrar_kernel.services.authorization import AuthorizationScopeResolver


class TestScopeResolution:
    def test_admin_sees_all(self, session, reference_data):
        assert AuthorizationScopeResolver(session).scope_for(reference_data["admin"]).is_all

    def test_staff_sees_memberships(self, session, reference_data):
        scope = AuthorizationScopeResolver(session).scope_for(reference_data["staff"])
        assert scope == DepartmentScope.of([reference_data["engineering"]])

    def test_unassigned_staff_sees_nothing(self, session, reference_data):
        scope = AuthorizationScopeResolver(session).scope_for(reference_data["unassigned"])
        assert scope.is_empty

    def test_inactive_user(self, session, reference_data):
        with pytest.raises(ForbiddenError, match="inactive"):
            AuthorizationScopeResolver(session).scope_for(reference_data["inactive"])

    def test_unknown_user(self, session, reference_data):
        with pytest.raises(UserNotFoundError):
            AuthorizationScopeResolver(session).scope_for(999_999)


class TestDepartmentGate:
    def test_department_in_scope(self, session, reference_data):
        scope = AuthorizationScopeResolver(session).require_department(
            reference_data["staff"], reference_data["engineering"]
        )
        assert scope == DepartmentScope.of([reference_data["engineering"]])

    def test_department_out_of_scope(self, session, reference_data, captured_logs):
        with pytest.raises(ForbiddenError) as exc_info:
            AuthorizationScopeResolver(session).require_department(
                reference_data["staff"], reference_data["business"]
            )
        assert exc_info.value.department_id == reference_data["business"]
        assert any(r["message"] == "scope_violation" for r in captured_logs())


class TestRequestVisibility:
    def test_staff_sees_own_department_request(self, session, reference_data, make_request):
        request = make_request()
        AuthorizationScopeResolver(session).require_request_visible(reference_data["staff"], request)

    def test_staff_blocked_from_other_department(self, session, reference_data, make_request):
        request = make_request(requester="business_student")
        with pytest.raises(ForbiddenError):
            AuthorizationScopeResolver(session).require_request_visible(reference_data["staff"], request)

    def test_departmentless_request_is_admin_only(self, session, reference_data, make_request):
        request = make_request(requester="courseless")
        assert request.course_id is None
        resolver = AuthorizationScopeResolver(session)
        resolver.require_request_visible(reference_data["admin"], request)
        with pytest.raises(ForbiddenError):
            resolver.require_request_visible(reference_data["staff"], request)
