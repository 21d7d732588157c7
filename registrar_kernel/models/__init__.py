"""ORM models for the registrar request lifecycle engine."""

from registrar_kernel.models.catalog import (
    Course,
    DocumentType,
    RequestPurpose,
    purpose_document_types,
)
from registrar_kernel.models.document_request import DocumentRequest, RequestDocument
from registrar_kernel.models.organization import (
    Department,
    User,
    UserRole,
    user_departments,
)
from registrar_kernel.models.request_tracking import RequestTracking
from registrar_kernel.models.requester import Alumni, Student

__all__ = [
    "Alumni",
    "Course",
    "Department",
    "DocumentRequest",
    "DocumentType",
    "RequestDocument",
    "RequestPurpose",
    "RequestTracking",
    "Student",
    "User",
    "UserRole",
    "purpose_document_types",
    "user_departments",
]
