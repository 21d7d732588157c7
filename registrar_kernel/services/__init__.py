"""Services for the registrar kernel (write side)."""

from registrar_kernel.services.audit_trail import AuditTrailRecorder
from registrar_kernel.services.authorization import AuthorizationScopeResolver
from registrar_kernel.services.intake_service import IntakePolicy, RequestIntakeService
from registrar_kernel.services.lifecycle_service import RequestLifecycleService
from registrar_kernel.services.pricing_service import PricingCalculator
from registrar_kernel.services.request_engine import DocumentRequestEngine, RequestNotifier
from registrar_kernel.services.requester_resolver import RequesterResolver

__all__ = [
    "AuditTrailRecorder",
    "AuthorizationScopeResolver",
    "DocumentRequestEngine",
    "IntakePolicy",
    "PricingCalculator",
    "RequestIntakeService",
    "RequestLifecycleService",
    "RequestNotifier",
    "RequesterResolver",
]
