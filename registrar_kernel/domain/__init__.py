"""Pure domain layer: lifecycle rules, pricing, identifiers, scope and records."""

from registrar_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from registrar_kernel.domain.dtos import (
    DocumentRequestRecord,
    LineItem,
    PurposeSpec,
    ReportRow,
    RequesterRef,
    RequestLineRecord,
    RequestOutcome,
    TrackingRecord,
)
from registrar_kernel.domain.identifiers import IdentifierGenerator, RequestIdentifiers
from registrar_kernel.domain.lifecycle import (
    LEGAL_TRANSITIONS,
    PickupStatus,
    RequestStatus,
    TrackingAction,
    check_transition,
    effects_of,
    replay_history,
)
from registrar_kernel.domain.report import ReportFilter, build_report_filter
from registrar_kernel.domain.requester import RequesterType, RequesterView
from registrar_kernel.domain.scope import ALL, DepartmentScope

__all__ = [
    "ALL",
    "Clock",
    "DepartmentScope",
    "DeterministicClock",
    "DocumentRequestRecord",
    "IdentifierGenerator",
    "LEGAL_TRANSITIONS",
    "LineItem",
    "PickupStatus",
    "PurposeSpec",
    "ReportFilter",
    "ReportRow",
    "RequestIdentifiers",
    "RequestLineRecord",
    "RequestOutcome",
    "RequestStatus",
    "RequesterRef",
    "RequesterType",
    "RequesterView",
    "SystemClock",
    "TrackingAction",
    "TrackingRecord",
    "build_report_filter",
    "check_transition",
    "effects_of",
    "replay_history",
]
