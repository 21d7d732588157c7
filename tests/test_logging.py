"""
Tests for registrar_kernel.logging_config.

Verifies:
- Each record is a single JSON object carrying context and extras
- Domain values (Decimal, enums, datetimes, id sets) serialize
- Kernel exceptions expose their code and attributes
- LogContext binding is scoped and ignores unknown fields
- configure_logging attaches exactly one handler
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from registrar_kernel.domain.lifecycle import PickupStatus, RequestStatus
from registrar_kernel.exceptions import ForbiddenError, IllegalTransitionError
from registrar_kernel.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def json_lines():
    """Reconfigure logging onto a buffer; yields a reader of parsed lines.

    The suite-wide DEBUG configuration is restored afterwards.
    """
    reset_logging()
    buffer = StringIO()
    configure_logging(level="debug", stream=buffer)

    def read() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    yield read

    reset_logging()
    configure_logging(level=logging.DEBUG)


def test_record_is_one_json_object(json_lines):
    get_logger("services.intake").info("request_created", extra={"request_pk": 11, "line_count": 2})

    (record,) = json_lines()
    assert record["message"] == "request_created"
    assert record["level"] == "INFO"
    assert record["logger"] == "registrar_kernel.services.intake"
    assert record["request_pk"] == 11
    assert record["line_count"] == 2
    assert datetime.fromisoformat(record["ts"]).tzinfo is not None


def test_domain_values_serialize(json_lines):
    get_logger("services.lifecycle").info(
        "request_transitioned",
        extra={
            "total_amount": Decimal("130.00"),
            "to_status": RequestStatus.RECEIVED,
            "pickup_status": PickupStatus.COMPLETED,
            "new_pickup": datetime(2025, 6, 5, 9, 30, tzinfo=timezone.utc),
            "departments": frozenset({3, 1, 2}),
        },
    )

    (record,) = json_lines()
    assert record["total_amount"] == "130.00"
    assert record["to_status"] == "RECEIVED"
    assert record["pickup_status"] == "completed"
    assert record["new_pickup"] == "2025-06-05T09:30:00+00:00"
    assert record["departments"] == [1, 2, 3]


def test_context_fields_attached(json_lines):
    with LogContext.bind(correlation_id="c0ffee", actor_id=7, request_id=42,
                         reference_number="SPC-DOC-123456-0001"):
        get_logger("services.request_engine").info("transition_started")

    (record,) = json_lines()
    assert record["correlation_id"] == "c0ffee"
    assert record["actor_id"] == "7"
    assert record["request_id"] == "42"
    assert record["reference_number"] == "SPC-DOC-123456-0001"


def test_no_context_outside_binding(json_lines):
    get_logger("db.engine").info("engine_initialized")
    (record,) = json_lines()
    assert not set(CONTEXT_FIELDS) & set(record)


def test_illegal_transition_fields(json_lines):
    try:
        raise IllegalTransitionError(5, "PENDING", "READY")
    except IllegalTransitionError:
        get_logger("services.lifecycle").warning("transition_rejected", exc_info=True)

    (record,) = json_lines()
    assert record["exc_type"] == "IllegalTransitionError"
    assert record["exc_code"] == "ILLEGAL_TRANSITION"
    assert record["exc_request_id"] == 5
    assert record["exc_current_status"] == "PENDING"
    assert record["exc_target_status"] == "READY"
    assert "Traceback" in record["traceback"]


def test_plain_exception_has_no_code(json_lines):
    try:
        raise KeyError("tor")
    except KeyError:
        get_logger("services.pricing").error("price_lookup_failed", exc_info=True)

    (record,) = json_lines()
    assert record["exc_type"] == "KeyError"
    assert "exc_code" not in record


def test_forbidden_error_carries_scope_context(json_lines):
    try:
        raise ForbiddenError(3, 9, "department 9 is outside your scope")
    except ForbiddenError:
        get_logger("services.authorization").warning("scope_violation", exc_info=True)

    (record,) = json_lines()
    assert record["exc_code"] == "FORBIDDEN"
    assert record["exc_user_id"] == 3
    assert record["exc_department_id"] == 9


def test_level_threshold(json_lines):
    reset_logging()
    buffer = StringIO()
    configure_logging(level="WARNING", stream=buffer)
    logger = get_logger("services.intake")
    logger.info("request_created")
    logger.warning("request_cooldown_active")

    messages = [json.loads(line)["message"] for line in buffer.getvalue().splitlines()]
    assert messages == ["request_cooldown_active"]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_accumulates(self):
        LogContext.set(correlation_id="abc")
        LogContext.set(actor_id=4)
        assert LogContext.get_all() == {"correlation_id": "abc", "actor_id": "4"}

    def test_clear(self):
        LogContext.set(request_id=1)
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_outer_values(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", request_id=8):
            assert LogContext.get_all() == {"correlation_id": "inner", "request_id": "8"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id=2):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_none_and_unknown_fields_ignored(self):
        with LogContext.bind(actor_id=None, event_id="legacy"):
            assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_second_call_is_noop(self, json_lines):
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("registrar_kernel").handlers) == 1

    def test_records_do_not_reach_root_logger(self, json_lines):
        assert logging.getLogger("registrar_kernel").propagate is False

    def test_child_logger_names(self):
        assert get_logger("selectors.request").name == "registrar_kernel.selectors.request"
