"""
Concurrent writers against one request.

Uses real threads with independent sessions against the committed
database.  On PostgreSQL the loser blocks on SELECT ... FOR UPDATE; on
SQLite the BEGIN IMMEDIATE hook serializes the two transactions.  Either
way exactly one terminal transition may win, and a caller whose decision
was made on a row another writer has since changed is refused.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from registrar_kernel.domain.dtos import LineItem, PurposeSpec, RequesterRef
from registrar_kernel.domain.lifecycle import PickupStatus, RequestStatus
from registrar_kernel.exceptions import ConcurrentTransitionError, IllegalTransitionError
from registrar_kernel.services.lifecycle_service import RequestLifecycleService

pytestmark = pytest.mark.slow_locks


def _pending_request(engine, ids):
    return engine.create_request(
        RequesterRef(ids["student"], "student"),
        None,
        PurposeSpec(purpose_id=ids["employment"]),
        [LineItem(ids["tor"], 1)],
    ).request


def _ready_request(engine, ids):
    request = _pending_request(engine, ids)
    engine.transition(request.id, RequestStatus.SET, ids["admin"])
    engine.transition(request.id, RequestStatus.READY, ids["admin"])
    return request


class TestTerminalTransitionRace:

    def test_received_and_failed_race(self, request_engine, committed_reference_data):
        ids = committed_reference_data
        request = _ready_request(request_engine, ids)
        barrier = threading.Barrier(2)
        results = {}

        def attempt(target):
            barrier.wait()
            try:
                outcome = request_engine.transition(
                    request.id, target, ids["admin"], expected_status=RequestStatus.READY
                )
                results[target] = outcome.request
            except (ConcurrentTransitionError, IllegalTransitionError) as exc:
                results[target] = exc

        threads = [
            threading.Thread(target=attempt, args=(target,))
            for target in (RequestStatus.RECEIVED, RequestStatus.FAILED)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        winners = {t: r for t, r in results.items() if not isinstance(r, Exception)}
        losers = {t: r for t, r in results.items() if isinstance(r, Exception)}
        assert len(winners) == 1, results
        assert len(losers) == 1, results

        (winning_status, record), = winners.items()
        stored = request_engine.get_request(request.id, ids["admin"])
        assert stored.status is winning_status
        assert stored.version == record.version
        expected_pickup = (
            PickupStatus.COMPLETED if winning_status is RequestStatus.RECEIVED else PickupStatus.FAILED
        )
        assert stored.pickup_status is expected_pickup

        history = request_engine.history(request.id)
        assert [entry.status for entry in history] == [
            RequestStatus.PENDING,
            RequestStatus.SET,
            RequestStatus.READY,
            winning_status,
        ]


class TestStaleDecisionRace:

    def test_set_and_failed_from_pending(self, request_engine, committed_reference_data, monkeypatch):
        """Both callers see PENDING before either writes; SET->FAILED must not chain."""
        ids = committed_reference_data
        request = _pending_request(request_engine, ids)
        barrier = threading.Barrier(2, timeout=30)
        snapshot = request_engine._snapshot

        def snapshot_then_wait(request_pk):
            state = snapshot(request_pk)
            barrier.wait()
            return state

        monkeypatch.setattr(request_engine, "_snapshot", snapshot_then_wait)
        results = {}

        def attempt(target):
            try:
                results[target] = request_engine.transition(request.id, target, ids["admin"]).request
            except ConcurrentTransitionError as exc:
                results[target] = exc

        threads = [
            threading.Thread(target=attempt, args=(target,))
            for target in (RequestStatus.SET, RequestStatus.FAILED)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        winners = {t: r for t, r in results.items() if not isinstance(r, Exception)}
        losers = {t: r for t, r in results.items() if isinstance(r, Exception)}
        assert len(winners) == 1, results
        assert len(losers) == 1, results

        (winning_status, record), = winners.items()
        (loser,) = losers.values()
        assert loser.expected == "PENDING"
        assert loser.actual == winning_status.value

        stored = request_engine.get_request(request.id, ids["admin"])
        assert stored.status is winning_status
        assert stored.version == record.version == 2
        assert [entry.status for entry in request_engine.history(request.id)] == [
            RequestStatus.PENDING,
            winning_status,
        ]

    def test_decision_on_superseded_version_is_refused(self, request_engine, committed_reference_data):
        ids = committed_reference_data
        request = _pending_request(request_engine, ids)
        seen = request_engine.get_request(request.id, ids["admin"])

        request_engine.transition(request.id, RequestStatus.SET, ids["admin"])

        with pytest.raises(ConcurrentTransitionError):
            request_engine.transition(
                request.id, RequestStatus.FAILED, ids["admin"], expected_version=seen.version
            )

        stored = request_engine.get_request(request.id, ids["admin"])
        assert stored.status is RequestStatus.SET
        assert len(request_engine.history(request.id)) == 2

    def test_reschedule_on_superseded_version_is_refused(
        self, request_engine, committed_reference_data, deterministic_clock
    ):
        ids = committed_reference_data
        request = _ready_request(request_engine, ids)
        seen = request_engine.get_request(request.id, ids["admin"])

        request_engine.add_admin_notes(request.id, "Bring a valid ID", ids["admin"])

        with pytest.raises(ConcurrentTransitionError):
            request_engine.reschedule_pickup(
                request.id,
                deterministic_clock.now() + timedelta(days=3),
                ids["admin"],
                expected_version=seen.version,
            )
        assert request_engine.get_request(request.id, ids["admin"]).rescheduled_pickup is None

    def test_snapshot_read_sees_committed_row_while_writer_is_open(
        self, request_engine, committed_reference_data, session_factory, deterministic_clock
    ):
        ids = committed_reference_data
        request = _pending_request(request_engine, ids)
        writer = session_factory()
        try:
            RequestLifecycleService(writer, deterministic_clock).transition(
                request.id, RequestStatus.SET, ids["admin"]
            )
            assert request_engine._snapshot(request.id) == (RequestStatus.PENDING, 1)
        finally:
            writer.rollback()


class TestConcurrentIntake:

    def test_distinct_requesters_get_distinct_identifiers(self, request_engine, committed_reference_data):
        ids = committed_reference_data
        requesters = [
            ("student", "student"),
            ("business_student", "student"),
            ("courseless", "student"),
            ("alumnus", "alumni"),
        ]
        barrier = threading.Barrier(len(requesters))

        def submit(requester):
            name, requester_type = requester
            barrier.wait()
            return request_engine.create_request(
                RequesterRef(ids[name], requester_type),
                None,
                PurposeSpec(purpose_id=ids["employment"]),
                [LineItem(ids["good_moral"], 1)],
            ).request

        with ThreadPoolExecutor(max_workers=len(requesters)) as pool:
            records = list(pool.map(submit, requesters))

        assert len({r.id for r in records}) == len(requesters)
        assert len({r.request_id for r in records}) == len(requesters)
        assert len({r.request_no for r in records}) == len(requesters)
        assert len({r.reference_number for r in records}) == len(requesters)
        assert request_engine.count_requests(ids["admin"]) == len(requesters)
