"""
ORM-level immutability enforcement for the request history.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity           | When immutable      | Reason
-----------------|---------------------|---------------------------------------
RequestTracking  | ALWAYS              | The history is the audit record
RequestDocument  | Once flushed        | Unit price is a submission snapshot

SQLAlchemy fires ``before_update`` / ``before_delete`` mapper events while
flushing.  The listeners below raise ImmutabilityViolationError, the flush
aborts and the transaction is rolled back by its owner.  Nothing reaches
the database.

    session.flush()
         |
         v
    [before_update] --> _reject_*_update() --> ImmutabilityViolationError
    [before_delete] --> _reject_*_delete() --> ImmutabilityViolationError

Bulk ``UPDATE``/``DELETE`` statements bypass mapper events.  The kernel
issues none against these tables.

===============================================================================
USAGE
===============================================================================

    from registrar_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent; DocumentRequestEngine calls it

Tests that need to prove detection may unregister temporarily:

    unregister_immutability_listeners()
    ...
    register_immutability_listeners()
"""

from sqlalchemy import event

from registrar_kernel.exceptions import ImmutabilityViolationError
from registrar_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _reject_tracking_update(mapper, connection, target):
    """Tracking entries are never modified."""
    _block(
        "RequestTracking", target, "UPDATE",
        "Request tracking entries are append-only and cannot be modified",
    )


def _reject_tracking_delete(mapper, connection, target):
    """Tracking entries are never deleted."""
    _block(
        "RequestTracking", target, "DELETE",
        "Request tracking entries are append-only and cannot be deleted",
    )


def _reject_line_update(mapper, connection, target):
    """Line items keep their submission-time price and quantity."""
    _block(
        "RequestDocument", target, "UPDATE",
        "Request document lines are fixed at submission and cannot be modified",
    )


def _reject_line_delete(mapper, connection, target):
    _block(
        "RequestDocument", target, "DELETE",
        "Request document lines cannot be deleted",
    )


def _listeners():
    from registrar_kernel.models.document_request import RequestDocument
    from registrar_kernel.models.request_tracking import RequestTracking

    return [
        (RequestTracking, "before_update", _reject_tracking_update),
        (RequestTracking, "before_delete", _reject_tracking_delete),
        (RequestDocument, "before_update", _reject_line_update),
        (RequestDocument, "before_delete", _reject_line_delete),
    ]


def register_immutability_listeners() -> None:
    """
    Register the append-only listeners.  Safe to call more than once.
    """
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove a listener if it is registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the append-only listeners.

    WARNING: Only for tests that deliberately violate immutability.
    """
    for target, event_name, fn in _listeners():
        _safe_remove_listener(target, event_name, fn)
