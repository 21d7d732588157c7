"""
Typed exception hierarchy for the registrar kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the request lifecycle engine (the HTTP layer, batch jobs, the
staff dashboard) must react differently to each failure class:

  - ValidationError   -> 400, the caller sent malformed input
  - NotFoundError     -> 404, a referenced record does not exist
  - ForbiddenError    -> 403, the record exists but is out of scope
  - IllegalTransition -> 409, the request is not in a state that allows it
  - ConflictError     -> 409, a concurrent writer got there first
  - PersistenceError  -> 503, the store is unavailable

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and its context as attributes, never only inside the message string.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RegistrarKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidRangeError
    |   +-- InvalidDocumentTypeError
    |   +-- InvalidMoneyError
    |   +-- DuplicateRequestError
    |   +-- RequestCooldownError
    |   +-- PendingLimitError
    |
    +-- NotFoundError
    |   +-- RequestNotFoundError
    |   +-- RequesterNotFoundError
    |   +-- CourseNotFoundError
    |   +-- PurposeNotFoundError
    |   +-- UserNotFoundError
    |
    +-- IllegalTransitionError
    +-- ForbiddenError
    |
    +-- ConflictError
    |   +-- IdentifierConflictError
    |   +-- ConcurrentTransitionError
    |
    +-- PersistenceError
    +-- ImmutabilityViolationError

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        engine.transition(request_id, RequestStatus.READY, actor_id=user.id)
    except IllegalTransitionError as e:
        return {"error": e.code, "from": e.current_status, "to": e.target_status}
    except ConcurrentTransitionError:
        # Someone else moved the request; re-read it and let the user decide.
        ...

ForbiddenError is not a subclass of NotFoundError.  A caller
must never be able to tell "absent" from "present but out of scope" by
catching the wrong base class.
"""


class RegistrarKernelError(Exception):
    """
    Base exception for all registrar kernel errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "REGISTRAR_KERNEL_ERROR"


# Validation errors


class ValidationError(RegistrarKernelError):
    """Malformed input, rejected before any transaction opens."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidRangeError(ValidationError):
    """Report date range is malformed or inverted."""

    code: str = "INVALID_RANGE"

    def __init__(self, from_date: str, to_date: str, reason: str):
        self.from_date = from_date
        self.to_date = to_date
        self.reason = reason
        super().__init__(f"Invalid date range {from_date}..{to_date}: {reason}")


class InvalidDocumentTypeError(ValidationError):
    """Document type is missing or inactive at submission time."""

    code: str = "INVALID_DOCUMENT_TYPE"

    def __init__(self, document_type_id: int, reason: str):
        self.document_type_id = document_type_id
        self.reason = reason
        super().__init__(
            f"Document type {document_type_id} cannot be requested: {reason}",
            field="document_type_id",
        )


class InvalidMoneyError(ValidationError):
    """Amount is not a valid two-decimal, non-negative money value."""

    code: str = "INVALID_MONEY"

    def __init__(self, value: object, reason: str):
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid money value {value!r}: {reason}")


class DuplicateRequestError(ValidationError):
    """Requester already has a pending request for the same documents and purpose."""

    code: str = "DUPLICATE_PENDING_REQUEST"

    def __init__(self, requester_type: str, requester_id: int, purpose_id: int | None):
        self.requester_type = requester_type
        self.requester_id = requester_id
        self.purpose_id = purpose_id
        super().__init__(
            "You already have a pending request for this document and purpose."
        )


class RequestCooldownError(ValidationError):
    """Requester submitted another request too recently."""

    code: str = "REQUEST_COOLDOWN"

    def __init__(self, requester_type: str, requester_id: int, remaining_minutes: int):
        self.requester_type = requester_type
        self.requester_id = requester_id
        self.remaining_minutes = remaining_minutes
        super().__init__(
            f"Please wait {remaining_minutes} minutes before submitting another request."
        )


class PendingLimitError(ValidationError):
    """Requester reached the maximum number of pending requests."""

    code: str = "PENDING_LIMIT_REACHED"

    def __init__(self, requester_type: str, requester_id: int, limit: int):
        self.requester_type = requester_type
        self.requester_id = requester_id
        self.limit = limit
        super().__init__(
            f"You already have {limit} pending requests. "
            "Please wait for approval before submitting more."
        )


# Not-found errors


class NotFoundError(RegistrarKernelError):
    """Referenced entity is absent."""

    code: str = "NOT_FOUND"


class RequestNotFoundError(NotFoundError):
    """Document request does not exist."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_ref: object):
        self.request_ref = str(request_ref)
        super().__init__(f"Document request not found: {request_ref}")


class RequesterNotFoundError(NotFoundError):
    """
    Requester id does not exist in the store of its declared variant.

    This indicates a broken foreign key and is always surfaced.
    """

    code: str = "REQUESTER_NOT_FOUND"

    def __init__(self, requester_type: str, requester_id: int):
        self.requester_type = requester_type
        self.requester_id = requester_id
        super().__init__(f"{requester_type} requester not found: {requester_id}")


class CourseNotFoundError(NotFoundError):
    """Course does not exist."""

    code: str = "COURSE_NOT_FOUND"

    def __init__(self, course_id: int):
        self.course_id = course_id
        super().__init__(f"Course not found: {course_id}")


class PurposeNotFoundError(NotFoundError):
    """Request purpose does not exist or is inactive."""

    code: str = "PURPOSE_NOT_FOUND"

    def __init__(self, purpose_id: int):
        self.purpose_id = purpose_id
        super().__init__(f"Request purpose not found: {purpose_id}")


class UserNotFoundError(NotFoundError):
    """Staff user does not exist."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


# State machine


class IllegalTransitionError(RegistrarKernelError):
    """Requested status change is not an edge of the lifecycle graph."""

    code: str = "ILLEGAL_TRANSITION"

    def __init__(self, request_id: int | None, current_status: str, target_status: str, reason: str | None = None):
        self.request_id = request_id
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        message = f"Illegal transition {current_status} -> {target_status}"
        if request_id is not None:
            message += f" for request {request_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# Authorization


class ForbiddenError(RegistrarKernelError):
    """Caller asked for a department or request outside their scope."""

    code: str = "FORBIDDEN"

    def __init__(self, user_id: int | None, department_id: int | None, reason: str):
        self.user_id = user_id
        self.department_id = department_id
        self.reason = reason
        super().__init__(f"Forbidden for user {user_id}: {reason}")


# Concurrency


class ConflictError(RegistrarKernelError):
    """A concurrent writer or a uniqueness constraint won the race."""

    code: str = "CONFLICT"


class IdentifierConflictError(ConflictError):
    """Identifier minting kept colliding after the bounded retries."""

    code: str = "IDENTIFIER_CONFLICT"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Could not mint unique request identifiers after {attempts} attempts"
        )


class ConcurrentTransitionError(ConflictError):
    """The request changed underneath the caller; re-read and decide again."""

    code: str = "CONCURRENT_TRANSITION"

    def __init__(self, request_id: int, expected: str, actual: str):
        self.request_id = request_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Request {request_id} was modified concurrently: "
            f"expected {expected}, found {actual}"
        )


# Storage


class PersistenceError(RegistrarKernelError):
    """The store is unavailable.  Never retried inside the kernel."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence failure during {operation}: {detail}")


class ImmutabilityViolationError(RegistrarKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
