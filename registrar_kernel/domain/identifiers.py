"""
Identifiers -- minting the three external identifiers of a request.

Responsibility:
    Produces ``(request_id, request_no, reference_number)`` for a new
    request:

        request_id        REQ-<16 lowercase hex>             internal handle
        request_no        RN-<YYYYMMDD>-<4 random><4 seq>    staff-facing
        reference_number  SPC-DOC-<6 random>-<4 seq>         given to requester

Architecture position:
    Kernel > Domain.  The 4-digit sequence is per generator and starts at
    a random offset, so 10,000 consecutive mints from one generator never
    repeat a request_no or reference_number.  Across processes the random
    parts keep collisions rare; global uniqueness is enforced by the
    UNIQUE constraints on document_requests and the intake service retries
    a fresh mint when an insert collides.
"""

import itertools
import re
import secrets
import threading
from dataclasses import dataclass
from typing import Callable

from registrar_kernel.domain.clock import Clock

REQUEST_ID_PATTERN = re.compile(r"^REQ-[0-9a-f]{16}$")
REQUEST_NO_PATTERN = re.compile(r"^RN-\d{8}-\d{8}$")
REFERENCE_NUMBER_PATTERN = re.compile(r"^SPC-DOC-\d{6}-\d{4}$")

SEQUENCE_SPAN = 10 ** 4


@dataclass(frozen=True)
class RequestIdentifiers:
    request_id: str
    request_no: str
    reference_number: str


class IdentifierGenerator:
    """
    Identifier minter, safe to share between threads.

    Args:
        clock: Supplies the date embedded in request numbers.
        randbelow: ``n -> int in [0, n)``.  Defaults to
            ``secrets.randbelow``; tests inject a rigged source to force
            collisions.
    """

    def __init__(self, clock: Clock, randbelow: Callable[[int], int] | None = None):
        self._clock = clock
        self._randbelow = randbelow or secrets.randbelow
        self._sequence = itertools.count(self._randbelow(SEQUENCE_SPAN))
        self._sequence_lock = threading.Lock()

    def _next_sequence(self) -> int:
        with self._sequence_lock:
            return next(self._sequence) % SEQUENCE_SPAN

    def mint(self) -> RequestIdentifiers:
        today = self._clock.now()
        seq = self._next_sequence()
        return RequestIdentifiers(
            request_id=f"REQ-{self._randbelow(16 ** 16):016x}",
            request_no=f"RN-{today:%Y%m%d}-{self._randbelow(10 ** 4):04d}{seq:04d}",
            reference_number=f"SPC-DOC-{self._randbelow(10 ** 6):06d}-{seq:04d}",
        )


def looks_like_reference_number(value: str) -> bool:
    return bool(REFERENCE_NUMBER_PATTERN.match(value))


def looks_like_request_no(value: str) -> bool:
    return bool(REQUEST_NO_PATTERN.match(value))
