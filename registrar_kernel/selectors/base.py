"""
Module: registrar_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import db/, models/ and
    domain DTOs.  MUST NOT import services/.

Invariants enforced:
    - Read-only: selectors never add, delete, flush or commit.
    - Selectors return frozen DTOs, not ORM instances.
    - The caller owns the session and its transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Holds the caller's session for subclass queries."""

    def __init__(self, session: Session):
        self.session = session
