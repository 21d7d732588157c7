"""
BaseService -- common constructor for kernel services.

Responsibility:
    Every write-side service receives the caller's SQLAlchemy ``Session``
    and persists with ``session.flush()``.

Invariants enforced:
    Services never call ``session.commit()`` or ``session.rollback()``.
    The engine facade owns the transaction, so a request mutation and its
    tracking append commit or roll back together.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Contract:
        Flushes within the caller's transaction.

    Non-goals:
        Read-only queries belong in ``registrar_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
