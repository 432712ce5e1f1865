"""
BaseService -- abstract base for all write-side ledger components.

Responsibility:
    Provides the common constructor and session-handling contract for the
    registry, period manager, journal engine and the module services.  Each
    receives a SQLAlchemy ``Session`` (the persistence port) and uses
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back themselves.  The caller
      (``session_scope()``, a web request, a batch run, or a test) owns
      commit/rollback, so an entry plus its lines, or a reversal plus the
      stamp on its original, become visible atomically or not at all.

Failure modes:
    - A subclass that commits breaks the atomicity of multi-step
      operations such as reversal.
"""

from abc import ABC

from sqlalchemy.orm import Session

from fund_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for all ledger services.

    Contract:
        Accepts a ``Session`` from the caller and an optional ``Clock``.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - ``self.clock`` is always set; it defaults to SystemClock.

    Non-goals:
        - Does NOT provide read-only projections; those belong in
          ``fund_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Preconditions:
            - ``session`` is a valid, open SQLAlchemy session.

        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source for audit stamps.
        """
        self.session = session
        self.clock = clock or SystemClock()
