"""
SequenceService -- monotonic counter allocation via locked rows.

Responsibility:
    Hands out the per-(organization, fiscal year) counters behind journal
    entry numbers.  Uses the ``sequence_counters`` table with row-level
    locking (``SELECT ... FOR UPDATE``) so concurrent entry creation never
    produces the same number twice.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by JournalService when an entry is created.

Invariants enforced:
    - Counting existing rows and adding one is never used; the locked
      counter row is the sole source of the next value.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError on a concurrent first use of a sequence name (handled
      via savepoint rollback and retry).

Audit relevance:
    Allocation is logged at DEBUG with the sequence name and value.  The
    unique (organization_id, entry_number) constraint on journal entries is
    the database backstop.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fund_kernel.logging_config import get_logger
from fund_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


def journal_entry_sequence(organization_id: int, fiscal_year: int) -> str:
    """Counter name for one organization's entries in one fiscal year."""
    return f"journal_entry:{organization_id}:{fiscal_year}"


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly increasing
        integer for it, starting at 1.

    Guarantees:
        - ``SELECT ... FOR UPDATE`` serializes allocations for one name.
        - No gaps under normal operation; a rolled-back transaction hands
          its value back.

    Non-goals:
        - Does NOT call ``session.commit()``.
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Preconditions:
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer > 0 strictly greater than any value
              previously returned for this name.
            - The counter row stays locked until the transaction ends.

        Args:
            sequence_name: Name of the sequence.

        Returns:
            The next sequence value.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use; a concurrent creator wins the unique constraint
            savepoint = self._session.begin_nested()
            try:
                self._session.add(SequenceCounter(name=sequence_name, current_value=1))
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
