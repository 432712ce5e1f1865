"""
Sequence counter tests.

Numbers come from a locked counter row, start at 1, and a rolled-back
savepoint hands its value back.
"""

from datetime import date

import pytest

from fund_kernel.domain.dtos import EntryHeader, LineInput
from fund_kernel.exceptions import UnbalancedEntryError
from fund_kernel.services.sequence_service import SequenceService, journal_entry_sequence


class TestSequenceService:

    def test_name_format(self):
        assert journal_entry_sequence(7, 2024) == "journal_entry:7:2024"

    def test_starts_at_one_and_increments(self, session):
        sequences = SequenceService(session)

        assert sequences.current_value("s") is None
        assert [sequences.next_value("s") for _ in range(3)] == [1, 2, 3]
        assert sequences.current_value("s") == 3

    def test_names_are_independent(self, session):
        sequences = SequenceService(session)
        sequences.next_value(journal_entry_sequence(7, 2024))
        sequences.next_value(journal_entry_sequence(7, 2024))

        assert sequences.next_value(journal_entry_sequence(7, 2025)) == 1
        assert sequences.next_value(journal_entry_sequence(8, 2024)) == 1

    def test_rolled_back_value_is_reused(self, session):
        sequences = SequenceService(session)
        sequences.next_value("s")

        savepoint = session.begin_nested()
        assert sequences.next_value("s") == 2
        savepoint.rollback()

        assert sequences.next_value("s") == 2

    def test_rolled_back_first_use_is_reused(self, session):
        sequences = SequenceService(session)

        savepoint = session.begin_nested()
        assert sequences.next_value("fresh") == 1
        savepoint.rollback()

        assert sequences.current_value("fresh") is None
        assert sequences.next_value("fresh") == 1

    def test_rejected_entry_does_not_consume_number(
        self, make_entry, journal_service, chart, organization_id, test_actor_id,
    ):
        make_entry()
        with pytest.raises(UnbalancedEntryError):
            journal_service.create_entry(
                EntryHeader(
                    organization_id=organization_id,
                    entry_date=date(2024, 1, 10),
                    description="Unbalanced",
                    created_by=test_actor_id,
                ),
                [
                    LineInput.debit(chart["5000"].id, "1.00"),
                    LineInput.credit(chart["1000"].id, "2.00"),
                ],
            )

        assert make_entry().entry_number == "JE-2024-002"
