"""
ORM-level immutability tests.

Verifies the flush-time guards:
- Posted entries and their lines cannot be edited or deleted
- Drafts stay editable
- Closed periods are frozen except for statement stamps
- Accounts keep their structural fields and are never deleted
"""

import pytest

from fund_kernel.exceptions import ImmutabilityViolationError
from fund_kernel.models.account import Account, AccountType
from fund_kernel.models.accounting_period import AccountingPeriod
from fund_kernel.models.journal import JournalEntry


class TestPostedEntryImmutability:

    def test_header_update_blocked(self, session, make_entry):
        entry = session.get(JournalEntry, make_entry(post=True).id)

        entry.description = "Rewritten history"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "JournalEntry"

    def test_line_update_blocked(self, session, make_entry):
        entry = session.get(JournalEntry, make_entry(post=True).id)

        entry.lines[0].memo = "quiet edit"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, make_entry):
        entry = session.get(JournalEntry, make_entry(post=True).id)

        session.delete(entry)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_status_cannot_return_to_draft(self, session, make_entry):
        entry = session.get(JournalEntry, make_entry(post=True).id)

        entry.status = "draft"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestDraftEntryMutability:

    def test_draft_edit_allowed(self, session, make_entry):
        entry = session.get(JournalEntry, make_entry().id)

        entry.memo = "still a draft"
        entry.lines[0].description = "reworded"
        session.flush()

        assert entry.memo == "still a draft"

    def test_draft_delete_allowed(self, session, make_entry):
        draft_id = make_entry().id
        session.delete(session.get(JournalEntry, draft_id))
        session.flush()

        assert session.get(JournalEntry, draft_id) is None


class TestClosedPeriodImmutability:

    def test_closed_period_frozen(
        self, session, period_service, open_period, organization_id, test_actor_id,
    ):
        period_service.close_period(organization_id, open_period.id, test_actor_id)
        period = session.get(AccountingPeriod, open_period.id)

        period.status = "open"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_closed_period_delete_blocked(
        self, session, period_service, open_period, organization_id, test_actor_id,
    ):
        period_service.close_period(organization_id, open_period.id, test_actor_id)

        session.delete(session.get(AccountingPeriod, open_period.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestAccountImmutability:

    def test_account_type_fixed(self, session, chart):
        account = session.get(Account, chart["4400"].id)

        account.account_type = AccountType.EXPENSE.value
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_presentation_change_allowed(self, session, chart):
        account = session.get(Account, chart["4400"].id)

        account.name = "Other Income"
        session.flush()

        assert account.name == "Other Income"

    def test_delete_blocked(self, session, chart):
        session.delete(session.get(Account, chart["4400"].id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
