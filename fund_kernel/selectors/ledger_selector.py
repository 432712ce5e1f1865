"""
Module: fund_kernel.selectors.ledger_selector
Responsibility: Per-account debit/credit totals over posted journal lines --
    the raw material of the trial balance and both financial statements.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only POSTED entries contribute; drafts never move a balance.
    - Balances are computed at query time; nothing is stored.
    - Totals are Decimal, summed in integer cents by the database.

Failure modes:
    - Returns an empty list when no posted entries match.

Audit relevance:
    Because every posted entry is balanced, the sum of debit totals equals the
    sum of credit totals for any date window this selector is asked about.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from fund_kernel.db.types import ZERO
from fund_kernel.models.account import NormalBalance
from fund_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from fund_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountBalance:
    """Posted debit and credit totals for one account."""

    account_id: UUID
    debit_total: Decimal
    credit_total: Decimal
    line_count: int

    @property
    def balance(self) -> Decimal:
        """Net balance (debits - credits)."""
        return self.debit_total - self.credit_total

    def natural_balance(self, normal_balance: NormalBalance) -> Decimal:
        """Balance signed so that a normal-side balance is positive."""
        if NormalBalance(normal_balance) == NormalBalance.DEBIT:
            return self.balance
        return -self.balance


class LedgerSelector(BaseSelector):
    """
    Selector for ledger totals.

    Contract:
        account_balances() aggregates posted lines per account over an
        inclusive entry-date window; either bound may be open.
    """

    def account_balances(
        self,
        organization_id: int,
        as_of_date: date | None = None,
        start_date: date | None = None,
    ) -> dict[UUID, AccountBalance]:
        """
        Posted totals per account, keyed by account id.

        Args:
            organization_id: Organization whose ledger is read.
            as_of_date: Include entries dated on or before this date.
            start_date: Include entries dated on or after this date.
        """
        query = (
            select(
                JournalLine.account_id,
                func.sum(JournalLine.debit_amount).label("debit_total"),
                func.sum(JournalLine.credit_amount).label("credit_total"),
                func.count(JournalLine.id).label("line_count"),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalEntry.organization_id == organization_id,
                JournalEntry.status == JournalEntryStatus.POSTED.value,
            )
            .group_by(JournalLine.account_id)
        )
        if as_of_date is not None:
            query = query.where(JournalEntry.entry_date <= as_of_date)
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)

        return {
            row.account_id: AccountBalance(
                account_id=row.account_id,
                debit_total=row.debit_total if row.debit_total is not None else ZERO,
                credit_total=row.credit_total if row.credit_total is not None else ZERO,
                line_count=row.line_count,
            )
            for row in self.session.execute(query)
        }
