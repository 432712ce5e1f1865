"""ORM models for the fund ledger kernel."""

from fund_kernel.models.account import (
    Account,
    AccountType,
    NetAssetClass,
    NormalBalance,
    StatementSection,
    StatementType,
)
from fund_kernel.models.accounting_period import (
    AccountingPeriod,
    PeriodStatus,
    PeriodType,
)
from fund_kernel.models.journal import (
    EntryType,
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    SourceType,
)
from fund_kernel.models.sequence import SequenceCounter

__all__ = [
    "Account",
    "AccountType",
    "AccountingPeriod",
    "EntryType",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "NetAssetClass",
    "NormalBalance",
    "PeriodStatus",
    "PeriodType",
    "SequenceCounter",
    "SourceType",
    "StatementSection",
    "StatementType",
]
