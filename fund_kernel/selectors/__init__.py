"""Read-only query selectors over the ledger."""

from fund_kernel.selectors.base import BaseSelector
from fund_kernel.selectors.journal_selector import JournalSelector
from fund_kernel.selectors.ledger_selector import AccountBalance, LedgerSelector

__all__ = [
    "AccountBalance",
    "BaseSelector",
    "JournalSelector",
    "LedgerSelector",
]
