"""Write-side ledger services.  All of them flush; none of them commit."""

from fund_kernel.services.account_service import AccountService
from fund_kernel.services.base import BaseService
from fund_kernel.services.journal_service import (
    JournalService,
    ReversalResult,
    format_entry_number,
)
from fund_kernel.services.period_service import PeriodService
from fund_kernel.services.sequence_service import SequenceService, journal_entry_sequence

__all__ = [
    "AccountService",
    "BaseService",
    "JournalService",
    "PeriodService",
    "ReversalResult",
    "SequenceService",
    "format_entry_number",
    "journal_entry_sequence",
]
