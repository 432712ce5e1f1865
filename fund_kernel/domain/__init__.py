"""
Pure domain layer: clock, DTOs and the donation fact port.

Nothing in this package performs database I/O.
"""

from fund_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from fund_kernel.domain.donations import DonationFact, DonationFeed, StaticDonationFeed
from fund_kernel.domain.dtos import (
    AccountInfo,
    EntryHeader,
    JournalEntryView,
    JournalLineView,
    LineInput,
    PeriodInfo,
)

__all__ = [
    "AccountInfo",
    "Clock",
    "DeterministicClock",
    "DonationFact",
    "DonationFeed",
    "EntryHeader",
    "JournalEntryView",
    "JournalLineView",
    "LineInput",
    "PeriodInfo",
    "StaticDonationFeed",
    "SystemClock",
]
