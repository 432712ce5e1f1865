"""
Donation Auto-Posting Module (``fund_modules.donations``).

Posts completed donations from a ``DonationFeed`` as balanced, immediately
posted journal entries, exactly once per donation.
"""

from fund_modules.donations.config import DonationPostingConfig
from fund_modules.donations.models import AutoPostResult, DonationPostingFailure
from fund_modules.donations.service import DonationAutoPoster

__all__ = [
    "DonationAutoPoster",
    "DonationPostingConfig",
    "AutoPostResult",
    "DonationPostingFailure",
]
