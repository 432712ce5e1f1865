"""
Donation auto-posting results (``fund_modules.donations.models``).

Frozen value objects returned by ``DonationAutoPoster``.  Pure data, zero
I/O.  All monetary fields are ``Decimal``.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from fund_kernel.db.types import ZERO


@dataclass(frozen=True)
class DonationPostingFailure:
    """
    One donation that could not be posted.

    error_code is the ``code`` of the ledger error that rejected it, e.g.
    IMMUTABLE_PERIOD, NO_OPEN_PERIOD, DUPLICATE_POSTING, VALIDATION_ERROR.
    """

    donation_id: str
    error_code: str
    message: str


@dataclass(frozen=True)
class AutoPostResult:
    """
    Summary of one auto-posting run.

    total_amount is the gross amount of the donations posted in this run.
    Donations already posted by an earlier run are counted in
    skipped_already_posted, not in errors.
    """

    entries_created: int = 0
    total_amount: Decimal = ZERO
    entry_ids: tuple[UUID, ...] = ()
    skipped_already_posted: int = 0
    errors: tuple[DonationPostingFailure, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
