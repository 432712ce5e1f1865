"""
Donation facts -- the ledger's only inbound data feed.

Responsibility:
    Defines the immutable DonationFact consumed by the donation auto-poster
    and the DonationFeed port through which the host application supplies
    completed donations.

Architecture position:
    Kernel > Domain -- pure data plus an abstract port, zero I/O.
    Concrete feeds backed by the host's donation tables live outside the
    kernel; StaticDonationFeed is the in-memory implementation.

Invariants enforced:
    - A DonationFact is settled and read-only; the ledger never writes back
      to the feed.
    - completed_donations() returns only facts for the requested
      organization whose occurrence date lies in [start, end].

Audit relevance:
    DonationFact.id becomes the journal entry's source_id, the key of the
    exactly-once posting guarantee.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from fund_kernel.db.types import ZERO
from fund_kernel.models.account import NetAssetClass


@dataclass(frozen=True)
class DonationFact:
    """
    A completed donation as reported by the host application.

    Contract:
        amount is the gross gift; fee_amount is what the payment processor
        kept.  occurred_at decides which accounting period the gift lands in.
    """

    id: str
    organization_id: int
    amount: Decimal
    occurred_at: datetime
    fee_amount: Decimal = ZERO
    donor_name: str | None = None
    net_asset_class: NetAssetClass = NetAssetClass.UNRESTRICTED

    @property
    def occurred_on(self) -> date:
        return self.occurred_at.date()

    @property
    def net_amount(self) -> Decimal:
        return self.amount - self.fee_amount


class DonationFeed(ABC):
    """
    Read-only port over completed donations.

    Contract:
        Implementations return facts ordered by occurrence time.  The same
        donation id must always describe the same gift.
    """

    @abstractmethod
    def completed_donations(
        self,
        organization_id: int,
        start: date,
        end: date,
    ) -> Sequence[DonationFact]:
        """Return completed donations for the organization dated in [start, end]."""
        ...


class StaticDonationFeed(DonationFeed):
    """List-backed feed used by batch imports and tests."""

    def __init__(self, donations: Iterable[DonationFact] = ()):
        self._donations: list[DonationFact] = list(donations)

    def add(self, donation: DonationFact) -> None:
        self._donations.append(donation)

    def completed_donations(
        self,
        organization_id: int,
        start: date,
        end: date,
    ) -> list[DonationFact]:
        matching = [
            d for d in self._donations
            if d.organization_id == organization_id and start <= d.occurred_on <= end
        ]
        return sorted(matching, key=lambda d: (d.occurred_at, d.id))
