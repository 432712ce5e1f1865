"""
fund_modules.donations.config
=============================

Responsibility:
    Configuration schema for the donation auto-poster: which chart accounts
    a donation debits and credits, and how entries and lines are described.

Architecture:
    Module layer (fund_modules).  Consumed by DonationAutoPoster.  Loaded
    from the ``donation_posting`` mapping of a settings file via
    ``from_dict``.  MUST NOT be imported by fund_kernel.

Invariants enforced:
    - The three account numbers are non-empty and distinct.
    - Description templates only use the placeholders they are formatted
      with (``{donation_id}``, ``{donor}``).

Failure modes:
    - Invalid configuration values -> ``ValueError`` from ``__post_init__``.
    - Unknown keys in ``from_dict`` -> ``TypeError``.

Audit relevance:
    The account numbers decide where donation revenue lands.  The defaults
    match the seeded nonprofit chart; changing them is a breaking change for
    any organization using that chart.
"""

from dataclasses import dataclass
from typing import Any, Self

from fund_kernel.logging_config import get_logger

logger = get_logger("modules.donations.config")


@dataclass
class DonationPostingConfig:
    """
    Configuration schema for donation auto-posting.

    Contract:
        All fields have defaults matching the default nonprofit chart
        (1000 cash, 4000 unrestricted contribution revenue, 6200 processing
        fees).  ``__post_init__`` validates and raises ``ValueError``.

    Non-goals:
        - Does NOT check that the accounts exist; the auto-poster does that
          per run and raises ConfigurationError.
    """

    cash_account_number: str = "1000"
    revenue_account_number: str = "4000"
    fee_account_number: str = "6200"

    entry_description: str = "Donation #{donation_id}"
    entry_reference: str = "Donation-{donation_id}"
    cash_line_description: str = "Donation from {donor}"
    revenue_line_description: str = "Donation revenue"
    fee_line_description: str = "Payment processing fees"

    # Donor shown when the feed carries no name
    anonymous_donor_label: str = "Anonymous"

    def __post_init__(self):
        numbers = (
            self.cash_account_number,
            self.revenue_account_number,
            self.fee_account_number,
        )
        if not all(numbers):
            raise ValueError("cash, revenue and fee account numbers are required")
        if len(set(numbers)) != len(numbers):
            raise ValueError("cash, revenue and fee accounts must be distinct")

        sample = {"donation_id": "0", "donor": "x"}
        for field_name in (
            "entry_description",
            "entry_reference",
            "cash_line_description",
            "revenue_line_description",
            "fee_line_description",
        ):
            try:
                getattr(self, field_name).format(**sample)
            except (KeyError, IndexError) as exc:
                raise ValueError(f"{field_name} uses an unknown placeholder: {exc}") from exc

        logger.info(
            "donation_posting_config_initialized",
            extra={
                "cash_account_number": self.cash_account_number,
                "revenue_account_number": self.revenue_account_number,
                "fee_account_number": self.fee_account_number,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config matching the default nonprofit chart."""
        logger.info("donation_posting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from dictionary (e.g., a settings file section)."""
        logger.info(
            "donation_posting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**dict(data))

    def describe_entry(self, donation_id: str) -> str:
        return self.entry_description.format(donation_id=donation_id, donor="")

    def reference_for(self, donation_id: str) -> str:
        return self.entry_reference.format(donation_id=donation_id, donor="")

    def describe_cash_line(self, donor_name: str | None) -> str:
        return self.cash_line_description.format(
            donation_id="", donor=donor_name or self.anonymous_donor_label,
        )
