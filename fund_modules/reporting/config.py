"""
Reporting Configuration Schema.

Controls presentation options for the statement generator: the entity
name printed on statements, the currency, and which accounts are listed.
Section placement is driven by each account's statement_section and by
statement templates, not by account number prefixes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Self

from fund_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.
    """

    # Organization name shown on statements
    entity_name: str = "Organization"

    default_currency: str = "USD"

    # Whether to list accounts with zero balance
    include_zero_balances: bool = False

    # Whether to list inactive accounts that have no postings
    include_inactive: bool = False

    def __post_init__(self):
        if len(self.default_currency) != 3:
            raise ValueError("default_currency must be a 3-letter ISO 4217 code")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from dictionary."""
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**dict(data))
