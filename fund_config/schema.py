"""
Ledger configuration schema.

Defines the human-authored, reviewable configuration artifacts: the
versioned default chart seed (``ChartSeed`` / ``AccountSeed``) and the
process-level ``LedgerSettings``.  YAML documents are parsed into these
types by ``fund_config.loader``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from fund_kernel.models.account import (
    AccountType,
    NetAssetClass,
    NormalBalance,
    StatementSection,
)


@dataclass(frozen=True)
class AccountSeed:
    """One account in a chart seed.  Numbers are stable across versions."""

    account_number: str
    name: str
    account_type: AccountType
    statement_section: StatementSection
    statement_order: int
    category: str | None = None
    normal_balance: NormalBalance | None = None
    net_asset_class: NetAssetClass | None = None


@dataclass(frozen=True)
class ChartSeed:
    """
    A versioned chart of accounts.

    Renumbering an account is a breaking change: the donation auto-poster
    resolves its posting accounts by number.
    """

    chart_id: str
    version: int
    accounts: tuple[AccountSeed, ...]
    description: str = ""
    checksum: str = ""

    def account_numbers(self) -> tuple[str, ...]:
        return tuple(a.account_number for a in self.accounts)

    def get(self, account_number: str) -> AccountSeed | None:
        for seed in self.accounts:
            if seed.account_number == account_number:
                return seed
        return None


@dataclass(frozen=True)
class LedgerSettings:
    """
    Process-level settings for a ledger deployment.

    donation_posting and reporting are the raw mappings consumed by
    ``DonationPostingConfig.from_dict`` and ``ReportingConfig.from_dict``.
    """

    database_url: str = "sqlite://"
    log_level: str = "INFO"
    echo_sql: bool = False
    donation_posting: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    reporting: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
