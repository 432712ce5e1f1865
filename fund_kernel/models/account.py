"""
Module: fund_kernel.models.account
Responsibility: ORM persistence for the organization-scoped Chart of Accounts --
    the target of every journal line.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Account number is unique within an organization (uq_account_org_number).
    - account_type and normal_balance are fixed at creation and never change
      (db/immutability.py blocks the UPDATE).
    - Accounts are never hard-deleted; is_active=False is the only retirement.

Failure modes:
    - DuplicateAccountNumberError on a second account with the same number.
    - InvalidAccountError when a posting targets an inactive account.
    - ImmutabilityViolationError on DELETE or on structural field changes.

Audit relevance:
    Account rows define the structure of the ledger.  Changing account_type or
    normal_balance would retroactively alter the meaning of historical lines,
    so both are frozen; deactivated accounts stay readable for old entries.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fund_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from fund_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in a nonprofit chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    NET_ASSET = "net_asset"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "debit"
    CREDIT = "credit"


class StatementType(str, Enum):
    """Which statement an account is presented on."""

    ACTIVITY = "activity"
    POSITION = "position"


class StatementSection(str, Enum):
    """Closed set of statement placements."""

    CURRENT_ASSETS = "current_assets"
    FIXED_ASSETS = "fixed_assets"
    OTHER_ASSETS = "other_assets"
    CURRENT_LIABILITIES = "current_liabilities"
    LONG_TERM_LIABILITIES = "long_term_liabilities"
    NET_ASSETS = "net_assets"
    REVENUE = "revenue"
    PROGRAM_EXPENSES = "program_expenses"
    ADMIN_EXPENSES = "admin_expenses"
    FUNDRAISING_EXPENSES = "fundraising_expenses"


class NetAssetClass(str, Enum):
    """Donor-restriction classification of net assets."""

    UNRESTRICTED = "unrestricted"
    TEMPORARILY_RESTRICTED = "temporarily_restricted"
    PERMANENTLY_RESTRICTED = "permanently_restricted"


# Default normal side per account type
NORMAL_BALANCE_BY_TYPE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.NET_ASSET: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}

STATEMENT_TYPE_BY_TYPE: dict[AccountType, StatementType] = {
    AccountType.ASSET: StatementType.POSITION,
    AccountType.LIABILITY: StatementType.POSITION,
    AccountType.NET_ASSET: StatementType.POSITION,
    AccountType.REVENUE: StatementType.ACTIVITY,
    AccountType.EXPENSE: StatementType.ACTIVITY,
}

# Sections an account of each type may be placed in
SECTIONS_BY_TYPE: dict[AccountType, frozenset[StatementSection]] = {
    AccountType.ASSET: frozenset({
        StatementSection.CURRENT_ASSETS,
        StatementSection.FIXED_ASSETS,
        StatementSection.OTHER_ASSETS,
    }),
    AccountType.LIABILITY: frozenset({
        StatementSection.CURRENT_LIABILITIES,
        StatementSection.LONG_TERM_LIABILITIES,
    }),
    AccountType.NET_ASSET: frozenset({StatementSection.NET_ASSETS}),
    AccountType.REVENUE: frozenset({StatementSection.REVENUE}),
    AccountType.EXPENSE: frozenset({
        StatementSection.PROGRAM_EXPENSES,
        StatementSection.ADMIN_EXPENSES,
        StatementSection.FUNDRAISING_EXPENSES,
    }),
}

DEFAULT_SECTION_BY_TYPE: dict[AccountType, StatementSection] = {
    AccountType.ASSET: StatementSection.CURRENT_ASSETS,
    AccountType.LIABILITY: StatementSection.CURRENT_LIABILITIES,
    AccountType.NET_ASSET: StatementSection.NET_ASSETS,
    AccountType.REVENUE: StatementSection.REVENUE,
    AccountType.EXPENSE: StatementSection.PROGRAM_EXPENSES,
}


class Account(TrackedBase):
    """
    Chart of Accounts entry for one organization.

    Contract:
        (organization_id, account_number) is unique.  account_type and
        normal_balance are immutable after INSERT.

    Guarantees:
        - account_number is non-null and unique per organization.
        - statement_type is consistent with account_type (service-enforced).
        - is_active defaults to True; deactivation is a soft delete.

    Non-goals:
        - No account hierarchy; grouping is by statement_section.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "account_number", name="uq_account_org_number",
        ),
        Index("idx_account_org_type", "organization_id", "account_type"),
        Index("idx_account_org_active", "organization_id", "is_active"),
    )

    organization_id: Mapped[int] = mapped_column(nullable=False)

    account_number: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    account_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Free-form sub-classification ("cash", "contributions")
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    statement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    statement_section: Mapped[str] = mapped_column(String(50), nullable=False)

    statement_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    normal_balance: Mapped[str] = mapped_column(String(10), nullable=False)

    net_asset_class: Mapped[str | None] = mapped_column(String(30), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.organization_id}/{self.account_number}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    @property
    def is_credit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.CREDIT
