"""
Financial Reporting Domain Models (``fund_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects representing statement outputs: the trial
balance, the statement of activities, the statement of financial position,
and read-side snapshots of saved statements and templates.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the
pure functions in ``statements.py`` and returned by ``StatementService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Sections are tuples ordered for presentation; an empty ledger still
  yields every section with a zero subtotal.

Audit relevance
---------------
``ReportMetadata`` carries the generation timestamp, organization and
reporting window, so a saved statement can be traced to what it covered.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fund_kernel.models.account import (
    AccountType,
    NetAssetClass,
    NormalBalance,
    StatementType,
)

if TYPE_CHECKING:
    from fund_modules.reporting.layouts import StatementLayout
    from fund_modules.reporting.orm import (
        FinancialStatementTemplate,
        GeneratedFinancialStatement,
    )


class ReportType(str, Enum):
    """Types of financial reports."""

    TRIAL_BALANCE = "trial_balance"
    STATEMENT_OF_ACTIVITY = "statement_of_activity"
    STATEMENT_OF_POSITION = "statement_of_position"


class GenerationMethod(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    SCHEDULED = "scheduled"


# =========================================================================
# Report Metadata (common to all reports)
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every financial report."""

    report_type: ReportType
    organization_id: int
    organization_name: str
    currency: str
    reporting_period: str  # "2024-01-01 to 2024-01-31" or "As of 2024-01-31"
    as_of_date: date
    generated_at: str  # ISO timestamp from the injected clock
    period_start: date | None = None
    period_end: date | None = None
    accounting_period_id: UUID | None = None


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLineItem:
    """
    One account in the trial balance.

    debit_balance / credit_balance place the net balance in a single
    column; natural_balance is positive when the account sits on its
    normal side.
    """

    account_id: UUID
    account_number: str
    account_name: str
    account_type: AccountType
    normal_balance: NormalBalance
    debit_total: Decimal
    credit_total: Decimal
    natural_balance: Decimal
    debit_balance: Decimal
    credit_balance: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    """Complete trial balance report."""

    metadata: ReportMetadata
    lines: tuple[TrialBalanceLineItem, ...]
    total_debits: Decimal
    total_credits: Decimal
    # Sums of natural balances by normal side; equal whenever the ledger balances
    total_debit_normal: Decimal
    total_credit_normal: Decimal
    is_balanced: bool


# =========================================================================
# Sectioned statements
# =========================================================================


@dataclass(frozen=True)
class StatementLineItem:
    """
    One presented amount.  account_id is None for computed lines such as
    the change in net assets folded into the statement of position.
    """

    account_number: str
    account_name: str
    amount: Decimal
    account_id: UUID | None = None
    account_type: AccountType | None = None
    net_asset_class: NetAssetClass | None = None
    statement_order: int = 0


@dataclass(frozen=True)
class StatementSection:
    key: str
    title: str
    order: int
    lines: tuple[StatementLineItem, ...]
    subtotal: Decimal


@dataclass(frozen=True)
class StatementOfActivity:
    """Nonprofit income statement for a date window."""

    statement_type: StatementType
    title: str
    metadata: ReportMetadata
    sections: tuple[StatementSection, ...]
    total_revenue: Decimal
    total_expenses: Decimal
    change_in_net_assets: Decimal
    template_id: UUID | None = None

    def section(self, key: str) -> StatementSection | None:
        return next((s for s in self.sections if s.key == key), None)


@dataclass(frozen=True)
class StatementOfPosition:
    """Nonprofit balance sheet as of a date.  total_assets == L + NA."""

    statement_type: StatementType
    title: str
    metadata: ReportMetadata
    sections: tuple[StatementSection, ...]
    total_assets: Decimal
    total_liabilities: Decimal
    total_net_assets: Decimal
    change_in_net_assets: Decimal
    is_balanced: bool
    template_id: UUID | None = None

    def section(self, key: str) -> StatementSection | None:
        return next((s for s in self.sections if s.key == key), None)


StatementDocument = StatementOfActivity | StatementOfPosition


# =========================================================================
# Persisted artifacts (read side)
# =========================================================================


@dataclass(frozen=True)
class StatementTemplateInfo:
    """Snapshot of a statement template."""

    id: UUID
    organization_id: int | None
    name: str
    statement_type: StatementType
    layout: StatementLayout
    is_default: bool
    is_active: bool
    usage_count: int
    description: str | None = None

    @property
    def is_global(self) -> bool:
        return self.organization_id is None

    @classmethod
    def from_model(cls, model: FinancialStatementTemplate) -> StatementTemplateInfo:
        from fund_modules.reporting.layouts import layout_from_dict

        return cls(
            id=model.id,
            organization_id=model.organization_id,
            name=model.name,
            statement_type=StatementType(model.statement_type),
            layout=layout_from_dict(model.layout),
            is_default=model.is_default,
            is_active=model.is_active,
            usage_count=model.usage_count,
            description=model.description,
        )


@dataclass(frozen=True)
class GeneratedStatementInfo:
    """Snapshot of a saved statement.  ``document`` is the JSON form."""

    id: UUID
    organization_id: int
    statement_type: StatementType
    title: str
    as_of_date: date
    generated_at: datetime
    generated_by: str
    generation_method: GenerationMethod
    is_public: bool
    document: dict[str, Any]
    fiscal_year: int
    period_start: date | None = None
    period_end: date | None = None
    accounting_period_id: UUID | None = None
    template_id: UUID | None = None
    total_revenue: Decimal | None = None
    total_expenses: Decimal | None = None
    change_in_net_assets: Decimal | None = None
    total_assets: Decimal | None = None
    total_liabilities: Decimal | None = None
    total_net_assets: Decimal | None = None

    @classmethod
    def from_model(cls, model: GeneratedFinancialStatement) -> GeneratedStatementInfo:
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            statement_type=StatementType(model.statement_type),
            title=model.title,
            as_of_date=model.as_of_date,
            generated_at=model.generated_at,
            generated_by=model.generated_by,
            generation_method=GenerationMethod(model.generation_method),
            is_public=model.is_public,
            document=model.document,
            fiscal_year=model.fiscal_year,
            period_start=model.period_start,
            period_end=model.period_end,
            accounting_period_id=model.accounting_period_id,
            template_id=model.template_id,
            total_revenue=model.total_revenue,
            total_expenses=model.total_expenses,
            change_in_net_assets=model.change_in_net_assets,
            total_assets=model.total_assets,
            total_liabilities=model.total_liabilities,
            total_net_assets=model.total_net_assets,
        )
