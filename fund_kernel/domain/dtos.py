"""
DTOs -- Immutable data transfer objects for the ledger kernel.

Responsibility:
    Defines the frozen data structures that cross the service boundary:
    EntryHeader and LineInput (journal input), JournalEntryView and
    JournalLineView (journal output), AccountInfo and PeriodInfo (registry
    and period snapshots).

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
    from_model() class methods are boundary converters invoked from services
    and selectors only; callers never receive live ORM instances.

Invariants enforced:
    - Frozen dataclasses: a DTO handed to a caller cannot be mutated back
      into the session.
    - Lines in a JournalEntryView are ordered by line_number ascending.
    - Enum-valued fields are always the enum, never the stored string.

Failure modes:
    - ValueError from the enum constructors when a stored status or type is
      not a known value (indicates a corrupted row).

Audit relevance:
    JournalEntryView carries every header audit field (created_by,
    approved_by, approved_at, posted_at) so read-side consumers can show
    who created and approved an entry without touching the ORM.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from fund_kernel.db.types import ZERO
from fund_kernel.models.account import (
    AccountType,
    NetAssetClass,
    NormalBalance,
    StatementSection,
    StatementType,
)
from fund_kernel.models.accounting_period import PeriodStatus, PeriodType
from fund_kernel.models.journal import EntryType, JournalEntryStatus, SourceType

if TYPE_CHECKING:
    from fund_kernel.models.account import Account as AccountModel
    from fund_kernel.models.accounting_period import (
        AccountingPeriod as AccountingPeriodModel,
    )
    from fund_kernel.models.journal import JournalEntry as JournalEntryModel
    from fund_kernel.models.journal import JournalLine as JournalLineModel


def _optional_class(value: str | None) -> NetAssetClass | None:
    return NetAssetClass(value) if value else None


@dataclass(frozen=True)
class AccountInfo:
    """
    Snapshot of one chart-of-accounts entry.

    Contract:
        Immutable copy of an Account row.  Statement placement and net-asset
        class are typed enums, so consumers can branch exhaustively.
    """

    id: UUID
    organization_id: int
    account_number: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    statement_type: StatementType
    statement_section: StatementSection
    statement_order: int
    is_active: bool
    category: str | None = None
    description: str | None = None
    net_asset_class: NetAssetClass | None = None

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    @classmethod
    def from_model(cls, model: AccountModel) -> AccountInfo:
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            account_number=model.account_number,
            name=model.name,
            account_type=AccountType(model.account_type),
            normal_balance=NormalBalance(model.normal_balance),
            statement_type=StatementType(model.statement_type),
            statement_section=StatementSection(model.statement_section),
            statement_order=model.statement_order,
            is_active=model.is_active,
            category=model.category,
            description=model.description,
            net_asset_class=_optional_class(model.net_asset_class),
        )


@dataclass(frozen=True)
class PeriodInfo:
    """
    Snapshot of an accounting period.

    Contract:
        Immutable copy of an AccountingPeriod row used by callers to check
        status without ORM access.

    Non-goals:
        - Does NOT enforce period locks (PeriodService does that).
    """

    id: UUID
    organization_id: int
    period_name: str
    period_type: PeriodType
    fiscal_year: int
    start_date: date
    end_date: date
    status: PeriodStatus
    closed_at: datetime | None = None
    closed_by: str | None = None
    statement_of_activity_generated: bool = False
    statement_of_position_generated: bool = False
    statements_generated_at: datetime | None = None
    statements_generated_by: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED

    def contains_date(self, check_date: date) -> bool:
        """Check if a date falls within this period."""
        return self.start_date <= check_date <= self.end_date

    @classmethod
    def from_model(cls, model: AccountingPeriodModel) -> PeriodInfo:
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            period_name=model.period_name,
            period_type=PeriodType(model.period_type),
            fiscal_year=model.fiscal_year,
            start_date=model.start_date,
            end_date=model.end_date,
            status=PeriodStatus(model.status),
            closed_at=model.closed_at,
            closed_by=model.closed_by,
            statement_of_activity_generated=model.statement_of_activity_generated,
            statement_of_position_generated=model.statement_of_position_generated,
            statements_generated_at=model.statements_generated_at,
            statements_generated_by=model.statements_generated_by,
        )


@dataclass(frozen=True)
class LineInput:
    """
    One proposed journal line, as supplied by a caller.

    Contract:
        Carries an account id and a debit or a credit amount.  Validation
        (non-negative, cent precision, exactly one side non-zero) happens in
        JournalService so that the failure can name the line number.

    Non-goals:
        - Does NOT check that the account exists or is active.
    """

    account_id: UUID
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    description: str | None = None
    net_asset_class: NetAssetClass | None = None
    restriction_description: str | None = None
    department_id: str | None = None
    campaign_id: str | None = None
    memo: str | None = None

    @classmethod
    def debit(
        cls, account_id: UUID, amount: Decimal | str, description: str | None = None, **kwargs
    ) -> LineInput:
        """Factory for a debit line."""
        return cls(
            account_id=account_id,
            debit_amount=Decimal(amount),
            description=description,
            **kwargs,
        )

    @classmethod
    def credit(
        cls, account_id: UUID, amount: Decimal | str, description: str | None = None, **kwargs
    ) -> LineInput:
        """Factory for a credit line."""
        return cls(
            account_id=account_id,
            credit_amount=Decimal(amount),
            description=description,
            **kwargs,
        )


@dataclass(frozen=True)
class EntryHeader:
    """
    Header fields for a new journal entry.

    Contract:
        When accounting_period_id is None the engine resolves the period
        covering entry_date.  created_by is mandatory for audit.
    """

    organization_id: int
    entry_date: date
    description: str
    created_by: str
    entry_type: EntryType = EntryType.STANDARD
    source_type: SourceType = SourceType.MANUAL
    source_id: str | None = None
    reference: str | None = None
    memo: str | None = None
    accounting_period_id: UUID | None = None


@dataclass(frozen=True)
class JournalLineView:
    """Read-side projection of one journal line."""

    id: UUID
    line_number: int
    account_id: UUID
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None = None
    net_asset_class: NetAssetClass | None = None
    restriction_description: str | None = None
    department_id: str | None = None
    campaign_id: str | None = None
    memo: str | None = None

    @classmethod
    def from_model(cls, model: JournalLineModel) -> JournalLineView:
        return cls(
            id=model.id,
            line_number=model.line_number,
            account_id=model.account_id,
            debit_amount=model.debit_amount,
            credit_amount=model.credit_amount,
            description=model.description,
            net_asset_class=_optional_class(model.net_asset_class),
            restriction_description=model.restriction_description,
            department_id=model.department_id,
            campaign_id=model.campaign_id,
            memo=model.memo,
        )


@dataclass(frozen=True)
class JournalEntryView:
    """
    Read-side projection of a journal entry with its ordered lines.

    Guarantees:
        - lines is a tuple sorted by line_number ascending.
    """

    id: UUID
    organization_id: int
    accounting_period_id: UUID
    entry_number: str
    entry_date: date
    entry_type: EntryType
    source_type: SourceType
    status: JournalEntryStatus
    description: str
    total_debit_amount: Decimal
    total_credit_amount: Decimal
    created_by: str
    lines: tuple[JournalLineView, ...]
    source_id: str | None = None
    reference: str | None = None
    memo: str | None = None
    is_reversed: bool = False
    reversal_entry_id: UUID | None = None
    reversal_of_id: UUID | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    posted_at: datetime | None = None

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_balanced(self) -> bool:
        debits = sum((line.debit_amount for line in self.lines), ZERO)
        credits = sum((line.credit_amount for line in self.lines), ZERO)
        return debits == credits == self.total_debit_amount == self.total_credit_amount

    @classmethod
    def from_model(cls, model: JournalEntryModel) -> JournalEntryView:
        lines = sorted(model.lines, key=lambda line: line.line_number)
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            accounting_period_id=model.accounting_period_id,
            entry_number=model.entry_number,
            entry_date=model.entry_date,
            entry_type=EntryType(model.entry_type),
            source_type=SourceType(model.source_type),
            status=JournalEntryStatus(model.status),
            description=model.description,
            total_debit_amount=model.total_debit_amount,
            total_credit_amount=model.total_credit_amount,
            created_by=model.created_by,
            lines=tuple(JournalLineView.from_model(line) for line in lines),
            source_id=model.source_id,
            reference=model.reference,
            memo=model.memo,
            is_reversed=model.is_reversed,
            reversal_entry_id=model.reversal_entry_id,
            reversal_of_id=model.reversal_of_id,
            approved_by=model.approved_by,
            approved_at=model.approved_at,
            posted_at=model.posted_at,
        )
