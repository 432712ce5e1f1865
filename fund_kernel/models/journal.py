"""
Module: fund_kernel.models.journal
Responsibility: ORM persistence for journal entries and their line items -- the
    single source of financial truth in the ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Balance: sum(line debits) == sum(line credits) == total_debit_amount ==
      total_credit_amount (checked by JournalService before flush; exposed
      here via is_balanced for read-side assertions).
    - Entry numbers are unique per organization (uq_journal_org_number).
    - At most one entry per donation per organization: partial unique index
      on (organization_id, source_type, source_id) WHERE source_type='donation'.
    - At most one reversal per entry (uq_journal_reversal_of).
    - Line numbers are unique within an entry (uq_line_entry_number).
    - Immutability after POSTED (db/immutability.py), apart from the one-way
      reversal stamp on the original entry.

Failure modes:
    - IntegrityError on duplicate entry number, duplicate donation posting,
      or a second reversal (translated to domain errors by JournalService).
    - ImmutabilityViolationError on UPDATE/DELETE of posted entries and lines.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    Every report derives from posted rows here.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fund_kernel.db.base import TrackedBase, UUIDString
from fund_kernel.db.types import MoneyAmount

if TYPE_CHECKING:
    from fund_kernel.models.account import Account


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry.

    Contract: DRAFT -> POSTED, one way.  Reversal does not change status;
    it sets ``is_reversed`` on the original.
    """

    DRAFT = "draft"
    POSTED = "posted"


class EntryType(str, Enum):
    STANDARD = "standard"
    ADJUSTING = "adjusting"
    CLOSING = "closing"


class SourceType(str, Enum):
    """Origin of an entry.  source_id is a back-reference, not ownership."""

    MANUAL = "manual"
    DONATION = "donation"
    OTHER = "other"


_DONATION_SOURCE = text("source_type = 'donation'")


class JournalEntry(TrackedBase):
    """
    Journal entry header -- the atomic unit of double-entry accounting.

    Contract:
        Created as DRAFT with a balanced set of lines.  Once POSTED the row and
        all its lines are immutable; the only later change is the reversal
        stamp (is_reversed, reversal_entry_id) written when a mirror entry is
        posted.

    Guarantees:
        - entry_number is "JE-<fiscal year>-<NNN>", unique per organization.
        - total_debit_amount == total_credit_amount for every persisted entry.
        - reversal_of_id is set on reversal entries and unique.

    Non-goals:
        - This model does NOT enforce balance at the ORM level; enforcement
          lives in JournalService.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "entry_number", name="uq_journal_org_number",
        ),
        UniqueConstraint("reversal_of_id", name="uq_journal_reversal_of"),
        Index(
            "uq_journal_donation_source",
            "organization_id",
            "source_type",
            "source_id",
            unique=True,
            postgresql_where=_DONATION_SOURCE,
            sqlite_where=_DONATION_SOURCE,
        ),
        Index("idx_journal_org_date", "organization_id", "entry_date"),
        Index("idx_journal_org_status", "organization_id", "status"),
        Index("idx_journal_period", "accounting_period_id"),
    )

    organization_id: Mapped[int] = mapped_column(nullable=False)

    accounting_period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounting_periods.id"),
        nullable=False,
    )

    entry_number: Mapped[str] = mapped_column(String(30), nullable=False)

    entry_date: Mapped[date] = mapped_column(nullable=False)

    entry_type: Mapped[str] = mapped_column(
        String(20), default=EntryType.STANDARD.value, nullable=False,
    )

    source_type: Mapped[str] = mapped_column(
        String(20), default=SourceType.MANUAL.value, nullable=False,
    )

    source_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    description: Mapped[str] = mapped_column(String(1000), nullable=False)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    memo: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    total_debit_amount: Mapped[Decimal] = mapped_column(MoneyAmount(), nullable=False)

    total_credit_amount: Mapped[Decimal] = mapped_column(MoneyAmount(), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=JournalEntryStatus.DRAFT.value, nullable=False,
    )

    is_reversed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Set on the original once its mirror entry exists
    reversal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    # Set on the mirror entry, pointing back at the original
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number}: {self.status}>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None

    @property
    def total_debits(self) -> Decimal:
        """Sum of all line debits (computed, not the stored header total)."""
        return sum((line.debit_amount for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        """Sum of all line credits (computed, not the stored header total)."""
        return sum((line.credit_amount for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        """Lines balance and agree with both header totals."""
        return (
            self.total_debits
            == self.total_credits
            == self.total_debit_amount
            == self.total_credit_amount
        )


class JournalLine(TrackedBase):
    """
    Individual line item within a journal entry.

    Contract:
        Each line belongs to exactly one JournalEntry and references exactly
        one Account.  Exactly one of debit_amount / credit_amount is non-zero
        and neither is negative.

    Guarantees:
        - (journal_entry_id, line_number) is unique; line numbers start at 1.
        - Non-negative amounts (ck_line_amounts_non_negative).

    Non-goals:
        - This model does not validate account existence or activity status;
          that is enforced by JournalService.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        UniqueConstraint(
            "journal_entry_id", "line_number", name="uq_line_entry_number",
        ),
        CheckConstraint(
            "debit_amount >= 0 AND credit_amount >= 0",
            name="ck_line_amounts_non_negative",
        ),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    debit_amount: Mapped[Decimal] = mapped_column(
        MoneyAmount(), default=Decimal("0"), nullable=False,
    )

    credit_amount: Mapped[Decimal] = mapped_column(
        MoneyAmount(), default=Decimal("0"), nullable=False,
    )

    net_asset_class: Mapped[str | None] = mapped_column(String(30), nullable=True)

    restriction_description: Mapped[str | None] = mapped_column(
        String(500), nullable=True,
    )

    # Cost-center references owned by the host application
    department_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    campaign_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    memo: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return (
            f"<JournalLine {self.line_number} "
            f"Dr {self.debit_amount} Cr {self.credit_amount}>"
        )

    @property
    def is_debit(self) -> bool:
        return self.debit_amount > 0

    @property
    def is_credit(self) -> bool:
        return self.credit_amount > 0
