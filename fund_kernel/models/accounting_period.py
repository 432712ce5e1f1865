"""
Module: fund_kernel.models.accounting_period
Responsibility: ORM persistence for accounting periods -- the date windows that
    decide which entries may still be created or posted.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Lifecycle is OPEN -> CLOSED exactly once; CLOSED is terminal.
    - No entry may be created or posted against a CLOSED period
      (enforced by PeriodService / JournalService under a row lock).
    - A closed period is immutable except for the statement-generation stamps
      (enforced by db/immutability.py).

Failure modes:
    - ImmutablePeriodError when targeting a closed period.
    - PeriodAlreadyClosedError on a redundant close.
    - PeriodOverlapError when a new range overlaps an existing period.

Audit relevance:
    closed_at/closed_by record who froze the period.  The statement flags
    record when the period's statements were produced.
"""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fund_kernel.db.base import TrackedBase


class PeriodStatus(str, Enum):
    """Lifecycle status of an accounting period.

    Contract: OPEN -> CLOSED, once.  There is no reopen.
    """

    OPEN = "open"
    CLOSED = "closed"


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class AccountingPeriod(TrackedBase):
    """
    Accounting period for one organization.

    Contract:
        Periods gate postings.  Once CLOSED, no new entries are accepted for
        the period and its financial data is frozen.

    Guarantees:
        - start_date <= end_date (enforced by PeriodService).
        - Ranges do not overlap within an organization (PeriodService).
        - close requires an explicit actor and a clock-injected timestamp.
    """

    __tablename__ = "accounting_periods"

    __table_args__ = (
        Index("idx_period_org_dates", "organization_id", "start_date", "end_date"),
        Index("idx_period_org_status", "organization_id", "status"),
    )

    organization_id: Mapped[int] = mapped_column(nullable=False)

    # "January 2024", "FY2024 Q1"
    period_name: Mapped[str] = mapped_column(String(100), nullable=False)

    period_type: Mapped[str] = mapped_column(
        String(20), default=PeriodType.MONTHLY.value, nullable=False,
    )

    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Inclusive bounds
    start_date: Mapped[date] = mapped_column(nullable=False)

    end_date: Mapped[date] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=PeriodStatus.OPEN.value, nullable=False,
    )

    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    closed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    statement_of_activity_generated: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )

    statement_of_position_generated: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )

    statements_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    statements_generated_by: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<AccountingPeriod {self.period_name}: {self.status}>"

    @property
    def is_open(self) -> bool:
        """Check if period is open for posting."""
        return self.status == PeriodStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED

    def contains_date(self, check_date: date) -> bool:
        """Check if a date falls within this period."""
        return self.start_date <= check_date <= self.end_date
