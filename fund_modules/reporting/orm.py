"""
Module: fund_modules.reporting.orm
Responsibility: ORM persistence for statement templates and generated
    statement snapshots.
Architecture position: Modules > Reporting.  Imports kernel db/ only.

Invariants enforced:
    - GeneratedFinancialStatement rows are append-only: neither UPDATE nor
      DELETE is accepted (db/immutability.py).
    - A template's layout is validated before it is stored
      (StatementTemplateService).
    - statement_type is "activity" or "position" on both tables.

Failure modes:
    - ImmutabilityViolationError on any change to a saved statement.

Audit relevance:
    A saved statement records what was reported, for which window, by whom
    and when.  Its denormalized totals allow listing without parsing the
    JSON document.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fund_kernel.db.base import TrackedBase, UUIDString
from fund_kernel.db.types import MoneyAmount


class FinancialStatementTemplate(TrackedBase):
    """
    A named statement layout, scoped to one organization or global.

    Contract:
        organization_id NULL marks a global template offered to every
        organization.  Templates are deactivated rather than deleted.
    """

    __tablename__ = "financial_statement_templates"

    __table_args__ = (
        Index("idx_template_org_type", "organization_id", "statement_type"),
    )

    organization_id: Mapped[int | None] = mapped_column(nullable=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    statement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # layout_to_dict() form of a StatementLayout
    layout: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<FinancialStatementTemplate {self.name}: {self.statement_type}>"


class GeneratedFinancialStatement(TrackedBase):
    """
    Append-only snapshot of a generated statement.

    Contract:
        Written once by StatementService.save_generated_statement and never
        modified.  ``document`` holds the render_to_dict() form.

    Guarantees:
        - Totals for the other statement type are NULL.
        - period_start/period_end are set for activity statements only.
    """

    __tablename__ = "generated_financial_statements"

    __table_args__ = (
        Index("idx_generated_org_type", "organization_id", "statement_type"),
        Index("idx_generated_org_generated_at", "organization_id", "generated_at"),
        Index("idx_generated_org_fiscal_year", "organization_id", "fiscal_year"),
    )

    organization_id: Mapped[int] = mapped_column(nullable=False)

    statement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    accounting_period_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounting_periods.id"),
        nullable=True,
    )

    template_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("financial_statement_templates.id"),
        nullable=True,
    )

    # Data-as-of date of the statement
    as_of_date: Mapped[date] = mapped_column(nullable=False)

    # Fiscal year of the period, or the as-of year when no period applies
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)

    period_start: Mapped[date | None] = mapped_column(nullable=True)

    period_end: Mapped[date | None] = mapped_column(nullable=True)

    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    generated_by: Mapped[str] = mapped_column(String(100), nullable=False)

    generation_method: Mapped[str] = mapped_column(String(20), nullable=False)

    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    total_revenue: Mapped[Decimal | None] = mapped_column(MoneyAmount(), nullable=True)

    total_expenses: Mapped[Decimal | None] = mapped_column(MoneyAmount(), nullable=True)

    change_in_net_assets: Mapped[Decimal | None] = mapped_column(
        MoneyAmount(), nullable=True,
    )

    total_assets: Mapped[Decimal | None] = mapped_column(MoneyAmount(), nullable=True)

    total_liabilities: Mapped[Decimal | None] = mapped_column(
        MoneyAmount(), nullable=True,
    )

    total_net_assets: Mapped[Decimal | None] = mapped_column(
        MoneyAmount(), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<GeneratedFinancialStatement {self.title} as of {self.as_of_date}>"
