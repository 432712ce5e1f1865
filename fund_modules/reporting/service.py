"""
Reporting Module Service (``fund_modules.reporting.service``).

Responsibility
--------------
Orchestrates financial statement generation -- trial balance, statement of
activities and statement of financial position -- by bridging kernel reads
(``AccountService``, ``LedgerSelector``, ``PeriodService``) to the pure
transformation functions in ``statements.py``, and stores generated
statements as append-only snapshots.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``StatementService`` is the sole public
entry point for statements.  Constructor: ``session`` + ``clock`` +
``config``.

Invariants enforced
-------------------
* Generation is read-only: no journal entry is created or changed.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* Only POSTED entries contribute to any figure.
* A ledger with no postings yields zero-valued, fully-sectioned statements.
* Saved statements are never updated or deleted (db/immutability.py).

Failure modes
-------------
* ``ValidationError`` when neither a period nor a full date range is given.
* ``InvalidPeriodRangeError`` when start_date is after end_date.
* ``PeriodNotFoundError`` / ``TemplateNotFoundError`` for unknown ids.
* ``StatementNotFoundError`` for an unknown saved statement.

Audit relevance
---------------
``statement_generated`` and ``statement_saved`` are logged with the
organization, statement type, window and totals.  Saving a statement for a
period stamps the period's statement-generated flags.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from fund_kernel.domain.clock import Clock
from fund_kernel.domain.dtos import AccountInfo
from fund_kernel.exceptions import (
    InvalidPeriodRangeError,
    StatementNotFoundError,
    ValidationError,
)
from fund_kernel.logging_config import LogContext, get_logger
from fund_kernel.models.account import StatementType
from fund_kernel.selectors.ledger_selector import LedgerSelector
from fund_kernel.services.account_service import AccountService
from fund_kernel.services.base import BaseService
from fund_kernel.services.period_service import PeriodService
from fund_modules.reporting.config import ReportingConfig
from fund_modules.reporting.models import (
    GeneratedStatementInfo,
    GenerationMethod,
    ReportMetadata,
    ReportType,
    StatementDocument,
    StatementOfActivity,
    StatementOfPosition,
    TrialBalanceReport,
)
from fund_modules.reporting.orm import GeneratedFinancialStatement
from fund_modules.reporting.statements import (
    build_statement_of_activity,
    build_statement_of_position,
    build_trial_balance,
    render_to_dict,
)
from fund_modules.reporting.templates import StatementTemplateService

logger = get_logger("modules.reporting.service")


class StatementService(BaseService):
    """
    Financial statement generation service.

    Contract
    --------
    * ``get_trial_balance`` and ``generate_*`` return typed, sectioned
      documents and write nothing except a template's usage count.
    * ``save_generated_statement`` appends one snapshot row.

    Guarantees
    ----------
    * Report generation delegates to pure transformation functions in
      ``statements.py``; no financial logic lives in this class.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT render HTML, PDF or spreadsheets.
    * Does NOT close revenue and expense into net assets.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        period_service: PeriodService | None = None,
        template_service: StatementTemplateService | None = None,
    ):
        super().__init__(session, clock)
        self.config = config or ReportingConfig.with_defaults()
        self._ledger = LedgerSelector(session)
        self._accounts = AccountService(session, self.clock)
        self._periods = period_service or PeriodService(session, self.clock)
        self._templates = template_service or StatementTemplateService(session, self.clock)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _load_accounts(self, organization_id: int) -> list[AccountInfo]:
        """
        Every account of the organization, inactive ones included.

        The pure layer decides which inactive accounts to present; an
        inactive account with postings must still count toward totals.
        """
        accounts = self._accounts.get_accounts(organization_id, include_inactive=True)
        logger.debug(
            "accounts_loaded_for_reporting",
            extra={"account_count": len(accounts)},
        )
        return accounts

    def _build_metadata(
        self,
        report_type: ReportType,
        organization_id: int,
        reporting_period: str,
        as_of_date: date,
        period_start: date | None = None,
        period_end: date | None = None,
        accounting_period_id: UUID | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            organization_id=organization_id,
            organization_name=self.config.entity_name,
            currency=self.config.default_currency,
            reporting_period=reporting_period,
            as_of_date=as_of_date,
            generated_at=self.clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
            accounting_period_id=accounting_period_id,
        )

    def _period_id_for(self, organization_id: int, as_of_date: date) -> UUID | None:
        period = self._periods.get_period_for_date(organization_id, as_of_date)
        return period.id if period else None

    # =========================================================================
    # Public API
    # =========================================================================

    def get_trial_balance(
        self, organization_id: int, as_of_date: date | None = None,
    ) -> TrialBalanceReport:
        """
        Net posted balance of every account as of a date.

        Args:
            organization_id: Organization to report on.
            as_of_date: Include entries dated on or before this date
                (default: today per the injected clock).
        """
        as_of = as_of_date or self.clock.today()
        with LogContext.bind(organization_id=organization_id):
            report = build_trial_balance(
                self._load_accounts(organization_id),
                self._ledger.account_balances(organization_id, as_of_date=as_of),
                self.config,
                self._build_metadata(
                    ReportType.TRIAL_BALANCE,
                    organization_id,
                    f"As of {as_of.isoformat()}",
                    as_of,
                    accounting_period_id=self._period_id_for(organization_id, as_of),
                ),
            )
            logger.info(
                "trial_balance_generated",
                extra={
                    "as_of_date": as_of.isoformat(),
                    "line_count": len(report.lines),
                    "total_debits": str(report.total_debits),
                    "total_credits": str(report.total_credits),
                    "is_balanced": report.is_balanced,
                },
            )
            if not report.is_balanced:
                logger.error(
                    "trial_balance_out_of_balance",
                    extra={
                        "total_debit_normal": str(report.total_debit_normal),
                        "total_credit_normal": str(report.total_credit_normal),
                    },
                )
            return report

    def generate_statement_of_activity(
        self,
        organization_id: int,
        period_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        template_id: UUID | None = None,
    ) -> StatementOfActivity:
        """
        Revenue and expense activity over a period or an explicit window.

        Preconditions:
            Either ``period_id`` or both ``start_date`` and ``end_date``.
            A period wins over explicit dates.

        Raises:
            ValidationError: Neither a period nor a full date range.
            InvalidPeriodRangeError: start_date after end_date.
            PeriodNotFoundError: Unknown period.
        """
        accounting_period_id = None
        if period_id is not None:
            period = self._periods.get_period(organization_id, period_id)
            start_date, end_date = period.start_date, period.end_date
            accounting_period_id = period.id
        elif start_date is None or end_date is None:
            raise ValidationError(
                "a statement of activity needs a period or a start and end date"
            )
        if start_date > end_date:
            raise InvalidPeriodRangeError(start_date.isoformat(), end_date.isoformat())

        with LogContext.bind(organization_id=organization_id):
            layout, used_template_id = self._templates.resolve_layout(
                organization_id, StatementType.ACTIVITY, template_id,
            )
            statement = build_statement_of_activity(
                self._load_accounts(organization_id),
                self._ledger.account_balances(
                    organization_id, as_of_date=end_date, start_date=start_date,
                ),
                self.config,
                self._build_metadata(
                    ReportType.STATEMENT_OF_ACTIVITY,
                    organization_id,
                    f"{start_date.isoformat()} to {end_date.isoformat()}",
                    end_date,
                    period_start=start_date,
                    period_end=end_date,
                    accounting_period_id=accounting_period_id,
                ),
                layout=layout,
                template_id=used_template_id,
            )
            logger.info(
                "statement_generated",
                extra={
                    "statement_type": StatementType.ACTIVITY.value,
                    "period_start": start_date.isoformat(),
                    "period_end": end_date.isoformat(),
                    "template_id": str(used_template_id) if used_template_id else None,
                    "total_revenue": str(statement.total_revenue),
                    "total_expenses": str(statement.total_expenses),
                    "change_in_net_assets": str(statement.change_in_net_assets),
                },
            )
            return statement

    def generate_statement_of_position(
        self,
        organization_id: int,
        as_of_date: date | None = None,
        template_id: UUID | None = None,
    ) -> StatementOfPosition:
        """
        Assets, liabilities and net assets as of a date.

        Args:
            organization_id: Organization to report on.
            as_of_date: Cumulative cut-off (default: today per the clock).
            template_id: Optional layout template.
        """
        as_of = as_of_date or self.clock.today()
        with LogContext.bind(organization_id=organization_id):
            layout, used_template_id = self._templates.resolve_layout(
                organization_id, StatementType.POSITION, template_id,
            )
            statement = build_statement_of_position(
                self._load_accounts(organization_id),
                self._ledger.account_balances(organization_id, as_of_date=as_of),
                self.config,
                self._build_metadata(
                    ReportType.STATEMENT_OF_POSITION,
                    organization_id,
                    f"As of {as_of.isoformat()}",
                    as_of,
                    accounting_period_id=self._period_id_for(organization_id, as_of),
                ),
                layout=layout,
                template_id=used_template_id,
            )
            logger.info(
                "statement_generated",
                extra={
                    "statement_type": StatementType.POSITION.value,
                    "as_of_date": as_of.isoformat(),
                    "template_id": str(used_template_id) if used_template_id else None,
                    "total_assets": str(statement.total_assets),
                    "total_liabilities": str(statement.total_liabilities),
                    "total_net_assets": str(statement.total_net_assets),
                    "is_balanced": statement.is_balanced,
                },
            )
            if not statement.is_balanced:
                logger.error(
                    "statement_of_position_out_of_balance",
                    extra={"as_of_date": as_of.isoformat()},
                )
            return statement

    # =========================================================================
    # Saved statements
    # =========================================================================

    def save_generated_statement(
        self,
        organization_id: int,
        document: StatementDocument,
        actor: str,
        period_id: UUID | None = None,
        template_id: UUID | None = None,
        generation_method: GenerationMethod = GenerationMethod.AUTOMATIC,
        is_public: bool = False,
    ) -> GeneratedStatementInfo:
        """
        Persist an append-only snapshot of a generated statement.

        Preconditions:
            ``document`` was generated for ``organization_id``.

        Postconditions:
            When a period is known (explicitly or from the document), its
            statement-generated flag for this statement type is set.

        Raises:
            ValidationError: Document belongs to another organization.
            PeriodNotFoundError: Unknown period.
        """
        metadata = document.metadata
        if metadata.organization_id != organization_id:
            raise ValidationError(
                f"statement was generated for organization {metadata.organization_id}, "
                f"not {organization_id}"
            )
        period_id = period_id or metadata.accounting_period_id
        template_id = template_id or document.template_id
        fiscal_year = (
            self._periods.get_period(organization_id, period_id).fiscal_year
            if period_id is not None
            else metadata.as_of_date.year
        )

        with LogContext.bind(organization_id=organization_id, actor_id=actor):
            row = GeneratedFinancialStatement(
                organization_id=organization_id,
                statement_type=document.statement_type.value,
                title=document.title,
                accounting_period_id=period_id,
                template_id=template_id,
                as_of_date=metadata.as_of_date,
                fiscal_year=fiscal_year,
                period_start=metadata.period_start,
                period_end=metadata.period_end,
                generated_at=self.clock.now(),
                generated_by=actor,
                generation_method=GenerationMethod(generation_method).value,
                is_public=is_public,
                document=render_to_dict(document),
                created_by=actor,
            )
            if isinstance(document, StatementOfActivity):
                row.total_revenue = document.total_revenue
                row.total_expenses = document.total_expenses
                row.change_in_net_assets = document.change_in_net_assets
            else:
                row.total_assets = document.total_assets
                row.total_liabilities = document.total_liabilities
                row.total_net_assets = document.total_net_assets
                row.change_in_net_assets = document.change_in_net_assets

            self.session.add(row)
            if period_id is not None:
                self._periods.mark_statements_generated(
                    organization_id, period_id, document.statement_type, actor,
                )
            self.session.flush()

            logger.info(
                "statement_saved",
                extra={
                    "statement_id": str(row.id),
                    "statement_type": row.statement_type,
                    "as_of_date": row.as_of_date.isoformat(),
                    "accounting_period_id": str(period_id) if period_id else None,
                    "generation_method": row.generation_method,
                },
            )
            return GeneratedStatementInfo.from_model(row)

    def get_generated_statements(
        self,
        organization_id: int,
        statement_type: StatementType | None = None,
        fiscal_year: int | None = None,
    ) -> list[GeneratedStatementInfo]:
        """Saved statements, newest first, optionally for one fiscal year."""
        query = select(GeneratedFinancialStatement).where(
            GeneratedFinancialStatement.organization_id == organization_id,
        )
        if statement_type is not None:
            query = query.where(
                GeneratedFinancialStatement.statement_type == StatementType(statement_type).value
            )
        if fiscal_year is not None:
            query = query.where(GeneratedFinancialStatement.fiscal_year == fiscal_year)
        query = query.order_by(
            GeneratedFinancialStatement.generated_at.desc(),
            GeneratedFinancialStatement.as_of_date.desc(),
        )
        return [
            GeneratedStatementInfo.from_model(row)
            for row in self.session.execute(query).scalars()
        ]

    def get_generated_statement(
        self, organization_id: int, statement_id: UUID,
    ) -> GeneratedStatementInfo:
        row = self.session.execute(
            select(GeneratedFinancialStatement).where(
                GeneratedFinancialStatement.id == statement_id,
                GeneratedFinancialStatement.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise StatementNotFoundError(str(statement_id))
        return GeneratedStatementInfo.from_model(row)
