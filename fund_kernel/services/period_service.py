"""
PeriodService -- accounting period lifecycle and the posting gate.

Responsibility:
    Creates accounting periods, closes them (OPEN -> CLOSED, terminal),
    answers "which period covers this date" and "which period is current",
    and is the single gatekeeper deciding whether an entry may be created
    or posted against a period.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by JournalService on every create/post/reverse and by the
    reporting module when statements are saved.

Invariants enforced:
    - No entry may target a period that is not OPEN (ImmutablePeriodError).
    - No silent period creation: a date without a covering period raises
      NoOpenPeriodError.
    - Date ranges of one organization never overlap (PeriodOverlapError).
    - Close and posting are mutually exclusive: both hold the period row
      under ``SELECT ... FOR UPDATE`` until their transaction ends.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - InvalidPeriodRangeError: start_date after end_date.
    - PeriodOverlapError: new range overlaps an existing period.
    - PeriodNotFoundError: unknown period id.
    - PeriodAlreadyClosedError: close requested twice.
    - ImmutablePeriodError / NoOpenPeriodError: posting gate rejections.

Audit relevance:
    period_created and period_closed are logged with the actor; gate
    rejections are logged at WARNING.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from fund_kernel.domain.clock import Clock
from fund_kernel.domain.dtos import PeriodInfo
from fund_kernel.exceptions import (
    ImmutablePeriodError,
    InvalidPeriodRangeError,
    NoOpenPeriodError,
    PeriodAlreadyClosedError,
    PeriodNotFoundError,
    PeriodOverlapError,
    ValidationError,
)
from fund_kernel.logging_config import get_logger
from fund_kernel.models.account import StatementType
from fund_kernel.models.accounting_period import AccountingPeriod, PeriodStatus, PeriodType
from fund_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService):
    """
    Service for managing accounting period lifecycle.

    Contract:
        Lifecycle methods flush within the caller's transaction and return
        frozen PeriodInfo DTOs.  ``lock_for_posting`` is the kernel-internal
        gate; it returns the locked ORM row for JournalService.

    Guarantees:
        - CLOSED is terminal; there is no reopen.
        - close_at/closed_by come from the injected clock and the actor.

    Non-goals:
        - Does NOT generate closing entries or roll net assets forward.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    # Lifecycle

    def create_period(
        self,
        organization_id: int,
        period_name: str,
        fiscal_year: int,
        start_date: date,
        end_date: date,
        actor: str,
        period_type: PeriodType = PeriodType.MONTHLY,
    ) -> PeriodInfo:
        """
        Create a new OPEN period.

        Raises:
            InvalidPeriodRangeError: start_date > end_date.
            PeriodOverlapError: range overlaps an existing period of the
                organization.
        """
        if start_date > end_date:
            raise InvalidPeriodRangeError(str(start_date), str(end_date))
        if not (period_name or "").strip():
            raise ValidationError("Period name is required")

        self._validate_no_overlap(organization_id, period_name, start_date, end_date)

        period = AccountingPeriod(
            organization_id=organization_id,
            period_name=period_name,
            period_type=PeriodType(period_type).value,
            fiscal_year=fiscal_year,
            start_date=start_date,
            end_date=end_date,
            status=PeriodStatus.OPEN.value,
            created_by=actor,
        )
        self.session.add(period)
        self.session.flush()

        logger.info(
            "period_created",
            extra={
                "organization_id": organization_id,
                "period_id": str(period.id),
                "period_name": period_name,
                "start_date": str(start_date),
                "end_date": str(end_date),
                "actor_id": actor,
            },
        )
        return PeriodInfo.from_model(period)

    def _validate_no_overlap(
        self,
        organization_id: int,
        period_name: str,
        start_date: date,
        end_date: date,
    ) -> None:
        # Two inclusive ranges overlap iff start1 <= end2 AND start2 <= end1
        overlapping = self.session.execute(
            select(AccountingPeriod)
            .where(
                AccountingPeriod.organization_id == organization_id,
                AccountingPeriod.start_date <= end_date,
                AccountingPeriod.end_date >= start_date,
            )
            .order_by(AccountingPeriod.start_date)
            .limit(1)
        ).scalar_one_or_none()

        if overlapping is not None:
            overlap_start = max(start_date, overlapping.start_date)
            overlap_end = min(end_date, overlapping.end_date)
            logger.warning(
                "period_overlap_rejected",
                extra={
                    "organization_id": organization_id,
                    "period_name": period_name,
                    "existing_period_id": str(overlapping.id),
                },
            )
            raise PeriodOverlapError(
                new_period_name=period_name,
                existing_period_name=overlapping.period_name,
                overlap_start=str(overlap_start),
                overlap_end=str(overlap_end),
            )

    def close_period(self, organization_id: int, period_id: UUID, actor: str) -> PeriodInfo:
        """
        Close a period.  Terminal.

        The row is read with ``SELECT ... FOR UPDATE`` so a concurrent
        entry creation either finishes first or sees the period closed.

        Postconditions:
            - status is CLOSED; closed_at from the clock; closed_by = actor.

        Raises:
            PeriodNotFoundError: unknown period.
            PeriodAlreadyClosedError: period already closed.
        """
        period = self._get_period_orm(organization_id, period_id, for_update=True)

        if period.is_closed:
            raise PeriodAlreadyClosedError(
                str(period.id), period.period_name, PeriodStatus.CLOSED.value,
            )

        period.status = PeriodStatus.CLOSED.value
        period.closed_at = self.clock.now()
        period.closed_by = actor
        period.updated_by = actor
        self.session.flush()

        logger.info(
            "period_closed",
            extra={
                "organization_id": organization_id,
                "period_id": str(period.id),
                "period_name": period.period_name,
                "actor_id": actor,
            },
        )
        return PeriodInfo.from_model(period)

    def mark_statements_generated(
        self,
        organization_id: int,
        period_id: UUID,
        statement_type: StatementType,
        actor: str,
    ) -> PeriodInfo:
        """
        Stamp the period when one of its statements has been saved.

        This is the only change a closed period accepts.
        """
        period = self._get_period_orm(organization_id, period_id)
        if StatementType(statement_type) == StatementType.ACTIVITY:
            period.statement_of_activity_generated = True
        else:
            period.statement_of_position_generated = True
        period.statements_generated_at = self.clock.now()
        period.statements_generated_by = actor
        self.session.flush()
        return PeriodInfo.from_model(period)

    # Posting gate

    def lock_for_posting(
        self,
        organization_id: int,
        entry_date: date,
        period_id: UUID | None = None,
    ) -> AccountingPeriod:
        """
        Resolve and lock the period an entry dated ``entry_date`` may target.

        Preconditions:
            - Caller is inside a transaction that will write the entry.

        Postconditions:
            - Returns the OPEN period row, locked until the transaction ends.

        Raises:
            PeriodNotFoundError: explicit period_id unknown.
            ImmutablePeriodError: the resolved period is not open.
            ValidationError: entry_date outside the explicit period.
            NoOpenPeriodError: no period covers entry_date.
        """
        if period_id is not None:
            period = self._get_period_orm(organization_id, period_id, for_update=True)
            self._require_open(period)
            if not period.contains_date(entry_date):
                raise ValidationError(
                    f"Entry date {entry_date} is outside period "
                    f"'{period.period_name}' ({period.start_date} to {period.end_date})"
                )
            return period

        period = self._period_for_date_orm(organization_id, entry_date, for_update=True)
        if period is None:
            logger.warning(
                "no_open_period",
                extra={"organization_id": organization_id, "entry_date": str(entry_date)},
            )
            raise NoOpenPeriodError(organization_id, str(entry_date))
        self._require_open(period)
        return period

    def lock_period(self, organization_id: int, period_id: UUID) -> AccountingPeriod:
        """Locked ORM row for an existing period; raises if it is not open."""
        period = self._get_period_orm(organization_id, period_id, for_update=True)
        self._require_open(period)
        return period

    def _require_open(self, period: AccountingPeriod) -> None:
        if not period.is_open:
            logger.warning(
                "period_not_open",
                extra={
                    "period_id": str(period.id),
                    "period_name": period.period_name,
                    "status": period.status,
                },
            )
            raise ImmutablePeriodError(str(period.id), period.period_name, period.status)

    # Reads

    def _get_period_orm(
        self, organization_id: int, period_id: UUID, for_update: bool = False,
    ) -> AccountingPeriod:
        query = select(AccountingPeriod).where(
            AccountingPeriod.id == period_id,
            AccountingPeriod.organization_id == organization_id,
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        period = self.session.execute(query).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def _period_for_date_orm(
        self, organization_id: int, check_date: date, for_update: bool = False,
    ) -> AccountingPeriod | None:
        query = (
            select(AccountingPeriod)
            .where(
                AccountingPeriod.organization_id == organization_id,
                AccountingPeriod.start_date <= check_date,
                AccountingPeriod.end_date >= check_date,
            )
            .order_by(AccountingPeriod.start_date)
            .limit(1)
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(query).scalar_one_or_none()

    def get_period(self, organization_id: int, period_id: UUID) -> PeriodInfo:
        """
        Raises:
            PeriodNotFoundError: unknown id or another organization's period.
        """
        return PeriodInfo.from_model(self._get_period_orm(organization_id, period_id))

    def get_periods(
        self,
        organization_id: int,
        status: PeriodStatus | None = None,
        fiscal_year: int | None = None,
    ) -> list[PeriodInfo]:
        """Periods of the organization, most recent start date first."""
        query = select(AccountingPeriod).where(
            AccountingPeriod.organization_id == organization_id,
        )
        if status is not None:
            query = query.where(AccountingPeriod.status == PeriodStatus(status).value)
        if fiscal_year is not None:
            query = query.where(AccountingPeriod.fiscal_year == fiscal_year)
        query = query.order_by(AccountingPeriod.start_date.desc())
        return [PeriodInfo.from_model(p) for p in self.session.execute(query).scalars()]

    def get_period_for_date(self, organization_id: int, check_date: date) -> PeriodInfo | None:
        """Period covering ``check_date`` in any status, or None."""
        period = self._period_for_date_orm(organization_id, check_date)
        return PeriodInfo.from_model(period) if period else None

    def get_current_period(
        self, organization_id: int, as_of: date | None = None,
    ) -> PeriodInfo | None:
        """
        First OPEN period whose range contains ``as_of`` (default: today
        per the injected clock).
        """
        check_date = as_of or self.clock.today()
        period = self.session.execute(
            select(AccountingPeriod)
            .where(
                AccountingPeriod.organization_id == organization_id,
                AccountingPeriod.status == PeriodStatus.OPEN.value,
                AccountingPeriod.start_date <= check_date,
                AccountingPeriod.end_date >= check_date,
            )
            .order_by(AccountingPeriod.start_date)
            .limit(1)
        ).scalar_one_or_none()
        return PeriodInfo.from_model(period) if period else None
