"""
Donation Auto-Poster (``fund_modules.donations.service``).

Responsibility
--------------
Turns completed donations from a ``DonationFeed`` into posted, balanced
journal entries: debit cash for the net amount, credit contribution revenue
for the gross amount, debit processing fees for the fee.

Architecture position
---------------------
**Modules layer** -- thin glue over ``JournalService``.  Constructor:
``session`` + ``feed`` + ``clock`` + ``config``.  Flush-only; the caller's
transaction owns commit and rollback.

Invariants enforced
-------------------
* Exactly-once: a donation id already carried by a posted donation entry is
  skipped.  The partial unique index on (organization, source_type,
  source_id) backs the pre-check, so two overlapping runs cannot both post
  the same donation.
* Every entry balances: net + fee == gross.
* Each donation is posted in its own SAVEPOINT; a failure leaves nothing of
  that donation behind and does not disturb the others.

Failure modes
-------------
* ``ConfigurationError``: a posting account is missing or inactive.  Aborts
  the run before anything is posted.
* ``ImmutablePeriodError``: an explicitly requested period is closed.
  Aborts the run.
* ``NoOpenPeriodError``: no range was given and no open period covers today.
* Per donation (recorded in ``AutoPostResult.errors``, run continues):
  validation errors, closed or missing covering period, duplicate posting.

Audit relevance
---------------
Every run is tagged with a run_id in the log context.  Each entry carries
the donation id as source_id and "Donation-<id>" as reference, so every
ledger line traces back to the gift that caused it.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from fund_kernel.db.types import ZERO
from fund_kernel.domain.clock import Clock
from fund_kernel.domain.donations import DonationFact, DonationFeed
from fund_kernel.domain.dtos import AccountInfo, EntryHeader, JournalEntryView, LineInput
from fund_kernel.exceptions import (
    ConfigurationError,
    FundLedgerError,
    ImmutablePeriodError,
    InvalidPeriodRangeError,
    NoOpenPeriodError,
    ValidationError,
)
from fund_kernel.logging_config import LogContext, get_logger
from fund_kernel.models.journal import EntryType, SourceType
from fund_kernel.selectors.journal_selector import JournalSelector
from fund_kernel.services.account_service import AccountService
from fund_kernel.services.base import BaseService
from fund_kernel.services.journal_service import JournalService
from fund_kernel.services.period_service import PeriodService
from fund_modules.donations.config import DonationPostingConfig
from fund_modules.donations.models import AutoPostResult, DonationPostingFailure

logger = get_logger("modules.donations.service")


class DonationAutoPoster(BaseService):
    """
    Posts completed donations to the ledger.

    Contract
    --------
    * ``auto_post_donations`` returns an ``AutoPostResult``; it raises only
      for run-level problems (configuration, explicit closed period).
    * Entries are created already POSTED, approved by the run's actor.

    Non-goals
    ---------
    * Does NOT capture payments or talk to payment providers.
    * Does NOT post refunds or chargebacks.
    """

    def __init__(
        self,
        session: Session,
        feed: DonationFeed,
        clock: Clock | None = None,
        config: DonationPostingConfig | None = None,
        journal_service: JournalService | None = None,
    ):
        super().__init__(session, clock)
        self.feed = feed
        self.config = config or DonationPostingConfig.with_defaults()
        self._accounts = AccountService(session, self.clock)
        self._periods = PeriodService(session, self.clock)
        self._journal = journal_service or JournalService(
            session, self.clock, period_service=self._periods,
        )
        self._entries = JournalSelector(session)

    def auto_post_donations(
        self,
        organization_id: int,
        actor: str,
        start_date: date | None = None,
        end_date: date | None = None,
        period_id: UUID | None = None,
    ) -> AutoPostResult:
        """
        Post every not-yet-posted donation in a date range.

        Preconditions:
            - The organization's chart contains active cash, revenue and fee
              accounts (see DonationPostingConfig).

        Postconditions:
            - One POSTED entry per newly posted donation, in the period
              covering its occurrence date (or the explicit period).
            - Donations already posted are left alone.

        Args:
            organization_id: Organization whose donations are posted.
            actor: Creator and approver of the entries.
            start_date: First occurrence date (default: period start).
            end_date: Last occurrence date (default: period end).
            period_id: Post into this period only; it must be open.

        Returns:
            AutoPostResult with created entry ids and per-donation errors.

        Raises:
            ConfigurationError: Posting account missing or inactive.
            ImmutablePeriodError: Explicit period is closed.
            NoOpenPeriodError: No range given and no current open period.
            PeriodNotFoundError: Unknown explicit period.
            InvalidPeriodRangeError: start_date after end_date.
        """
        run_id = str(uuid4())
        with LogContext.bind(organization_id=organization_id, actor_id=actor, run_id=run_id):
            cash, revenue, fee = self._resolve_accounts(organization_id)

            explicit_period_id = None
            if period_id is not None:
                period = self._periods.get_period(organization_id, period_id)
                if not period.is_open:
                    logger.warning(
                        "donation_auto_post_period_closed",
                        extra={"period_id": str(period.id), "period_name": period.period_name},
                    )
                    raise ImmutablePeriodError(str(period.id), period.period_name, period.status.value)
                explicit_period_id = period.id
                start_date = start_date or period.start_date
                end_date = end_date or period.end_date

            if start_date is None or end_date is None:
                current = self._periods.get_current_period(organization_id)
                if current is None:
                    raise NoOpenPeriodError(organization_id, self.clock.today().isoformat())
                start_date = start_date or current.start_date
                end_date = end_date or current.end_date

            if start_date > end_date:
                raise InvalidPeriodRangeError(start_date.isoformat(), end_date.isoformat())

            logger.info(
                "donation_auto_post_started",
                extra={
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "period_id": str(explicit_period_id) if explicit_period_id else None,
                },
            )

            donations = list(self.feed.completed_donations(organization_id, start_date, end_date))
            already_posted = self._entries.posted_source_ids(
                organization_id, SourceType.DONATION, [d.id for d in donations],
            )

            entry_ids: list[UUID] = []
            failures: list[DonationPostingFailure] = []
            total = ZERO
            skipped = 0

            for donation in donations:
                if donation.id in already_posted:
                    skipped += 1
                    logger.debug(
                        "donation_already_posted",
                        extra={"donation_id": donation.id},
                    )
                    continue
                try:
                    with self.session.begin_nested():
                        entry = self._post_donation(
                            organization_id, actor, donation, cash, revenue, fee,
                            explicit_period_id,
                        )
                except FundLedgerError as exc:
                    failures.append(
                        DonationPostingFailure(
                            donation_id=donation.id,
                            error_code=exc.code,
                            message=str(exc),
                        )
                    )
                    logger.warning(
                        "donation_posting_failed",
                        extra={
                            "donation_id": donation.id,
                            "error_code": exc.code,
                            "error": str(exc),
                        },
                    )
                    continue

                entry_ids.append(entry.id)
                total += donation.amount

            result = AutoPostResult(
                entries_created=len(entry_ids),
                total_amount=total,
                entry_ids=tuple(entry_ids),
                skipped_already_posted=skipped,
                errors=tuple(failures),
            )
            logger.info(
                "donation_auto_post_completed",
                extra={
                    "candidates": len(donations),
                    "entries_created": result.entries_created,
                    "total_amount": str(result.total_amount),
                    "skipped_already_posted": skipped,
                    "error_count": len(failures),
                },
            )
            return result

    # =========================================================================
    # Internals
    # =========================================================================

    def _resolve_accounts(
        self, organization_id: int,
    ) -> tuple[AccountInfo, AccountInfo, AccountInfo]:
        """Cash, revenue and fee accounts; all must exist and be active."""
        numbers = (
            self.config.cash_account_number,
            self.config.revenue_account_number,
            self.config.fee_account_number,
        )
        found = {n: self._accounts.get_account_by_number(organization_id, n) for n in numbers}
        missing = tuple(n for n, a in found.items() if a is None or not a.is_active)
        if missing:
            logger.error(
                "donation_auto_post_misconfigured",
                extra={"missing_accounts": list(missing)},
            )
            raise ConfigurationError(
                f"Donation posting accounts missing or inactive: {', '.join(missing)}",
                missing=missing,
            )
        return found[numbers[0]], found[numbers[1]], found[numbers[2]]

    def _validate_donation(self, organization_id: int, donation: DonationFact) -> None:
        if donation.organization_id != organization_id:
            raise ValidationError(
                f"donation {donation.id} belongs to organization {donation.organization_id}"
            )
        amount = Decimal(donation.amount)
        fee = Decimal(donation.fee_amount)
        if not (amount.is_finite() and fee.is_finite()):
            raise ValidationError(f"donation {donation.id}: amounts must be finite")
        if amount <= ZERO:
            raise ValidationError(f"donation {donation.id}: amount must be positive")
        if fee < ZERO or fee > amount:
            raise ValidationError(
                f"donation {donation.id}: fee {fee} must be between 0 and the amount {amount}"
            )

    def _build_lines(
        self,
        donation: DonationFact,
        cash: AccountInfo,
        revenue: AccountInfo,
        fee: AccountInfo,
    ) -> list[LineInput]:
        net_asset_class = donation.net_asset_class
        lines = []
        if donation.net_amount > ZERO:
            lines.append(
                LineInput.debit(
                    cash.id,
                    donation.net_amount,
                    self.config.describe_cash_line(donation.donor_name),
                    net_asset_class=net_asset_class,
                )
            )
        lines.append(
            LineInput.credit(
                revenue.id,
                donation.amount,
                self.config.revenue_line_description,
                net_asset_class=net_asset_class,
            )
        )
        if donation.fee_amount > ZERO:
            lines.append(
                LineInput.debit(
                    fee.id,
                    donation.fee_amount,
                    self.config.fee_line_description,
                    net_asset_class=net_asset_class,
                )
            )
        return lines

    def _post_donation(
        self,
        organization_id: int,
        actor: str,
        donation: DonationFact,
        cash: AccountInfo,
        revenue: AccountInfo,
        fee: AccountInfo,
        period_id: UUID | None,
    ) -> JournalEntryView:
        self._validate_donation(organization_id, donation)
        header = EntryHeader(
            organization_id=organization_id,
            entry_date=donation.occurred_on,
            description=self.config.describe_entry(donation.id),
            created_by=actor,
            entry_type=EntryType.STANDARD,
            source_type=SourceType.DONATION,
            source_id=donation.id,
            reference=self.config.reference_for(donation.id),
            accounting_period_id=period_id,
        )
        entry = self._journal.create_entry(
            header, self._build_lines(donation, cash, revenue, fee), post_immediately=True,
        )
        logger.info(
            "donation_posted",
            extra={
                "donation_id": donation.id,
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "amount": str(donation.amount),
                "fee_amount": str(donation.fee_amount),
            },
        )
        return entry
