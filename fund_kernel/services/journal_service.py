"""
JournalService -- the journal entry engine.

Responsibility:
    Creates, validates, posts and reverses balanced multi-line journal
    entries against the chart of accounts and the accounting periods.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes PeriodService (the
    posting gate) and SequenceService (entry numbers).  Called directly by
    the application layer and by the donation auto-poster.

Invariants enforced:
    - Balance: sum(line debits) == sum(line credits) == total_debit_amount
      == total_credit_amount, checked before anything is flushed.
    - Every line: non-negative cent amounts, exactly one side non-zero,
      an existing active account of the same organization.
    - Period gate: the target period is OPEN and stays locked until the
      caller's transaction ends.
    - Entry numbers "JE-<fiscal year>-<NNN>" come from a locked
      per-(organization, fiscal year) counter, never from counting rows.
    - Atomicity: header and lines are flushed together inside a SAVEPOINT;
      a failure leaves no partial entry.
    - Posted entries never change; a reversal is a new posted entry with
      debits and credits swapped, and the original only gains the one-way
      reversal stamp.

Failure modes:
    - MalformedLineError / UnbalancedEntryError / InvalidAccountError:
      rejected input, nothing persisted.
    - ImmutablePeriodError / NoOpenPeriodError: posting gate rejections.
    - EntryNotFoundError: unknown entry.
    - EntryNotDraftError: update or post of a non-draft entry.
    - EntryNotPostedError / AlreadyReversedError: reversal preconditions.
    - DuplicatePostingError: a donation already has an entry.

Audit relevance:
    journal_entry_created, journal_entry_posted and journal_entry_reversed
    are logged with entry id, number, totals and actor.  Validation
    failures are logged at WARNING before the exception propagates.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fund_kernel.db.types import MAX_AMOUNT, ZERO, has_cent_precision
from fund_kernel.domain.clock import Clock
from fund_kernel.domain.dtos import EntryHeader, JournalEntryView, LineInput
from fund_kernel.exceptions import (
    AlreadyReversedError,
    DuplicatePostingError,
    EntryNotDraftError,
    EntryNotFoundError,
    EntryNotPostedError,
    InvalidAccountError,
    MalformedLineError,
    UnbalancedEntryError,
    ValidationError,
)
from fund_kernel.logging_config import LogContext, get_logger
from fund_kernel.models.account import Account, NetAssetClass
from fund_kernel.models.accounting_period import AccountingPeriod
from fund_kernel.models.journal import (
    EntryType,
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    SourceType,
)
from fund_kernel.services.base import BaseService
from fund_kernel.services.period_service import PeriodService
from fund_kernel.services.sequence_service import SequenceService, journal_entry_sequence

logger = get_logger("services.journal")

_UPDATABLE_HEADER_FIELDS = frozenset({
    "entry_date",
    "entry_type",
    "description",
    "reference",
    "memo",
})


def format_entry_number(fiscal_year: int, sequence: int) -> str:
    """JE-2024-001; the counter widens past 999 rather than wrapping."""
    return f"JE-{fiscal_year}-{sequence:03d}"


@dataclass(frozen=True)
class ReversalResult:
    """Outcome of a reversal: the stamped original and its mirror entry."""

    original: JournalEntryView
    reversal: JournalEntryView


class JournalService(BaseService):
    """
    Journal entry engine.

    Contract:
        create_entry() validates and persists a DRAFT entry (or a POSTED one
        when ``post_immediately`` is set).  post_entry() moves DRAFT to
        POSTED.  reverse_entry() mirrors a POSTED entry into the current
        open period.  All methods return frozen JournalEntryView DTOs.

    Guarantees:
        - Nothing is flushed for input that fails validation.
        - Line numbers start at 1 and follow the input order.

    Non-goals:
        - Does NOT commit; the caller owns the transaction.
        - No multi-currency amounts.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        period_service: PeriodService | None = None,
        sequence_service: SequenceService | None = None,
    ):
        super().__init__(session, clock)
        self._periods = period_service or PeriodService(session, self.clock)
        self._sequences = sequence_service or SequenceService(session)

    # Create

    def create_entry(
        self,
        header: EntryHeader,
        lines: Sequence[LineInput],
        post_immediately: bool = False,
    ) -> JournalEntryView:
        """
        Validate and persist a journal entry.

        Preconditions:
            - header.created_by identifies the acting user.

        Postconditions:
            - Header and all lines are flushed atomically.
            - Status is DRAFT, or POSTED with approver = created_by when
              ``post_immediately`` is True.

        Raises:
            ValidationError: empty description, malformed or unbalanced
                lines, or entry date outside an explicit period.
            InvalidAccountError: missing, inactive or foreign account.
            ImmutablePeriodError: target period is closed.
            NoOpenPeriodError: no period covers the entry date.
            PeriodNotFoundError: explicit period id unknown.
            DuplicatePostingError: donation source already posted.
        """
        with LogContext.bind(organization_id=header.organization_id, actor_id=header.created_by):
            if not (header.description or "").strip():
                raise ValidationError("Entry description is required")

            total = self._validate_lines(lines)
            self._validate_accounts(header.organization_id, lines)

            source_type = SourceType(header.source_type)
            if source_type == SourceType.DONATION and header.source_id:
                self._check_donation_not_posted(header.organization_id, header.source_id)

            period = self._periods.lock_for_posting(
                header.organization_id, header.entry_date, header.accounting_period_id,
            )

            entry = self._insert_entry(
                organization_id=header.organization_id,
                period=period,
                entry_date=header.entry_date,
                entry_type=EntryType(header.entry_type),
                source_type=source_type,
                source_id=header.source_id,
                description=header.description,
                reference=header.reference,
                memo=header.memo,
                created_by=header.created_by,
                lines=lines,
                total=total,
                posted_by=header.created_by if post_immediately else None,
            )

            logger.info(
                "journal_entry_created",
                extra={
                    "entry_id": str(entry.id),
                    "entry_number": entry.entry_number,
                    "period_id": str(period.id),
                    "source_type": source_type.value,
                    "source_id": header.source_id,
                    "line_count": len(lines),
                    "total_amount": str(total),
                    "status": entry.status,
                },
            )
            if post_immediately:
                self._log_posted(entry)
            return JournalEntryView.from_model(entry)

    def _validate_lines(self, lines: Sequence[LineInput]) -> Decimal:
        """Shape and balance checks.  Returns the balanced entry total."""
        if len(lines) < 2:
            logger.warning("journal_entry_rejected", extra={"reason": "too_few_lines"})
            raise MalformedLineError(None, "an entry needs at least two lines")

        total_debits = ZERO
        total_credits = ZERO
        for line_number, line in enumerate(lines, start=1):
            debit, credit = self._line_amounts(line_number, line)
            total_debits += debit
            total_credits += credit

        if total_debits != total_credits:
            logger.warning(
                "journal_entry_rejected",
                extra={
                    "reason": "unbalanced",
                    "total_debits": str(total_debits),
                    "total_credits": str(total_credits),
                },
            )
            raise UnbalancedEntryError(str(total_debits), str(total_credits))
        if total_debits > MAX_AMOUNT:
            logger.warning(
                "journal_entry_rejected",
                extra={"reason": "total_too_large", "total_debits": str(total_debits)},
            )
            raise MalformedLineError(None, f"entry total must not exceed {MAX_AMOUNT}")
        return total_debits

    @staticmethod
    def _line_amounts(line_number: int, line: LineInput) -> tuple[Decimal, Decimal]:
        try:
            debit = Decimal(line.debit_amount or 0)
            credit = Decimal(line.credit_amount or 0)
            if not (debit.is_finite() and credit.is_finite()):
                raise MalformedLineError(line_number, "amounts must be finite")
            if debit < 0 or credit < 0:
                raise MalformedLineError(line_number, "amounts must be non-negative")
            if debit > MAX_AMOUNT or credit > MAX_AMOUNT:
                raise MalformedLineError(line_number, f"amounts must not exceed {MAX_AMOUNT}")
            if not (has_cent_precision(debit) and has_cent_precision(credit)):
                raise MalformedLineError(line_number, "amounts must have at most two decimal places")
        except (InvalidOperation, TypeError, ValueError):
            raise MalformedLineError(line_number, "amounts must be decimal numbers")

        if (debit > 0) == (credit > 0):
            raise MalformedLineError(
                line_number, "exactly one of debit or credit must be non-zero",
            )
        return debit, credit

    def _validate_accounts(self, organization_id: int, lines: Sequence[LineInput]) -> None:
        account_ids = {line.account_id for line in lines}
        accounts = {
            a.id: a
            for a in self.session.execute(
                select(Account).where(Account.id.in_(account_ids))
            ).scalars()
        }
        for line in lines:
            account = accounts.get(line.account_id)
            reason = None
            if account is None:
                reason = "account does not exist"
            elif account.organization_id != organization_id:
                reason = "account belongs to another organization"
            elif not account.is_active:
                reason = "account is inactive"
            if reason is not None:
                logger.warning(
                    "journal_entry_rejected",
                    extra={"reason": "invalid_account", "account_id": str(line.account_id)},
                )
                raise InvalidAccountError(str(line.account_id), reason)

    def _check_donation_not_posted(self, organization_id: int, source_id: str) -> None:
        if self._find_by_source(organization_id, SourceType.DONATION, source_id) is not None:
            raise DuplicatePostingError(organization_id, SourceType.DONATION.value, source_id)

    def _find_by_source(
        self, organization_id: int, source_type: SourceType, source_id: str,
    ) -> JournalEntry | None:
        return self.session.execute(
            select(JournalEntry).where(
                JournalEntry.organization_id == organization_id,
                JournalEntry.source_type == source_type.value,
                JournalEntry.source_id == source_id,
            )
        ).scalars().first()

    def _insert_entry(
        self,
        *,
        organization_id: int,
        period: AccountingPeriod,
        entry_date: date,
        entry_type: EntryType,
        source_type: SourceType,
        source_id: str | None,
        description: str,
        reference: str | None,
        memo: str | None,
        created_by: str,
        lines: Sequence[LineInput],
        total: Decimal,
        posted_by: str | None = None,
        reversal_of_id: UUID | None = None,
    ) -> JournalEntry:
        """
        Number, build and flush one entry inside a SAVEPOINT.

        The counter increment shares the savepoint, so a rejected insert
        hands its number back.
        """
        try:
            with self.session.begin_nested():
                sequence = self._sequences.next_value(
                    journal_entry_sequence(organization_id, period.fiscal_year)
                )
                entry = JournalEntry(
                    organization_id=organization_id,
                    accounting_period_id=period.id,
                    entry_number=format_entry_number(period.fiscal_year, sequence),
                    entry_date=entry_date,
                    entry_type=entry_type.value,
                    source_type=source_type.value,
                    source_id=source_id,
                    description=description,
                    reference=reference,
                    memo=memo,
                    total_debit_amount=total,
                    total_credit_amount=total,
                    status=JournalEntryStatus.DRAFT.value,
                    is_reversed=False,
                    reversal_of_id=reversal_of_id,
                    created_by=created_by,
                )
                entry.lines = self._build_lines(lines, created_by)
                if posted_by is not None:
                    self._stamp_posted(entry, posted_by)
                self.session.add(entry)
                self.session.flush()
        except IntegrityError:
            self._raise_translated_conflict(
                organization_id, source_type, source_id, reversal_of_id,
            )
            raise
        return entry

    def _raise_translated_conflict(
        self,
        organization_id: int,
        source_type: SourceType,
        source_id: str | None,
        reversal_of_id: UUID | None,
    ) -> None:
        """Map a uniqueness violation to the domain error it stands for."""
        if source_type == SourceType.DONATION and source_id:
            if self._find_by_source(organization_id, source_type, source_id) is not None:
                logger.warning(
                    "duplicate_posting_detected",
                    extra={"source_type": source_type.value, "source_id": source_id},
                )
                raise DuplicatePostingError(organization_id, source_type.value, source_id)
        if reversal_of_id is not None:
            existing = self.session.execute(
                select(JournalEntry.id).where(JournalEntry.reversal_of_id == reversal_of_id)
            ).scalar_one_or_none()
            if existing is not None:
                raise AlreadyReversedError(str(reversal_of_id))

    @staticmethod
    def _build_lines(lines: Sequence[LineInput], created_by: str) -> list[JournalLine]:
        return [
            JournalLine(
                line_number=line_number,
                account_id=line.account_id,
                description=line.description,
                debit_amount=Decimal(line.debit_amount or 0),
                credit_amount=Decimal(line.credit_amount or 0),
                net_asset_class=(
                    NetAssetClass(line.net_asset_class).value if line.net_asset_class else None
                ),
                restriction_description=line.restriction_description,
                department_id=line.department_id,
                campaign_id=line.campaign_id,
                memo=line.memo,
                created_by=created_by,
            )
            for line_number, line in enumerate(lines, start=1)
        ]

    def _stamp_posted(self, entry: JournalEntry, approver: str) -> None:
        now = self.clock.now()
        entry.status = JournalEntryStatus.POSTED.value
        entry.approved_by = approver
        entry.approved_at = now
        entry.posted_at = now

    def _log_posted(self, entry: JournalEntry) -> None:
        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "approved_by": entry.approved_by,
            },
        )

    # Draft maintenance

    def update_draft_entry(
        self,
        organization_id: int,
        entry_id: UUID,
        actor: str,
        lines: Sequence[LineInput] | None = None,
        **header_changes,
    ) -> JournalEntryView:
        """
        Edit a DRAFT entry's header and/or replace its lines.

        Header fields that may change: entry_date, entry_type, description,
        reference, memo.  The entry number and period assignment stay
        fixed, so a new entry_date must fall inside the same period.

        Raises:
            EntryNotDraftError: entry is posted.
            ValidationError: unknown field, or any create-time rule broken.
            ImmutablePeriodError: the entry's period has closed.
        """
        illegal = sorted(set(header_changes) - _UPDATABLE_HEADER_FIELDS)
        if illegal:
            raise ValidationError(f"Entry fields cannot be updated: {', '.join(illegal)}")

        entry = self._get_entry_orm(organization_id, entry_id, for_update=True)
        if entry.status != JournalEntryStatus.DRAFT.value:
            raise EntryNotDraftError(str(entry.id), entry.status)

        period = self._periods.lock_period(organization_id, entry.accounting_period_id)
        new_date = header_changes.get("entry_date", entry.entry_date)
        if not period.contains_date(new_date):
            raise ValidationError(
                f"Entry date {new_date} is outside period '{period.period_name}'"
            )
        if "description" in header_changes and not (header_changes["description"] or "").strip():
            raise ValidationError("Entry description is required")
        if "entry_type" in header_changes:
            header_changes["entry_type"] = EntryType(header_changes["entry_type"]).value

        if lines is not None:
            total = self._validate_lines(lines)
            self._validate_accounts(organization_id, lines)
            entry.lines.clear()
            # Old line numbers must be gone before the new ones are inserted
            self.session.flush()
            entry.lines = self._build_lines(lines, entry.created_by)
            entry.total_debit_amount = total
            entry.total_credit_amount = total

        for field_name, value in header_changes.items():
            setattr(entry, field_name, value)
        entry.updated_by = actor
        self.session.flush()

        logger.info(
            "journal_entry_updated",
            extra={
                "entry_id": str(entry.id),
                "fields": sorted(header_changes),
                "lines_replaced": lines is not None,
                "actor_id": actor,
            },
        )
        return JournalEntryView.from_model(entry)

    # Post

    def post_entry(self, organization_id: int, entry_id: UUID, approver: str) -> JournalEntryView:
        """
        Move a DRAFT entry to POSTED.

        Postconditions:
            - approved_by = approver; approved_at and posted_at from the clock.

        Raises:
            EntryNotFoundError: unknown entry.
            EntryNotDraftError: entry already posted.
            ImmutablePeriodError: the entry's period has closed since creation.
        """
        entry = self._get_entry_orm(organization_id, entry_id, for_update=True)
        if entry.status != JournalEntryStatus.DRAFT.value:
            logger.warning(
                "journal_entry_post_rejected",
                extra={"entry_id": str(entry.id), "status": entry.status},
            )
            raise EntryNotDraftError(str(entry.id), entry.status)

        self._periods.lock_period(organization_id, entry.accounting_period_id)

        self._stamp_posted(entry, approver)
        entry.updated_by = approver
        self.session.flush()
        self._log_posted(entry)
        return JournalEntryView.from_model(entry)

    # Reverse

    def reverse_entry(
        self,
        organization_id: int,
        entry_id: UUID,
        actor: str,
        reason: str,
    ) -> ReversalResult:
        """
        Reverse a POSTED entry.

        Builds a mirror entry (every line's debit and credit swapped) dated
        today, posts it immediately in the current open period, then stamps
        the original with is_reversed and reversal_entry_id.

        Postconditions:
            - Reversal entry: POSTED, entry_type ADJUSTING, reversal_of_id =
              original id, reference = original entry number, memo = reason.
            - Both entries balanced; original lines untouched.

        Raises:
            EntryNotFoundError: unknown entry.
            EntryNotPostedError: entry is still a draft.
            AlreadyReversedError: entry already reversed, or is itself a
                reversal.
            NoOpenPeriodError / ImmutablePeriodError: no open period today.
        """
        with LogContext.bind(organization_id=organization_id, actor_id=actor, entry_id=entry_id):
            original = self._get_entry_orm(organization_id, entry_id, for_update=True)

            if original.reversal_of_id is not None:
                raise AlreadyReversedError(str(original.id), "reversal entries cannot be reversed")
            if original.status != JournalEntryStatus.POSTED.value:
                raise EntryNotPostedError(str(original.id), original.status)
            if original.is_reversed:
                raise AlreadyReversedError(str(original.id))

            today = self.clock.today()
            period = self._periods.lock_for_posting(organization_id, today)

            mirror_lines = [
                LineInput(
                    account_id=line.account_id,
                    debit_amount=line.credit_amount,
                    credit_amount=line.debit_amount,
                    description=f"Reversal: {line.description or ''}".rstrip(),
                    net_asset_class=line.net_asset_class,
                    restriction_description=line.restriction_description,
                    department_id=line.department_id,
                    campaign_id=line.campaign_id,
                    memo=f"Reversal of JE {original.entry_number}: {reason}",
                )
                for line in original.lines
            ]

            reversal = self._insert_entry(
                organization_id=organization_id,
                period=period,
                entry_date=today,
                entry_type=EntryType.ADJUSTING,
                source_type=SourceType.MANUAL,
                source_id=str(original.id),
                description=f"Reversal of {original.entry_number}",
                reference=original.entry_number,
                memo=reason,
                created_by=actor,
                lines=mirror_lines,
                total=original.total_debit_amount,
                posted_by=actor,
                reversal_of_id=original.id,
            )

            original.is_reversed = True
            original.reversal_entry_id = reversal.id
            original.updated_by = actor
            self.session.flush()

            logger.info(
                "journal_entry_reversed",
                extra={
                    "original_entry_id": str(original.id),
                    "original_entry_number": original.entry_number,
                    "reversal_entry_id": str(reversal.id),
                    "reversal_entry_number": reversal.entry_number,
                    "period_id": str(period.id),
                    "reason": reason,
                },
            )
            return ReversalResult(
                original=JournalEntryView.from_model(original),
                reversal=JournalEntryView.from_model(reversal),
            )

    # Reads

    def _get_entry_orm(
        self, organization_id: int, entry_id: UUID, for_update: bool = False,
    ) -> JournalEntry:
        query = select(JournalEntry).where(
            JournalEntry.id == entry_id,
            JournalEntry.organization_id == organization_id,
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        entry = self.session.execute(query).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def get_entry(self, organization_id: int, entry_id: UUID) -> JournalEntryView:
        """
        Raises:
            EntryNotFoundError: unknown id or another organization's entry.
        """
        return JournalEntryView.from_model(self._get_entry_orm(organization_id, entry_id))
