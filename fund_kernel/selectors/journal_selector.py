"""
Module: fund_kernel.selectors.journal_selector
Responsibility: Read-only query access to journal entries and their lines,
    grouped back into one JournalEntryView per entry.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - Lines inside each view are ordered by line_number ascending.
    - Results never cross organizations.

Failure modes:
    - Returns None or an empty list when nothing matches (never raises on
      absence of data).
"""

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from fund_kernel.domain.dtos import JournalEntryView
from fund_kernel.models.journal import JournalEntry, JournalEntryStatus, SourceType
from fund_kernel.selectors.base import BaseSelector

# Stays well below the SQLite (32766) and PostgreSQL (65535) bind limits
SOURCE_ID_BATCH_SIZE = 500


class JournalSelector(BaseSelector):
    """Selector for journal entry queries."""

    def get_entry(self, organization_id: int, entry_id: UUID) -> JournalEntryView | None:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.id == entry_id,
                JournalEntry.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        return JournalEntryView.from_model(entry) if entry else None

    def get_entries(
        self,
        organization_id: int,
        period_id: UUID | None = None,
        status: JournalEntryStatus | None = None,
        source_type: SourceType | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[JournalEntryView]:
        """
        Entries of one organization, optionally filtered.

        Ordered by entry date, then entry number.
        """
        query = (
            select(JournalEntry)
            .options(selectinload(JournalEntry.lines))
            .where(JournalEntry.organization_id == organization_id)
        )
        if period_id is not None:
            query = query.where(JournalEntry.accounting_period_id == period_id)
        if status is not None:
            query = query.where(JournalEntry.status == JournalEntryStatus(status).value)
        if source_type is not None:
            query = query.where(JournalEntry.source_type == SourceType(source_type).value)
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            query = query.where(JournalEntry.entry_date <= end_date)
        query = query.order_by(JournalEntry.entry_date, JournalEntry.entry_number)

        return [JournalEntryView.from_model(e) for e in self.session.execute(query).scalars()]

    def posted_source_ids(
        self,
        organization_id: int,
        source_type: SourceType,
        source_ids: Iterable[str],
        batch_size: int = SOURCE_ID_BATCH_SIZE,
    ) -> set[str]:
        """
        Which of ``source_ids`` already have a POSTED entry of this source type.

        Ids are looked up in batches so a large feed stays under the
        backend's bound-parameter limit.
        """
        ids = sorted(set(source_ids))
        found: set[str] = set()
        for start in range(0, len(ids), batch_size):
            found.update(
                self.session.execute(
                    select(JournalEntry.source_id).where(
                        JournalEntry.organization_id == organization_id,
                        JournalEntry.source_type == SourceType(source_type).value,
                        JournalEntry.status == JournalEntryStatus.POSTED.value,
                        JournalEntry.source_id.in_(ids[start:start + batch_size]),
                    )
                ).scalars()
            )
        return found
