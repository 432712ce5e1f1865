"""
Statement service tests against a real ledger.

Verifies:
- Only posted entries count, cut off by date
- Trial balance, activity and position agree with the postings
- Templates drive section layout
- Saved statements are append-only snapshots that stamp their period
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from fund_kernel.db.types import ZERO
from fund_kernel.exceptions import (
    ImmutabilityViolationError,
    InvalidPeriodRangeError,
    StatementNotFoundError,
    ValidationError,
)
from fund_kernel.models.account import AccountType, StatementSection, StatementType
from fund_modules.reporting import (
    GenerationMethod,
    ReportingConfig,
    ReportType,
    SectionLayout,
    StatementLayout,
    StatementService,
    StatementTemplateService,
)
from fund_modules.reporting.orm import GeneratedFinancialStatement


@pytest.fixture
def statement_service(session, deterministic_clock, period_service) -> StatementService:
    return StatementService(
        session, deterministic_clock,
        config=ReportingConfig(entity_name="Food Bank"),
        period_service=period_service,
    )


@pytest.fixture
def january_activity(make_entry):
    """
    Opening net assets of 1000, a 500 gift, 200 of programs on credit,
    a 10 fee, and a draft that must not count.
    """
    make_entry("1000", "3000", "1000.00", entry_date=date(2024, 1, 2), post=True)
    make_entry("1000", "4000", "500.00", entry_date=date(2024, 1, 5), post=True)
    make_entry("5000", "2000", "200.00", entry_date=date(2024, 1, 8), post=True)
    make_entry("6200", "1000", "10.00", entry_date=date(2024, 1, 9), post=True)
    make_entry("5100", "1000", "999.00", entry_date=date(2024, 1, 9))


class TestTrialBalance:

    def test_empty_ledger(self, statement_service, chart, organization_id):
        report = statement_service.get_trial_balance(organization_id)

        assert report.lines == ()
        assert report.is_balanced
        assert report.total_debits == ZERO

    def test_posted_entries_only(self, statement_service, january_activity, organization_id):
        report = statement_service.get_trial_balance(organization_id)

        by_number = {line.account_number: line for line in report.lines}
        assert report.is_balanced
        assert report.total_debits == Decimal("1700.00")
        assert by_number["1000"].debit_balance == Decimal("1490.00")
        assert "5100" not in by_number

    def test_metadata(self, statement_service, january_activity, open_period, organization_id):
        report = statement_service.get_trial_balance(organization_id, date(2024, 1, 31))

        assert report.metadata.report_type == ReportType.TRIAL_BALANCE
        assert report.metadata.organization_name == "Food Bank"
        assert report.metadata.reporting_period == "As of 2024-01-31"
        assert report.metadata.accounting_period_id == open_period.id
        assert report.metadata.generated_at == "2024-01-15T12:00:00+00:00"

    def test_as_of_cutoff(self, statement_service, january_activity, chart, organization_id):
        report = statement_service.get_trial_balance(organization_id, date(2024, 1, 4))

        assert [line.account_number for line in report.lines] == ["1000", "3000"]

    def test_inactive_account_with_postings_listed(
        self, statement_service, account_service, january_activity, chart,
        organization_id, test_actor_id,
    ):
        account_service.deactivate_account(organization_id, chart["6200"].id, test_actor_id)

        report = statement_service.get_trial_balance(organization_id)

        assert "6200" in {line.account_number for line in report.lines}
        assert report.is_balanced


class TestStatementOfActivity:

    def test_for_period(self, statement_service, january_activity, open_period, organization_id):
        activity = statement_service.generate_statement_of_activity(
            organization_id, period_id=open_period.id,
        )

        assert activity.total_revenue == Decimal("500.00")
        assert activity.total_expenses == Decimal("210.00")
        assert activity.change_in_net_assets == Decimal("290.00")
        assert activity.metadata.reporting_period == "2024-01-01 to 2024-01-31"
        assert activity.metadata.accounting_period_id == open_period.id
        assert activity.template_id is None

    def test_window_excludes_earlier_activity(
        self, statement_service, january_activity, organization_id,
    ):
        activity = statement_service.generate_statement_of_activity(
            organization_id, start_date=date(2024, 1, 6), end_date=date(2024, 1, 31),
        )

        assert activity.total_revenue == ZERO
        assert activity.total_expenses == Decimal("210.00")
        assert activity.section("revenue_and_support").lines == ()

    def test_needs_period_or_range(self, statement_service, chart, organization_id):
        with pytest.raises(ValidationError):
            statement_service.generate_statement_of_activity(
                organization_id, start_date=date(2024, 1, 1),
            )

    def test_backwards_range(self, statement_service, chart, organization_id):
        with pytest.raises(InvalidPeriodRangeError):
            statement_service.generate_statement_of_activity(
                organization_id, start_date=date(2024, 2, 1), end_date=date(2024, 1, 1),
            )

    def test_template_layout(
        self, session, deterministic_clock, statement_service, january_activity,
        open_period, organization_id, test_actor_id,
    ):
        layout = StatementLayout(
            StatementType.ACTIVITY, "By Function",
            (
                SectionLayout("support", "Support", 1, (AccountType.REVENUE,)),
                SectionLayout(
                    "programs", "Program Services", 2, (AccountType.EXPENSE,),
                    (StatementSection.PROGRAM_EXPENSES,),
                ),
                SectionLayout(
                    "supporting", "Supporting Services", 3, (AccountType.EXPENSE,),
                    (StatementSection.ADMIN_EXPENSES, StatementSection.FUNDRAISING_EXPENSES),
                ),
            ),
        )
        template = StatementTemplateService(session, deterministic_clock).create_template(
            organization_id, "By Function", StatementType.ACTIVITY, layout,
            test_actor_id, is_default=True,
        )

        activity = statement_service.generate_statement_of_activity(
            organization_id, period_id=open_period.id,
        )

        assert activity.title == "By Function"
        assert activity.template_id == template.id
        assert [s.key for s in activity.sections] == ["support", "programs", "supporting"]
        assert activity.section("programs").subtotal == Decimal("200.00")
        assert activity.section("supporting").subtotal == Decimal("10.00")


class TestStatementOfPosition:

    def test_balanced_with_change_in_net_assets(
        self, statement_service, january_activity, organization_id,
    ):
        position = statement_service.generate_statement_of_position(organization_id)

        assert position.total_assets == Decimal("1490.00")
        assert position.total_liabilities == Decimal("200.00")
        assert position.total_net_assets == Decimal("1290.00")
        assert position.is_balanced

    def test_reversal_keeps_equation(
        self, statement_service, journal_service, make_entry, january_activity,
        organization_id, test_actor_id,
    ):
        gift = make_entry("1000", "4100", "75.00", entry_date=date(2024, 1, 11), post=True)
        journal_service.reverse_entry(organization_id, gift.id, test_actor_id, "bounced")

        position = statement_service.generate_statement_of_position(organization_id)

        assert position.total_assets == Decimal("1490.00")
        assert position.is_balanced

    def test_empty_ledger(self, statement_service, chart, organization_id):
        position = statement_service.generate_statement_of_position(organization_id)

        assert position.is_balanced
        assert all(s.subtotal == ZERO for s in position.sections)


class TestSavedStatements:

    def test_save_stamps_period(
        self, statement_service, period_service, january_activity, open_period,
        organization_id, test_actor_id,
    ):
        activity = statement_service.generate_statement_of_activity(
            organization_id, period_id=open_period.id,
        )

        saved = statement_service.save_generated_statement(organization_id, activity, test_actor_id)
        period = period_service.get_period(organization_id, open_period.id)

        assert saved.statement_type == StatementType.ACTIVITY
        assert saved.accounting_period_id == open_period.id
        assert saved.total_revenue == Decimal("500.00")
        assert saved.total_assets is None
        assert saved.generation_method == GenerationMethod.AUTOMATIC
        assert saved.document["total_revenue"] == "500.00"
        assert period.statement_of_activity_generated
        assert not period.statement_of_position_generated

    def test_snapshot_survives_later_postings(
        self, statement_service, make_entry, january_activity, organization_id, test_actor_id,
    ):
        position = statement_service.generate_statement_of_position(organization_id)
        saved = statement_service.save_generated_statement(
            organization_id, position, test_actor_id,
            generation_method=GenerationMethod.MANUAL, is_public=True,
        )

        make_entry("1000", "4000", "1.00", post=True)
        reloaded = statement_service.get_generated_statement(organization_id, saved.id)

        assert reloaded.total_assets == Decimal("1490.00")
        assert reloaded.is_public
        assert reloaded.generation_method == GenerationMethod.MANUAL

    def test_listed_newest_first(
        self, statement_service, deterministic_clock, january_activity, organization_id, test_actor_id,
    ):
        first = statement_service.save_generated_statement(
            organization_id,
            statement_service.generate_statement_of_position(organization_id),
            test_actor_id,
        )
        deterministic_clock.advance(60)
        second = statement_service.save_generated_statement(
            organization_id,
            statement_service.generate_statement_of_activity(
                organization_id, start_date=date(2024, 1, 1), end_date=date(2024, 1, 15),
            ),
            test_actor_id,
        )

        listed = statement_service.get_generated_statements(organization_id)
        positions = statement_service.get_generated_statements(organization_id, StatementType.POSITION)

        assert [s.id for s in listed] == [second.id, first.id]
        assert [s.id for s in positions] == [first.id]

    def test_filtered_by_fiscal_year(
        self, statement_service, period_service, january_activity, open_period,
        organization_id, test_actor_id,
    ):
        july = period_service.create_period(
            organization_id, "July 2024", 2025,
            date(2024, 7, 1), date(2024, 7, 31), test_actor_id,
        )
        january = statement_service.save_generated_statement(
            organization_id,
            statement_service.generate_statement_of_activity(
                organization_id, period_id=open_period.id,
            ),
            test_actor_id,
        )
        july_position = statement_service.save_generated_statement(
            organization_id,
            statement_service.generate_statement_of_position(organization_id),
            test_actor_id,
            period_id=july.id,
        )
        undated = statement_service.save_generated_statement(
            organization_id,
            statement_service.generate_statement_of_position(organization_id, date(2023, 12, 31)),
            test_actor_id,
        )

        assert (january.fiscal_year, july_position.fiscal_year, undated.fiscal_year) == (
            2024, 2025, 2023,
        )
        assert [s.id for s in statement_service.get_generated_statements(
            organization_id, fiscal_year=2025,
        )] == [july_position.id]
        assert [s.id for s in statement_service.get_generated_statements(
            organization_id, StatementType.ACTIVITY, fiscal_year=2024,
        )] == [january.id]

    def test_other_organization_rejected(
        self, statement_service, january_activity, organization_id, other_organization_id,
        test_actor_id,
    ):
        position = statement_service.generate_statement_of_position(organization_id)

        with pytest.raises(ValidationError):
            statement_service.save_generated_statement(other_organization_id, position, test_actor_id)
        with pytest.raises(StatementNotFoundError):
            statement_service.get_generated_statement(organization_id, uuid4())

    def test_saved_statement_immutable(
        self, session, statement_service, chart, organization_id, test_actor_id,
    ):
        saved = statement_service.save_generated_statement(
            organization_id,
            statement_service.generate_statement_of_position(organization_id),
            test_actor_id,
        )
        row = session.get(GeneratedFinancialStatement, saved.id)

        row.title = "Edited"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
