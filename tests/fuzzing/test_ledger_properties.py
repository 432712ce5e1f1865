"""
Hypothesis-based ledger property tests.

Properties:
- Any balanced set of lines posts, and the stored entry stays balanced
- Any off-balance set of lines is rejected with nothing persisted
- Reversing a posted entry restores every account balance
- For any balanced ledger the trial balance and the statement of position
  balance, and the position's change in net assets equals the activity's

The database tests reuse one seeded organization across examples, so every
assertion is about the example's own entry or a before/after delta.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from fund_kernel.domain.dtos import AccountInfo, EntryHeader, LineInput
from fund_kernel.exceptions import UnbalancedEntryError
from fund_kernel.models.account import (
    NORMAL_BALANCE_BY_TYPE,
    STATEMENT_TYPE_BY_TYPE,
    AccountType,
    StatementSection,
)
from fund_kernel.models.journal import JournalEntryStatus
from fund_kernel.selectors.ledger_selector import AccountBalance
from fund_modules.reporting import ReportingConfig, ReportMetadata, ReportType
from fund_modules.reporting.statements import (
    build_statement_of_activity,
    build_statement_of_position,
    build_trial_balance,
)

CHART_NUMBERS = ["1000", "1100", "2000", "3000", "4000", "4200", "5000", "6000", "6200"]

DB_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)


def _cents(value: int) -> Decimal:
    return (Decimal(value) / 100).quantize(Decimal("0.01"))


@composite
def split_amounts(draw, max_parts: int = 4):
    """A positive total in cents and a random split of it into parts."""
    total = draw(st.integers(min_value=2, max_value=99_999_999_99))
    cuts = draw(
        st.lists(
            st.integers(min_value=1, max_value=total - 1),
            max_size=max_parts - 1,
            unique=True,
        )
    )
    bounds = [0, *sorted(cuts), total]
    return [bounds[i + 1] - bounds[i] for i in range(len(bounds) - 1)]


@composite
def balanced_lines(draw):
    """(account number, debit cents, credit cents) triples that balance."""
    debits = draw(split_amounts())
    credit_total = sum(debits)
    credit_parts = draw(st.integers(min_value=1, max_value=min(3, credit_total)))
    credits = [credit_total // credit_parts] * credit_parts
    credits[-1] += credit_total - sum(credits)
    numbers = st.sampled_from(CHART_NUMBERS)
    return (
        [(draw(numbers), amount, 0) for amount in debits]
        + [(draw(numbers), 0, amount) for amount in credits]
    )


def _line_inputs(chart, triples) -> list[LineInput]:
    return [
        LineInput(
            account_id=chart[number].id,
            debit_amount=_cents(debit),
            credit_amount=_cents(credit),
        )
        for number, debit, credit in triples
    ]


def _header(organization_id, actor) -> EntryHeader:
    return EntryHeader(
        organization_id=organization_id,
        entry_date=date(2024, 1, 10),
        description="Generated entry",
        created_by=actor,
    )


class TestPostingProperties:

    @given(triples=balanced_lines())
    @DB_SETTINGS
    def test_balanced_lines_post(
        self, triples, journal_service, chart, open_period, organization_id, test_actor_id,
    ):
        entry = journal_service.create_entry(
            _header(organization_id, test_actor_id),
            _line_inputs(chart, triples),
            post_immediately=True,
        )

        assert entry.status == JournalEntryStatus.POSTED
        assert entry.is_balanced
        assert entry.total_debit_amount == _cents(sum(d for _, d, _ in triples))
        assert len(entry.lines) == len(triples)

    @given(triples=balanced_lines(), skew=st.integers(min_value=1, max_value=10_000))
    @DB_SETTINGS
    def test_unbalanced_lines_rejected(
        self, triples, skew, journal_service, journal_selector, chart, open_period,
        organization_id, test_actor_id,
    ):
        number, debit, credit = triples[0]
        skewed = [(number, debit + skew, credit), *triples[1:]]
        before = len(journal_selector.get_entries(organization_id))

        with pytest.raises(UnbalancedEntryError):
            journal_service.create_entry(
                _header(organization_id, test_actor_id), _line_inputs(chart, skewed),
            )
        assert len(journal_selector.get_entries(organization_id)) == before

    @given(triples=balanced_lines())
    @DB_SETTINGS
    def test_reversal_restores_balances(
        self, triples, journal_service, ledger_selector, chart, open_period,
        organization_id, test_actor_id,
    ):
        before = ledger_selector.account_balances(organization_id)
        entry = journal_service.create_entry(
            _header(organization_id, test_actor_id),
            _line_inputs(chart, triples),
            post_immediately=True,
        )

        result = journal_service.reverse_entry(organization_id, entry.id, test_actor_id, "fuzz")
        after = ledger_selector.account_balances(organization_id)

        for line, mirror in zip(entry.lines, result.reversal.lines):
            assert mirror.account_id == line.account_id
            assert (mirror.debit_amount, mirror.credit_amount) == (line.credit_amount, line.debit_amount)
        for number in {number for number, _, _ in triples}:
            account_id = chart[number].id
            assert after[account_id].balance == (
                before[account_id].balance if account_id in before else Decimal("0.00")
            )


# =========================================================================
# Pure statement properties
# =========================================================================


def _account(number: str, account_type: AccountType, section: StatementSection) -> AccountInfo:
    return AccountInfo(
        id=uuid4(),
        organization_id=7,
        account_number=number,
        name=f"Account {number}",
        account_type=account_type,
        normal_balance=NORMAL_BALANCE_BY_TYPE[account_type],
        statement_type=STATEMENT_TYPE_BY_TYPE[account_type],
        statement_section=section,
        statement_order=1,
        is_active=True,
    )


PURE_ACCOUNTS = [
    _account("1000", AccountType.ASSET, StatementSection.CURRENT_ASSETS),
    _account("1500", AccountType.ASSET, StatementSection.FIXED_ASSETS),
    _account("2000", AccountType.LIABILITY, StatementSection.CURRENT_LIABILITIES),
    _account("3000", AccountType.NET_ASSET, StatementSection.NET_ASSETS),
    _account("4000", AccountType.REVENUE, StatementSection.REVENUE),
    _account("5000", AccountType.EXPENSE, StatementSection.PROGRAM_EXPENSES),
    _account("6000", AccountType.EXPENSE, StatementSection.ADMIN_EXPENSES),
]

METADATA = ReportMetadata(
    report_type=ReportType.TRIAL_BALANCE,
    organization_id=7,
    organization_name="Fuzz",
    currency="USD",
    reporting_period="As of 2024-01-31",
    as_of_date=date(2024, 1, 31),
    generated_at="2024-01-31T00:00:00+00:00",
)


@composite
def ledgers(draw):
    """Posted totals produced by a random list of balanced transfers."""
    transfers = draw(
        st.lists(
            st.tuples(
                st.sampled_from(PURE_ACCOUNTS),
                st.sampled_from(PURE_ACCOUNTS),
                st.integers(min_value=1, max_value=1_000_000_00),
            ),
            max_size=25,
        )
    )
    debits: dict = {}
    credits: dict = {}
    for debit_account, credit_account, cents in transfers:
        debits[debit_account.id] = debits.get(debit_account.id, 0) + cents
        credits[credit_account.id] = credits.get(credit_account.id, 0) + cents
    return {
        account_id: AccountBalance(
            account_id=account_id,
            debit_total=_cents(debits.get(account_id, 0)),
            credit_total=_cents(credits.get(account_id, 0)),
            line_count=1,
        )
        for account_id in set(debits) | set(credits)
    }


class TestStatementProperties:

    @given(balances=ledgers(), include_zero=st.booleans())
    @settings(max_examples=200)
    def test_trial_balance_balances(self, balances, include_zero):
        config = ReportingConfig(include_zero_balances=include_zero)

        report = build_trial_balance(PURE_ACCOUNTS, balances, config, METADATA)

        assert report.is_balanced
        assert report.total_debit_normal == report.total_credit_normal

    @given(balances=ledgers())
    @settings(max_examples=200)
    def test_position_equation_and_change(self, balances):
        config = ReportingConfig()

        position = build_statement_of_position(PURE_ACCOUNTS, balances, config, METADATA)
        activity = build_statement_of_activity(PURE_ACCOUNTS, balances, config, METADATA)

        assert position.is_balanced
        assert position.total_assets == position.total_liabilities + position.total_net_assets
        assert position.change_in_net_assets == activity.change_in_net_assets
        assert sum((s.subtotal for s in position.sections), Decimal("0.00")) == (
            position.total_assets + position.total_liabilities + position.total_net_assets
        )
