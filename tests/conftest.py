"""
Pytest fixtures for the fund ledger test suite.

Provides:
- Structured logging at DEBUG and a captured_logs fixture
- A fresh in-memory SQLite database per test with immutability listeners
- Kernel service fixtures wired to a DeterministicClock
- Organization 7 with the default chart seeded and January 2024 open

SQLite runs with a StaticPool and explicit BEGIN so SAVEPOINTs behave as
they do on PostgreSQL.
"""

import json
import logging
from collections.abc import Callable
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO

import pytest

from fund_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from fund_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from fund_kernel.domain.clock import DeterministicClock
from fund_kernel.domain.dtos import AccountInfo, EntryHeader, JournalEntryView, LineInput, PeriodInfo
from fund_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from fund_kernel.selectors.journal_selector import JournalSelector
from fund_kernel.selectors.ledger_selector import LedgerSelector
from fund_kernel.services.account_service import AccountService
from fund_kernel.services.journal_service import JournalService
from fund_kernel.services.period_service import PeriodService

TEST_ORG_ID = 7
OTHER_ORG_ID = 8
TEST_ACTOR_ID = "user-test-1"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture fund_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, journal_service):
            journal_service.create_entry(...)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fund_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """A fresh in-memory database with every table created."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    register_immutability_listeners()
    yield engine
    unregister_immutability_listeners()
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine):
    """Session for one test; rolled back afterwards."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


# =============================================================================
# Services and collaborators
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 1, 15, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def test_actor_id() -> str:
    return TEST_ACTOR_ID


@pytest.fixture
def organization_id() -> int:
    return TEST_ORG_ID


@pytest.fixture
def other_organization_id() -> int:
    return OTHER_ORG_ID


@pytest.fixture
def account_service(session, deterministic_clock) -> AccountService:
    return AccountService(session, deterministic_clock)


@pytest.fixture
def period_service(session, deterministic_clock) -> PeriodService:
    return PeriodService(session, deterministic_clock)


@pytest.fixture
def journal_service(session, deterministic_clock, period_service) -> JournalService:
    return JournalService(session, deterministic_clock, period_service=period_service)


@pytest.fixture
def journal_selector(session) -> JournalSelector:
    return JournalSelector(session)


@pytest.fixture
def ledger_selector(session) -> LedgerSelector:
    return LedgerSelector(session)


# =============================================================================
# Seeded organization
# =============================================================================


@pytest.fixture
def chart(account_service, organization_id, test_actor_id) -> dict[str, AccountInfo]:
    """Default chart for organization 7, keyed by account number."""
    account_service.seed_default_chart(organization_id, "charity", test_actor_id)
    return {a.account_number: a for a in account_service.get_accounts(organization_id)}


@pytest.fixture
def open_period(period_service, organization_id, test_actor_id) -> PeriodInfo:
    """January 2024, open.  The test clock's today falls inside it."""
    return period_service.create_period(
        organization_id,
        "January 2024",
        2024,
        date(2024, 1, 1),
        date(2024, 1, 31),
        test_actor_id,
    )


@pytest.fixture
def make_entry(
    journal_service, chart, open_period, organization_id, test_actor_id,
) -> Callable[..., JournalEntryView]:
    """
    Create a two-line entry between two chart accounts.

    Usage::

        entry = make_entry("5000", "1000", "250.00", post=True)
    """

    def _make(
        debit_number: str = "5000",
        credit_number: str = "1000",
        amount: str | Decimal = "100.00",
        entry_date: date = date(2024, 1, 10),
        post: bool = False,
        description: str = "Test entry",
    ) -> JournalEntryView:
        header = EntryHeader(
            organization_id=organization_id,
            entry_date=entry_date,
            description=description,
            created_by=test_actor_id,
        )
        lines = [
            LineInput.debit(chart[debit_number].id, amount, "debit side"),
            LineInput.credit(chart[credit_number].id, amount, "credit side"),
        ]
        return journal_service.create_entry(header, lines, post_immediately=post)

    return _make
