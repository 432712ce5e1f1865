"""
Pure financial statement transformation functions.

These functions turn chart-of-accounts snapshots and posted ledger totals
into the trial balance and the two nonprofit statements.  ZERO I/O.
ZERO side effects.

All monetary values are Decimal.  All inputs/outputs are frozen dataclasses.

Functions in this module follow the kernel domain purity convention:
- No database access
- No clock access (the caller passes metadata carrying the timestamp)
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from fund_kernel.db.types import ZERO
from fund_kernel.domain.dtos import AccountInfo
from fund_kernel.models.account import (
    AccountType,
    NetAssetClass,
    NormalBalance,
    StatementSection,
    StatementType,
)
from fund_kernel.selectors.ledger_selector import AccountBalance
from fund_modules.reporting.config import ReportingConfig
from fund_modules.reporting.layouts import (
    DEFAULT_ACTIVITY_LAYOUT,
    DEFAULT_POSITION_LAYOUT,
    OTHER_SECTION_KEY,
    OTHER_SECTION_TITLE,
    StatementLayout,
)
from fund_modules.reporting.models import (
    ReportMetadata,
    StatementLineItem,
    StatementOfActivity,
    StatementOfPosition,
    StatementSection as PresentedSection,
    TrialBalanceLineItem,
    TrialBalanceReport,
)

CHANGE_IN_NET_ASSETS_LABEL = "Change in Net Assets"

# Sorts the computed net-asset line after every real account
_SYNTHETIC_ORDER = 10_000

# =========================================================================
# Helpers
# =========================================================================


def compute_natural_balance(
    debit_total: Decimal,
    credit_total: Decimal,
    normal_balance: NormalBalance,
) -> Decimal:
    """
    Compute balance adjusted for normal balance side.

    DEBIT-normal (ASSET, EXPENSE): balance = debit_total - credit_total
    CREDIT-normal (LIABILITY, NET_ASSET, REVENUE): balance = credit_total - debit_total

    Result is positive when the account sits on its normal side.
    """
    if normal_balance == NormalBalance.DEBIT:
        return debit_total - credit_total
    return credit_total - debit_total


def _totals_for(account: AccountInfo, balances: Mapping[UUID, AccountBalance]) -> AccountBalance:
    return balances.get(
        account.id,
        AccountBalance(account_id=account.id, debit_total=ZERO, credit_total=ZERO, line_count=0),
    )


def _natural(account: AccountInfo, balances: Mapping[UUID, AccountBalance]) -> Decimal:
    totals = _totals_for(account, balances)
    return compute_natural_balance(totals.debit_total, totals.credit_total, account.normal_balance)


def presentable_accounts(
    accounts: Iterable[AccountInfo],
    balances: Mapping[UUID, AccountBalance],
    config: ReportingConfig,
) -> list[AccountInfo]:
    """
    Accounts a report may list, ordered by account number.

    Inactive accounts are kept whenever they carry postings, so a
    deactivated account never drops out of the ledger equation.
    """
    kept = [
        a for a in accounts
        if a.is_active or config.include_inactive or a.id in balances
    ]
    return sorted(kept, key=lambda a: a.account_number)


def _sum_natural(
    accounts: Iterable[AccountInfo],
    balances: Mapping[UUID, AccountBalance],
    account_type: AccountType,
) -> Decimal:
    return sum(
        (_natural(a, balances) for a in accounts if a.account_type == account_type),
        ZERO,
    )


def _line_item(account: AccountInfo, amount: Decimal) -> StatementLineItem:
    return StatementLineItem(
        account_id=account.id,
        account_number=account.account_number,
        account_name=account.name,
        account_type=account.account_type,
        amount=amount,
        net_asset_class=account.net_asset_class,
        statement_order=account.statement_order,
    )


def place_in_sections(
    layout: StatementLayout,
    items: Sequence[tuple[AccountType, StatementSection, StatementLineItem]],
) -> tuple[PresentedSection, ...]:
    """
    Group line items into the layout's sections.

    Every layout section is returned, empty or not.  Items no section
    accepts go to a trailing "Other" section, present only when non-empty.
    Lines inside a section are ordered by statement_order, then number.
    """
    ordered = layout.ordered_sections()
    buckets: dict[str, list[StatementLineItem]] = {s.key: [] for s in ordered}
    unplaced: list[StatementLineItem] = []

    for account_type, statement_section, item in items:
        target = next((s for s in ordered if s.accepts(account_type, statement_section)), None)
        if target is None:
            unplaced.append(item)
        else:
            buckets[target.key].append(item)

    def _section(key: str, title: str, order: int, lines: list[StatementLineItem]):
        lines = sorted(lines, key=lambda i: (i.statement_order, i.account_number))
        return PresentedSection(
            key=key,
            title=title,
            order=order,
            lines=tuple(lines),
            subtotal=sum((i.amount for i in lines), ZERO),
        )

    sections = [_section(s.key, s.title, s.order, buckets[s.key]) for s in ordered]
    if unplaced:
        last_order = max((s.order for s in ordered), default=0)
        sections.append(_section(OTHER_SECTION_KEY, OTHER_SECTION_TITLE, last_order + 1, unplaced))
    return tuple(sections)


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def build_trial_balance(
    accounts: Iterable[AccountInfo],
    balances: Mapping[UUID, AccountBalance],
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> TrialBalanceReport:
    """
    Build a trial balance over every presentable account.

    Each account's net balance is placed in the debit or the credit column.
    The report is balanced when the columns agree, which is the same as the
    natural balances of debit-normal accounts summing to those of
    credit-normal accounts.
    """
    items: list[TrialBalanceLineItem] = []
    total_debits = total_credits = ZERO
    debit_normal = credit_normal = ZERO

    for account in presentable_accounts(accounts, balances, config):
        totals = _totals_for(account, balances)
        net = totals.debit_total - totals.credit_total
        natural = compute_natural_balance(
            totals.debit_total, totals.credit_total, account.normal_balance,
        )
        debit_column = net if net > 0 else ZERO
        credit_column = -net if net < 0 else ZERO

        total_debits += debit_column
        total_credits += credit_column
        if account.normal_balance == NormalBalance.DEBIT:
            debit_normal += natural
        else:
            credit_normal += natural

        if natural == ZERO and not config.include_zero_balances:
            continue

        items.append(
            TrialBalanceLineItem(
                account_id=account.id,
                account_number=account.account_number,
                account_name=account.name,
                account_type=account.account_type,
                normal_balance=account.normal_balance,
                debit_total=totals.debit_total,
                credit_total=totals.credit_total,
                natural_balance=natural,
                debit_balance=debit_column,
                credit_balance=credit_column,
            )
        )

    return TrialBalanceReport(
        metadata=metadata,
        lines=tuple(items),
        total_debits=total_debits,
        total_credits=total_credits,
        total_debit_normal=debit_normal,
        total_credit_normal=credit_normal,
        is_balanced=(total_debits == total_credits and debit_normal == credit_normal),
    )


# =========================================================================
# 2. STATEMENT OF ACTIVITY
# =========================================================================


def build_statement_of_activity(
    accounts: Iterable[AccountInfo],
    balances: Mapping[UUID, AccountBalance],
    config: ReportingConfig,
    metadata: ReportMetadata,
    layout: StatementLayout = DEFAULT_ACTIVITY_LAYOUT,
    template_id: UUID | None = None,
) -> StatementOfActivity:
    """
    Build a statement of activities from totals over a date window.

    ``balances`` must cover only the reporting window.  Totals include every
    revenue and expense account; zero-balance lines are only hidden.
    """
    presentable = [
        a for a in presentable_accounts(accounts, balances, config)
        if a.statement_type == StatementType.ACTIVITY
    ]

    total_revenue = _sum_natural(presentable, balances, AccountType.REVENUE)
    total_expenses = _sum_natural(presentable, balances, AccountType.EXPENSE)

    items = []
    for account in presentable:
        amount = _natural(account, balances)
        if amount == ZERO and not config.include_zero_balances:
            continue
        items.append((account.account_type, account.statement_section, _line_item(account, amount)))

    return StatementOfActivity(
        statement_type=StatementType.ACTIVITY,
        title=layout.title,
        metadata=metadata,
        sections=place_in_sections(layout, items),
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        change_in_net_assets=total_revenue - total_expenses,
        template_id=template_id,
    )


# =========================================================================
# 3. STATEMENT OF POSITION
# =========================================================================


def build_statement_of_position(
    accounts: Iterable[AccountInfo],
    balances: Mapping[UUID, AccountBalance],
    config: ReportingConfig,
    metadata: ReportMetadata,
    layout: StatementLayout = DEFAULT_POSITION_LAYOUT,
    template_id: UUID | None = None,
) -> StatementOfPosition:
    """
    Build a statement of financial position from cumulative totals.

    Revenue and expense balances are not yet closed into net assets, so
    their difference is presented as a computed "Change in Net Assets" line
    inside net assets.  That keeps total assets equal to total liabilities
    plus total net assets for any balanced ledger.
    """
    presentable = presentable_accounts(accounts, balances, config)

    change = (
        _sum_natural(presentable, balances, AccountType.REVENUE)
        - _sum_natural(presentable, balances, AccountType.EXPENSE)
    )
    total_assets = _sum_natural(presentable, balances, AccountType.ASSET)
    total_liabilities = _sum_natural(presentable, balances, AccountType.LIABILITY)
    total_net_assets = _sum_natural(presentable, balances, AccountType.NET_ASSET) + change

    items = []
    for account in presentable:
        if account.statement_type != StatementType.POSITION:
            continue
        amount = _natural(account, balances)
        if amount == ZERO and not config.include_zero_balances:
            continue
        items.append((account.account_type, account.statement_section, _line_item(account, amount)))

    if change != ZERO or config.include_zero_balances:
        items.append((
            AccountType.NET_ASSET,
            StatementSection.NET_ASSETS,
            StatementLineItem(
                account_number="",
                account_name=CHANGE_IN_NET_ASSETS_LABEL,
                amount=change,
                account_type=AccountType.NET_ASSET,
                net_asset_class=NetAssetClass.UNRESTRICTED,
                statement_order=_SYNTHETIC_ORDER,
            ),
        ))

    return StatementOfPosition(
        statement_type=StatementType.POSITION,
        title=layout.title,
        metadata=metadata,
        sections=place_in_sections(layout, items),
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_net_assets=total_net_assets,
        change_in_net_assets=change,
        is_balanced=(total_assets == total_liabilities + total_net_assets),
        template_id=template_id,
    )


# =========================================================================
# Serialization
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to plain JSON-safe primitives.

    Handles:
    - Decimal -> str (preserving precision)
    - UUID -> str
    - date -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
