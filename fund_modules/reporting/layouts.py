"""
Statement layouts (``fund_modules.reporting.layouts``).

Responsibility
--------------
Typed description of how a statement groups accounts into ordered
sections, the built-in default layouts, and the JSON round trip used by
``FinancialStatementTemplate.layout``.

Invariants enforced
-------------------
* A layout has at least one section and unique section keys.
* Every account type a section names belongs on the layout's statement
  (activity: revenue/expense; position: asset/liability/net_asset).
* A statement-section filter only names sections of the listed types.

Failure modes
-------------
* ``InvalidTemplateError`` for any violation above or a malformed dict.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fund_kernel.exceptions import InvalidTemplateError
from fund_kernel.models.account import (
    SECTIONS_BY_TYPE,
    STATEMENT_TYPE_BY_TYPE,
    AccountType,
    StatementSection,
    StatementType,
)

OTHER_SECTION_KEY = "other"
OTHER_SECTION_TITLE = "Other"


@dataclass(frozen=True)
class SectionLayout:
    """
    One section of a statement.

    An account lands in the first section (by order) whose account_types
    contain its type and, when statement_sections is non-empty, whose
    statement_sections contain its placement.
    """

    key: str
    title: str
    order: int
    account_types: tuple[AccountType, ...]
    statement_sections: tuple[StatementSection, ...] = ()

    def accepts(self, account_type: AccountType, section: StatementSection) -> bool:
        if account_type not in self.account_types:
            return False
        return not self.statement_sections or section in self.statement_sections


@dataclass(frozen=True)
class StatementLayout:
    statement_type: StatementType
    title: str
    sections: tuple[SectionLayout, ...]

    def ordered_sections(self) -> tuple[SectionLayout, ...]:
        return tuple(sorted(self.sections, key=lambda s: (s.order, s.key)))


DEFAULT_ACTIVITY_LAYOUT = StatementLayout(
    statement_type=StatementType.ACTIVITY,
    title="Statement of Activities",
    sections=(
        SectionLayout(
            key="revenue_and_support",
            title="Revenue and Support",
            order=1,
            account_types=(AccountType.REVENUE,),
        ),
        SectionLayout(
            key="expenses",
            title="Expenses",
            order=2,
            account_types=(AccountType.EXPENSE,),
        ),
    ),
)

DEFAULT_POSITION_LAYOUT = StatementLayout(
    statement_type=StatementType.POSITION,
    title="Statement of Financial Position",
    sections=(
        SectionLayout(key="assets", title="Assets", order=1, account_types=(AccountType.ASSET,)),
        SectionLayout(
            key="liabilities",
            title="Liabilities",
            order=2,
            account_types=(AccountType.LIABILITY,),
        ),
        SectionLayout(
            key="net_assets",
            title="Net Assets",
            order=3,
            account_types=(AccountType.NET_ASSET,),
        ),
    ),
)

DEFAULT_LAYOUTS: dict[StatementType, StatementLayout] = {
    StatementType.ACTIVITY: DEFAULT_ACTIVITY_LAYOUT,
    StatementType.POSITION: DEFAULT_POSITION_LAYOUT,
}


def validate_layout(layout: StatementLayout) -> StatementLayout:
    """
    Check a layout against its statement type.

    Returns:
        The layout unchanged.

    Raises:
        InvalidTemplateError: on any structural problem.
    """
    if not layout.sections:
        raise InvalidTemplateError("a layout needs at least one section")

    keys = [s.key for s in layout.sections]
    if len(set(keys)) != len(keys):
        raise InvalidTemplateError(f"duplicate section keys: {sorted(keys)}")
    if OTHER_SECTION_KEY in keys:
        raise InvalidTemplateError(f"section key {OTHER_SECTION_KEY!r} is reserved")

    for section in layout.sections:
        if not section.key or not section.title:
            raise InvalidTemplateError("sections need a key and a title")
        if not section.account_types:
            raise InvalidTemplateError(f"section {section.key!r} lists no account types")
        for account_type in section.account_types:
            if STATEMENT_TYPE_BY_TYPE[account_type] != layout.statement_type:
                raise InvalidTemplateError(
                    f"section {section.key!r}: {account_type.value} accounts do not "
                    f"appear on the {layout.statement_type.value} statement"
                )
        allowed = frozenset().union(*(SECTIONS_BY_TYPE[t] for t in section.account_types))
        stray = [s.value for s in section.statement_sections if s not in allowed]
        if stray:
            raise InvalidTemplateError(
                f"section {section.key!r}: placements {stray} do not match its account types"
            )
    return layout


def layout_to_dict(layout: StatementLayout) -> dict[str, Any]:
    return {
        "statement_type": layout.statement_type.value,
        "title": layout.title,
        "sections": [
            {
                "key": s.key,
                "title": s.title,
                "order": s.order,
                "account_types": [t.value for t in s.account_types],
                "statement_sections": [x.value for x in s.statement_sections],
            }
            for s in layout.sections
        ],
    }


def layout_from_dict(data: dict[str, Any]) -> StatementLayout:
    """
    Parse and validate a layout document.

    Raises:
        InvalidTemplateError: missing keys, unknown enum values, or a
            structurally invalid layout.
    """
    try:
        layout = StatementLayout(
            statement_type=StatementType(data["statement_type"]),
            title=data["title"],
            sections=tuple(
                SectionLayout(
                    key=s["key"],
                    title=s["title"],
                    order=int(s.get("order", 0)),
                    account_types=tuple(AccountType(t) for t in s["account_types"]),
                    statement_sections=tuple(
                        StatementSection(x) for x in s.get("statement_sections", ())
                    ),
                )
                for s in data["sections"]
            ),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTemplateError(f"malformed layout: {exc}") from exc
    return validate_layout(layout)
