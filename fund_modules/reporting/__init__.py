"""
Financial Reporting Module (``fund_modules.reporting``).

Responsibility
--------------
Generates the trial balance, the statement of activities and the statement
of financial position from posted journal lines, manages statement
templates, and stores generated statements as append-only snapshots.

Architecture position
---------------------
**Modules layer**.  Does NOT post journal entries.  All statement
arithmetic lives in the pure functions of ``statements.py``.

Invariants enforced
-------------------
* Statements derive entirely from posted entries; no balance is stored.
* Statement of position: total assets == total liabilities + net assets.
* Saved statements are immutable.

Audit relevance
---------------
Report metadata carries the generation timestamp and reporting window, and
saving a statement for a period stamps that period.
"""

from fund_modules.reporting.config import ReportingConfig
from fund_modules.reporting.layouts import (
    DEFAULT_ACTIVITY_LAYOUT,
    DEFAULT_LAYOUTS,
    DEFAULT_POSITION_LAYOUT,
    SectionLayout,
    StatementLayout,
    layout_from_dict,
    layout_to_dict,
    validate_layout,
)
from fund_modules.reporting.models import (
    GeneratedStatementInfo,
    GenerationMethod,
    ReportMetadata,
    ReportType,
    StatementDocument,
    StatementLineItem,
    StatementOfActivity,
    StatementOfPosition,
    StatementSection,
    StatementTemplateInfo,
    TrialBalanceLineItem,
    TrialBalanceReport,
)
from fund_modules.reporting.service import StatementService
from fund_modules.reporting.statements import render_to_dict
from fund_modules.reporting.templates import StatementTemplateService

__all__ = [
    # Services
    "StatementService",
    "StatementTemplateService",
    # Config
    "ReportingConfig",
    # Layouts
    "SectionLayout",
    "StatementLayout",
    "DEFAULT_ACTIVITY_LAYOUT",
    "DEFAULT_POSITION_LAYOUT",
    "DEFAULT_LAYOUTS",
    "validate_layout",
    "layout_to_dict",
    "layout_from_dict",
    # Models
    "ReportType",
    "GenerationMethod",
    "ReportMetadata",
    "TrialBalanceLineItem",
    "TrialBalanceReport",
    "StatementLineItem",
    "StatementSection",
    "StatementOfActivity",
    "StatementOfPosition",
    "StatementDocument",
    "StatementTemplateInfo",
    "GeneratedStatementInfo",
    # Serialization
    "render_to_dict",
]
