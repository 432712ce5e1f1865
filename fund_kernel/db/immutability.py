"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Posted ledger records must be tamper-proof: a posted entry is corrected by a
reversal that leaves a visible trail, never by editing history.  These
listeners catch modifications made through SQLAlchemy before any SQL reaches
the database:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                       | When Immutable              | Permitted change
-----------------------------|-----------------------------|------------------------------
JournalEntry                 | After status = posted       | is_reversed False->True,
                             |                             | reversal_entry_id None->id
JournalLine                  | When parent entry is posted | none
AccountingPeriod             | After status = closed       | statement generation stamps
Account                      | Always (structural fields)  | name, description, placement,
                             | Never deleted               | is_active
GeneratedFinancialStatement  | Always (from creation)      | none

updated_at/updated_by are audit metadata and may always change.

===============================================================================
USAGE
===============================================================================

    from fund_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup, after models import

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from enum import Enum

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from fund_kernel.exceptions import ImmutabilityViolationError
from fund_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by"})

_PERIOD_STATEMENT_FIELDS = frozenset({
    "statement_of_activity_generated",
    "statement_of_position_generated",
    "statements_generated_at",
    "statements_generated_by",
})

_ACCOUNT_STRUCTURAL_FIELDS = (
    "organization_id",
    "account_number",
    "account_type",
    "normal_balance",
)


def _block(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _status_value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def _status_before_update(target) -> str:
    """Status value as it was in the database before this flush."""
    history = get_history(target, "status")
    if history.deleted:
        return _status_value(history.deleted[0])
    return _status_value(target.status)


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _is_reversal_stamp(target, field: str) -> bool:
    """Only the one-way reversal stamp may touch a posted entry."""
    history = get_history(target, field)
    old = history.deleted[0] if history.deleted else None
    new = history.added[0] if history.added else None
    if field == "is_reversed":
        return not old and new is True
    if field == "reversal_entry_id":
        return old is None and new is not None
    return False


def _check_journal_entry_immutability(mapper, connection, target):
    """
    Prevent updates to posted journal entries.

    DRAFT -> POSTED is allowed (that IS the posting).  Once the entry was
    posted before this flush, only the reversal stamp may change.
    """
    if _status_before_update(target) != "posted":
        return

    for field in _changed_fields(target):
        if field in ("is_reversed", "reversal_entry_id") and _is_reversal_stamp(target, field):
            continue
        _block(
            "JournalEntry", target, "UPDATE",
            f"Cannot modify field '{field}' on posted journal entry",
            field=field,
        )


def _check_journal_entry_delete(mapper, connection, target):
    if _status_value(target.status) == "posted":
        _block("JournalEntry", target, "DELETE", "Posted journal entries cannot be deleted")


def _check_journal_line_immutability(mapper, connection, target):
    if target.entry is not None and _status_before_update(target.entry) == "posted":
        _block(
            "JournalLine", target, "UPDATE",
            "Journal lines cannot be modified after parent entry is posted",
        )


def _check_journal_line_delete(mapper, connection, target):
    if target.entry is not None and _status_before_update(target.entry) == "posted":
        _block(
            "JournalLine", target, "DELETE",
            "Journal lines cannot be deleted after parent entry is posted",
        )


def _check_period_immutability(mapper, connection, target):
    """
    Closed periods are frozen.  The close itself (open -> closed) passes
    because the period was open before this flush.
    """
    if _status_before_update(target) != "closed":
        return

    for field in _changed_fields(target):
        if field in _PERIOD_STATEMENT_FIELDS:
            continue
        _block(
            "AccountingPeriod", target, "UPDATE",
            f"Cannot modify field '{field}' on closed period",
            field=field,
        )


def _check_period_delete(mapper, connection, target):
    if _status_value(target.status) == "closed":
        _block("AccountingPeriod", target, "DELETE", "Closed periods cannot be deleted")


def _check_account_structural_immutability(mapper, connection, target):
    for field in _ACCOUNT_STRUCTURAL_FIELDS:
        if get_history(target, field).has_changes():
            _block(
                "Account", target, "UPDATE",
                f"Account field '{field}' is fixed at creation",
                field=field,
            )


def _check_account_delete(mapper, connection, target):
    _block("Account", target, "DELETE", "Accounts are deactivated, never deleted")


def _check_generated_statement_immutability(mapper, connection, target):
    _block(
        "GeneratedFinancialStatement", target, "UPDATE",
        "Generated statements are append-only",
    )


def _check_generated_statement_delete(mapper, connection, target):
    _block(
        "GeneratedFinancialStatement", target, "DELETE",
        "Generated statements are append-only",
    )


def _listeners():
    from fund_kernel.models.account import Account
    from fund_kernel.models.accounting_period import AccountingPeriod
    from fund_kernel.models.journal import JournalEntry, JournalLine
    from fund_modules.reporting.orm import GeneratedFinancialStatement

    return (
        (JournalEntry, "before_update", _check_journal_entry_immutability),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_update", _check_journal_line_immutability),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (AccountingPeriod, "before_update", _check_period_immutability),
        (AccountingPeriod, "before_delete", _check_period_delete),
        (Account, "before_update", _check_account_structural_immutability),
        (Account, "before_delete", _check_account_delete),
        (GeneratedFinancialStatement, "before_update", _check_generated_statement_immutability),
        (GeneratedFinancialStatement, "before_delete", _check_generated_statement_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners (idempotent).

    Call this after all models are imported but before any database
    operations begin.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
