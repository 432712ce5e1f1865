"""
Typed Exception Hierarchy for the Fund Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to react to ledger failures without parsing messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

    try:
        journal.post_entry(organization_id, entry_id, approver)
    except ImmutablePeriodError as e:
        api_response(code=e.code, period=e.period_name)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FundLedgerError (base)
    |
    +-- ValidationError
    |   +-- UnbalancedEntryError
    |   +-- InvalidAccountError
    |   +-- MalformedLineError
    |   +-- DuplicateAccountNumberError
    |   +-- InvalidPeriodRangeError
    |   +-- PeriodOverlapError
    |   +-- EntryNotDraftError
    |   +-- InvalidTemplateError
    |
    +-- ImmutablePeriodError
    |   +-- PeriodAlreadyClosedError
    |
    +-- NoOpenPeriodError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- PeriodNotFoundError
    |   +-- EntryNotFoundError
    |   +-- TemplateNotFoundError
    |   +-- StatementNotFoundError
    |
    +-- ReversalError
    |   +-- EntryNotPostedError
    |   +-- AlreadyReversedError
    |
    +-- ConfigurationError
    |
    +-- DuplicatePostingError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | UNBALANCED_ENTRY            | Debits != Credits
                | INVALID_ACCOUNT             | Missing, inactive or foreign account
                | MALFORMED_LINE              | Negative, sub-cent, both/neither side
                | DUPLICATE_ACCOUNT_NUMBER    | Account number taken in organization
                | INVALID_PERIOD_RANGE        | start_date after end_date
                | PERIOD_OVERLAP              | Date range conflicts with a period
                | ENTRY_NOT_DRAFT             | Post/update of a non-draft entry
                | INVALID_TEMPLATE            | Statement layout is not usable
----------------|-----------------------------|-----------------------------------------
Period          | IMMUTABLE_PERIOD            | Create/post against a closed period
                | PERIOD_ALREADY_CLOSED       | Close called twice
                | NO_OPEN_PERIOD              | No period covers the requested date
----------------|-----------------------------|-----------------------------------------
Lookup          | ACCOUNT_NOT_FOUND           | Account id unknown to organization
                | PERIOD_NOT_FOUND            | Period id unknown to organization
                | ENTRY_NOT_FOUND             | Entry id unknown to organization
                | TEMPLATE_NOT_FOUND          | Template id unknown
                | STATEMENT_NOT_FOUND         | Generated statement id unknown
----------------|-----------------------------|-----------------------------------------
Reversal        | ENTRY_NOT_POSTED            | Can only reverse posted entries
                | ALREADY_REVERSED            | Entry reversed, or is a reversal
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Default posting account missing
Concurrency     | DUPLICATE_POSTING           | Source fact already has an entry
Immutability    | IMMUTABILITY_VIOLATION      | ORM write to an immutable record

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Every category inherits from FundLedgerError, never from ValueError, so
   domain errors stay separable from programming errors.
2. ``code`` is a class attribute: ``AlreadyReversedError.code`` is readable
   without an instance.
3. Context is stored as attributes; StructuredFormatter copies them into the
   JSON log line as ``exc_<name>`` fields.

===============================================================================
"""


class FundLedgerError(Exception):
    """
    Base exception for all fund ledger errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "FUND_LEDGER_ERROR"


# Validation


class ValidationError(FundLedgerError):
    """Input rejected before anything was persisted."""

    code: str = "VALIDATION_ERROR"


class UnbalancedEntryError(ValidationError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str):
        self.debits = debits
        self.credits = credits
        super().__init__(f"Entry is unbalanced: debits={debits}, credits={credits}")


class InvalidAccountError(ValidationError):
    """A line references an account that cannot receive postings."""

    code: str = "INVALID_ACCOUNT"

    def __init__(self, account_id: str, reason: str):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Invalid account {account_id}: {reason}")


class MalformedLineError(ValidationError):
    """A journal line has an impossible amount combination."""

    code: str = "MALFORMED_LINE"

    def __init__(self, line_number: int | None, reason: str):
        self.line_number = line_number
        self.reason = reason
        if line_number is None:
            super().__init__(f"Malformed entry lines: {reason}")
        else:
            super().__init__(f"Malformed line {line_number}: {reason}")


class DuplicateAccountNumberError(ValidationError):
    """Account number already used within the organization."""

    code: str = "DUPLICATE_ACCOUNT_NUMBER"

    def __init__(self, organization_id: int, account_number: str):
        self.organization_id = organization_id
        self.account_number = account_number
        super().__init__(
            f"Account number {account_number} already exists "
            f"for organization {organization_id}"
        )


class InvalidPeriodRangeError(ValidationError):
    """Period start date falls after its end date."""

    code: str = "INVALID_PERIOD_RANGE"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"start_date ({start_date}) cannot be after end_date ({end_date})"
        )


class PeriodOverlapError(ValidationError):
    """New period date range overlaps an existing period."""

    code: str = "PERIOD_OVERLAP"

    def __init__(
        self,
        new_period_name: str,
        existing_period_name: str,
        overlap_start: str,
        overlap_end: str,
    ):
        self.new_period_name = new_period_name
        self.existing_period_name = existing_period_name
        self.overlap_start = overlap_start
        self.overlap_end = overlap_end
        super().__init__(
            f"Period '{new_period_name}' overlaps with existing period "
            f"'{existing_period_name}' from {overlap_start} to {overlap_end}"
        )


class EntryNotDraftError(ValidationError):
    """Operation requires a draft entry."""

    code: str = "ENTRY_NOT_DRAFT"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(f"Entry {entry_id} is {status}, expected draft")


class InvalidTemplateError(ValidationError):
    """Statement template layout cannot be rendered."""

    code: str = "INVALID_TEMPLATE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid statement template: {reason}")


# Periods


class ImmutablePeriodError(FundLedgerError):
    """Posting or creation targeted a period that is not open."""

    code: str = "IMMUTABLE_PERIOD"

    def __init__(self, period_id: str, period_name: str, status: str = "closed"):
        self.period_id = period_id
        self.period_name = period_name
        self.status = status
        super().__init__(
            f"Accounting period '{period_name}' is {status} and accepts no postings"
        )


class PeriodAlreadyClosedError(ImmutablePeriodError):
    """Period close requested twice."""

    code: str = "PERIOD_ALREADY_CLOSED"


class NoOpenPeriodError(FundLedgerError):
    """No open period covers the requested date."""

    code: str = "NO_OPEN_PERIOD"

    def __init__(self, organization_id: int, requested_date: str):
        self.organization_id = organization_id
        self.requested_date = requested_date
        super().__init__(
            f"No open accounting period found for organization "
            f"{organization_id} on {requested_date}"
        )


# Lookups


class NotFoundError(FundLedgerError):
    """Lookup miss for an organization-scoped record."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class PeriodNotFoundError(NotFoundError):
    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Accounting period not found: {period_id}")


class EntryNotFoundError(NotFoundError):
    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class TemplateNotFoundError(NotFoundError):
    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Statement template not found: {template_id}")


class StatementNotFoundError(NotFoundError):
    code: str = "STATEMENT_NOT_FOUND"

    def __init__(self, statement_id: str):
        self.statement_id = statement_id
        super().__init__(f"Generated statement not found: {statement_id}")


# Reversals


class ReversalError(FundLedgerError):
    """Base exception for reversal errors."""

    code: str = "REVERSAL_ERROR"


class EntryNotPostedError(ReversalError):
    """Cannot reverse an entry that is not posted."""

    code: str = "ENTRY_NOT_POSTED"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(
            f"Cannot reverse entry {entry_id} with status {status}"
        )


class AlreadyReversedError(ReversalError):
    """Entry has already been reversed, or is itself a reversal."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, entry_id: str, reason: str = "entry has already been reversed"):
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Cannot reverse entry {entry_id}: {reason}")


# Configuration


class ConfigurationError(FundLedgerError):
    """Ledger configuration is incomplete for the requested operation."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, missing: tuple[str, ...] = ()):
        self.missing = missing
        super().__init__(message)


# Concurrency


class DuplicatePostingError(FundLedgerError):
    """A journal entry already exists for this source fact."""

    code: str = "DUPLICATE_POSTING"

    def __init__(self, organization_id: int, source_type: str, source_id: str):
        self.organization_id = organization_id
        self.source_type = source_type
        self.source_id = source_id
        super().__init__(
            f"{source_type} {source_id} has already been posted "
            f"for organization {organization_id}"
        )


# Immutability


class ImmutabilityViolationError(FundLedgerError):
    """Attempted modification of an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
