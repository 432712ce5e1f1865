"""
Module: fund_kernel.db.types
Responsibility: Column types and helpers for financial-grade amounts.
    Centralizes precision so that every model and service
    uses identical money semantics.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in the ledger.  Amounts are Decimal in Python and
      integer minor units (cents) in the database, so SUM() is exact on
      PostgreSQL and SQLite alike.
    - Amounts are never rounded; values with more than two fractional digits
      are rejected at the edge.
    - MoneyAmount refuses to bind a value with sub-cent precision instead of
      silently rounding it.
    - No amount exceeds MAX_AMOUNT, so every stored value fits a signed
      64-bit count of cents with room left for column totals.

Failure modes:
    - ValueError from MoneyAmount.process_bind_param on sub-cent values
      or values beyond MAX_AMOUNT.

Audit relevance:
    Every monetary column in every model uses MoneyAmount, so stored amounts
    have identical precision system-wide and totals reconcile to the cent.
"""

from decimal import Decimal

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

MONEY_DECIMAL_PLACES = 2
ZERO = Decimal("0.00")
MAX_AMOUNT = Decimal("999999999999.99")

_MINOR_UNITS = Decimal(10) ** MONEY_DECIMAL_PLACES
_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)


class MoneyAmount(TypeDecorator):
    """
    Decimal amount stored as a BigInteger count of minor units.

    Contract:
        Binds a Decimal (or int) as ``amount * 100`` and loads it back as a
        Decimal quantized to two places.  Aggregates such as ``func.sum``
        inherit this type, so summed results come back as Decimal too.

    Guarantees:
        - Exact storage: no binary floating point on any backend.
        - Values with more than two fractional digits, or larger than
          MAX_AMOUNT, are rejected.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = Decimal(value)
        if abs(amount) > MAX_AMOUNT:
            raise ValueError(f"Amount {value} exceeds {MAX_AMOUNT}")
        if amount != amount.quantize(_QUANTUM):
            raise ValueError(f"Amount {value} has sub-cent precision")
        return int(amount * _MINOR_UNITS)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(value) / _MINOR_UNITS).quantize(_QUANTUM)


def has_cent_precision(value: Decimal) -> bool:
    """True when ``value`` (at most MAX_AMOUNT) has at most two fractional digits."""
    return value == value.quantize(_QUANTUM)
