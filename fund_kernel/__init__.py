"""
Fund Kernel - nonprofit fund-accounting ledger

A double-entry ledger engine with:
- Organization-scoped chart of accounts with net-asset classification
- Accounting periods with a terminal open -> closed lifecycle
- Balanced journal entries, posting, and mirror-image reversals
- Append-only persistence enforced at the ORM layer
"""

__version__ = "0.1.0"
