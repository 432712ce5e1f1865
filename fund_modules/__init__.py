"""
Fund Ledger Modules.

Thin orchestration layers over the ledger kernel:
- donations: automatic posting of completed donations
- reporting: trial balance, statement of activities, statement of
  financial position, statement templates and saved statements

Processing rules (balance, periods, immutability) live in the kernel.
"""
