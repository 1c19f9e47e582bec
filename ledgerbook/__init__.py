"""
Ledgerbook - Source Package

A double-entry bookkeeping core: ledgers, vouchers, derived reports
and bank statement reconciliation, backed by in-memory repositories.

DESIGN PRINCIPLES:
1. Every voucher balances before it is stored
2. Balances are derived from the voucher log, never cached
3. Fail early, fail visibly
4. The matcher proposes, a human confirms
5. Every write is auditable
"""

__version__ = "1.0.0"
__author__ = "Ledgerbook Team"
