"""
Group Ledger - Source Package

A shared-expense ledger: people record what they paid for each other,
the balance engine works out who owes whom, and debts get settled.

DESIGN PRINCIPLES:
1. The balance engine is pure: snapshots in, a fresh ledger out
2. Bad records degrade the ledger, they never crash it
3. Validation happens on the write path, not in the engine
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Group Ledger Team"
