"""
PayBack Ledger Sync - Source Package

Reconciliation and normalization engine for a shared-expense ledger.
Merges remote and locally cached groups/expenses into one consistent
per-user view and derives settlement state from it.

DESIGN PRINCIPLES:
1. Money always balances: an expense is settled iff every split is
2. Remote sources may fail independently; a cycle never fails as a whole
3. Reconciliation is idempotent and order-independent per entity id
4. Session state is an explicit value, never a global
5. Storage and remote collaborators are swappable
"""

__version__ = "1.0.0"
__author__ = "PayBack Team"
