"""
Payments Ledger - Source Package

Account directory, authentication and double-entry ledger core
for a small mobile payments demo.

DESIGN PRINCIPLES:
1. The sender of a transfer is always the authenticated account
2. A transfer is recorded completely or not at all
3. Balances are a cached sum of the transaction history
4. Persistence failures are surfaced, never swallowed
5. Storage and notification backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Payments Ledger Team"
