"""
Mali - Personal Debt & Credit Ledger

Tracks informal debts and credits between a user and named
counterparties: running balances, partial payments, currency labels
and an optional AI-written summary of the current position.

DESIGN PRINCIPLES:
1. Money is fixed-point, never binary floating point
2. Fail early, fail visibly (every ledger error is raised)
3. Storage layer is swappable
4. The AI summary is optional and can never break the ledger
"""

__version__ = "1.0.0"
__author__ = "Mali Team"
