"""
Pocketbook - Source Package

A personal finance tracker: income and expense transactions, recurring
transactions, and expenses split with friends.

DESIGN PRINCIPLES:
1. The wallet balance always equals the sum of realized transactions
2. Check first, write last: refused operations leave no trace
3. No silent corrections (out-of-range balances are reported, not clamped)
4. Every mutation and every refusal is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocketbook Team"
