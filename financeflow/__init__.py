"""
FinanceFlow - personal finance ledger.

Wallets, categories and transactions for one user, with balances and
analytics derived on demand from the transaction list.
"""

__version__ = "0.1.0"
