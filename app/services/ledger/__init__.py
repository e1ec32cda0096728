"""
Ledger services package.

- account_ledger: atomic credit/debit primitives and the transaction log
"""

from app.services.ledger.account_ledger import AccountLedger, Balance


__all__ = [
    "AccountLedger",
    "Balance",
]
