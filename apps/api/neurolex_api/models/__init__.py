"""Database models - import all models here for Alembic discovery."""

from neurolex_api.models.account import Account, TokenBalance
from neurolex_api.models.ledger import LedgerEntry, TokenType, TransactionType

__all__ = [
    "Account",
    "TokenBalance",
    "LedgerEntry",
    "TokenType",
    "TransactionType",
]
