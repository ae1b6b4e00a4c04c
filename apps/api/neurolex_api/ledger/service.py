"""Token ledger bookkeeping."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from neurolex_api.blockchain.errors import LedgerError, RejectionReason
from neurolex_api.models import LedgerEntry, TokenBalance, TokenType, TransactionType
from neurolex_api.models.account import new_id

logger = logging.getLogger(__name__)


class LedgerService:
    """Balance mutations paired with immutable ledger entries."""

    def __init__(self, db: Session):
        """Initialize ledger service."""
        self.db = db

    def get_balance(self, account_id: str) -> TokenBalance:
        """Get the balance row for an account, creating an empty one if needed."""
        balance = self.db.query(TokenBalance).filter(TokenBalance.account_id == account_id).first()
        if not balance:
            self.create_balance(account_id)
            balance = self.db.query(TokenBalance).filter(TokenBalance.account_id == account_id).one()
        return balance

    def create_balance(self, account_id: str) -> None:
        """
        Insert an empty balance row unless one already exists.

        Concurrent first postings for an account both reach this point; the
        losing insert is skipped by the database instead of failing the
        transaction on the unique account_id index.
        """
        values = {
            "id": new_id(),
            "account_id": account_id,
            "participation_tokens": 0,
            "support_tokens": 0,
            "governance_tokens": 0,
            "updated_at": datetime.utcnow(),
        }
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql_insert(TokenBalance).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite_insert(TokenBalance).values(**values)
        else:
            self.db.add(TokenBalance(**values))
            self.db.flush()
            return
        self.db.execute(stmt.on_conflict_do_nothing(index_elements=["account_id"]))

    def find_purchase(self, tx_hash: str) -> Optional[LedgerEntry]:
        """Find the purchase entry already credited for a transaction hash."""
        return (
            self.db.query(LedgerEntry)
            .filter(
                LedgerEntry.related_id == tx_hash.lower(),
                LedgerEntry.transaction_type == TransactionType.PURCHASED.value,
            )
            .first()
        )

    def list_entries(self, account_id: str, limit: int = 50) -> list[LedgerEntry]:
        """Ledger entries for an account, newest first."""
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .limit(limit)
            .all()
        )

    def post_entry(
        self,
        account_id: str,
        token_type: TokenType,
        amount: int,
        transaction_type: TransactionType,
        description: str,
        related_id: Optional[str] = None,
    ) -> tuple[LedgerEntry, int]:
        """
        Apply a signed balance change and record it in the ledger.

        The balance update is a single conditional UPDATE, so concurrent
        postings for one account serialize in the database. Debits that would
        make the balance negative update nothing and raise INSUFFICIENT_BALANCE.

        Flushes but does not commit; the caller owns the transaction so the
        balance change and its entry commit or roll back together.
        """
        if amount == 0:
            raise ValueError("Ledger entries must change the balance")

        self.get_balance(account_id)
        column = getattr(TokenBalance, token_type.balance_column)

        query = self.db.query(TokenBalance).filter(TokenBalance.account_id == account_id)
        if amount < 0:
            query = query.filter(column + amount >= 0)
        updated = query.update(
            {column: column + amount, TokenBalance.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
        if updated == 0:
            raise LedgerError(
                RejectionReason.INSUFFICIENT_BALANCE,
                f"Insufficient {token_type.value} balance",
            )

        entry = LedgerEntry(
            account_id=account_id,
            token_type=token_type.value,
            amount=amount,
            transaction_type=transaction_type.value,
            description=description,
            related_id=related_id,
        )
        self.db.add(entry)
        self.db.flush()

        new_balance = (
            self.db.query(column)
            .filter(TokenBalance.account_id == account_id)
            .scalar()
        )
        logger.debug(
            "Ledger entry posted",
            extra={
                "account_id": account_id,
                "token_type": token_type.value,
                "amount": amount,
                "transaction_type": transaction_type.value,
                "related_id": related_id,
            },
        )
        return entry, new_balance
