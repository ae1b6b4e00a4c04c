"""Token ledger models."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship

from neurolex_api.db.base import Base


class TokenType(str, Enum):
    """Point categories."""

    PARTICIPATION = "TP"
    SUPPORT = "TA"
    GOVERNANCE = "TGR"

    @property
    def balance_column(self) -> str:
        return {
            TokenType.PARTICIPATION: "participation_tokens",
            TokenType.SUPPORT: "support_tokens",
            TokenType.GOVERNANCE: "governance_tokens",
        }[self]


class TransactionType(str, Enum):
    """Why a balance changed."""

    EARNED_PARTICIPATION = "earned_participation"
    EARNED_REWARD = "earned_reward"
    PURCHASED = "purchased"
    SPENT_SUPPORT = "spent_support"
    SPENT_GOVERNANCE = "spent_governance"
    TRANSFERRED = "transferred"


class LedgerEntry(Base):
    """Append-only audit record of a balance change."""

    __tablename__ = "ledger_entries"
    __table_args__ = (
        # One purchase credit per on-chain transaction hash
        Index(
            "uq_ledger_entries_purchase_reference",
            "related_id",
            unique=True,
            postgresql_where=text("transaction_type = 'purchased'"),
            sqlite_where=text("transaction_type = 'purchased'"),
        ),
    )

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    token_type = Column(String(8), nullable=False)  # TP, TA, TGR
    amount = Column(Integer, nullable=False)  # positive credited, negative debited
    transaction_type = Column(String(32), nullable=False, index=True)
    description = Column(Text, nullable=False)
    related_id = Column(String(255), nullable=True, index=True)  # tx hash, proposal id, etc.
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    account = relationship("Account", back_populates="ledger_entries")

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "token_type": self.token_type,
            "amount": self.amount,
            "transaction_type": self.transaction_type,
            "description": self.description,
            "related_id": self.related_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
