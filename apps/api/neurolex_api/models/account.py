"""Account and token balance models."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from neurolex_api.db.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """Registered platform user."""

    __tablename__ = "accounts"

    id = Column(String(64), primary_key=True, default=new_id)
    username = Column(String(255), nullable=False, unique=True, index=True)
    # Lowercase 0x address; set once by a verified wallet link
    wallet_address = Column(String(42), nullable=True, unique=True, index=True)
    wallet_linked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    balance = relationship("TokenBalance", back_populates="account", uselist=False, cascade="all, delete-orphan")
    ledger_entries = relationship("LedgerEntry", back_populates="account", cascade="all, delete-orphan")


class TokenBalance(Base):
    """Per-account balances for the three point categories."""

    __tablename__ = "token_balances"
    __table_args__ = (
        CheckConstraint("participation_tokens >= 0", name="ck_token_balances_participation_nonneg"),
        CheckConstraint("support_tokens >= 0", name="ck_token_balances_support_nonneg"),
        CheckConstraint("governance_tokens >= 0", name="ck_token_balances_governance_nonneg"),
    )

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    participation_tokens = Column(Integer, default=0, nullable=False)  # TP
    support_tokens = Column(Integer, default=0, nullable=False)  # TA, purchasable
    governance_tokens = Column(Integer, default=0, nullable=False)  # TGR
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="balance")

    def as_dict(self) -> dict:
        return {
            "TP": self.participation_tokens,
            "TA": self.support_tokens,
            "TGR": self.governance_tokens,
        }
