"""Pytest configuration and fixtures."""

import os

# Settings are cached on first use; pin the test environment before any import
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CHAIN_RPC_URL"] = ""
os.environ["INFURA_API_KEY"] = ""

from decimal import Decimal
from typing import Optional

import pytest
from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from neurolex_api.blockchain.client import ChainClient
from neurolex_api.blockchain.memo import VerifiedTransactionMemo
from neurolex_api.blockchain.verifier import TransactionVerifier
from neurolex_api.db.base import Base
from neurolex_api.models import Account, TokenBalance
from neurolex_api.purchases.policy import PurchasePolicy

PLATFORM_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"
TX_HASH = "0x" + "ab" * 32
WEI_PER_ETHER = 10**18

# Use test database URL from environment or default to SQLite in-memory
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


@pytest.fixture(scope="function")
def db():
    """
    Create a test database session.

    For integration tests, use TEST_DATABASE_URL environment variable
    to point to a real PostgreSQL instance.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        # SQLite in-memory for fast unit tests
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def policy() -> PurchasePolicy:
    """Default purchase policy: 0.001 ETH per TA, 10 to 10000 TA."""
    return PurchasePolicy(
        unit_price=Decimal("0.001"),
        min_purchase=10,
        max_purchase=10000,
        tolerance=Decimal("0.0001"),
        receiving_address=PLATFORM_ADDRESS,
    )


@pytest.fixture
def wallet():
    """A fresh local signing key."""
    return EthAccount.create()


@pytest.fixture
def other_wallet():
    """A second signing key, distinct from ``wallet``."""
    return EthAccount.create()


def sign_text(local_account, message: str) -> str:
    """personal_sign a message and return the 0x-prefixed signature."""
    signed = local_account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture
def account(db: Session) -> Account:
    """An account without a linked wallet."""
    account = Account(id="account-1", username="alice")
    db.add(account)
    db.add(TokenBalance(account_id=account.id))
    db.commit()
    return account


@pytest.fixture
def linked_account(db: Session, wallet) -> Account:
    """An account whose wallet is already linked."""
    account = Account(id="account-2", username="bob", wallet_address=wallet.address.lower())
    db.add(account)
    db.add(TokenBalance(account_id=account.id))
    db.commit()
    return account


class FakeChainClient(ChainClient):
    """In-memory chain keyed by transaction hash, counting every lookup."""

    def __init__(self):
        self.transactions: dict[str, dict] = {}
        self.receipts: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.error: Optional[Exception] = None

    def add_payment(
        self,
        tx_hash: str,
        sender: str,
        recipient: Optional[str],
        value_wei: int,
        status: Optional[int] = 1,
    ):
        self.transactions[tx_hash.lower()] = {
            "hash": tx_hash,
            "from": sender,
            "to": recipient,
            "value": value_wei,
            "blockNumber": 4200000,
        }
        if status is not None:
            self.receipts[tx_hash.lower()] = {
                "transactionHash": tx_hash,
                "status": status,
                "blockNumber": 4200000,
            }

    def get_transaction(self, tx_hash: str) -> Optional[dict]:
        self.calls.append(("get_transaction", tx_hash))
        if self.error:
            raise self.error
        return self.transactions.get(tx_hash.lower())

    def get_receipt(self, tx_hash: str) -> Optional[dict]:
        self.calls.append(("get_receipt", tx_hash))
        if self.error:
            raise self.error
        return self.receipts.get(tx_hash.lower())

    def is_connected(self) -> bool:
        return self.error is None


@pytest.fixture
def chain() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def verifier(chain: FakeChainClient, policy: PurchasePolicy) -> TransactionVerifier:
    return TransactionVerifier(chain, policy, memo=VerifiedTransactionMemo())
