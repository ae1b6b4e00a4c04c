"""Seed data for development and testing."""

from sqlalchemy.orm import Session

from neurolex_api.ledger.service import LedgerService
from neurolex_api.models import Account, TokenType, TransactionType

DEMO_ACCOUNTS = ("demo", "test")
WELCOME_PARTICIPATION_TOKENS = 100


def seed_accounts(db: Session) -> list[Account]:
    """Seed demo accounts with an empty balance and a welcome grant of TP."""
    ledger = LedgerService(db)
    accounts = []
    for username in DEMO_ACCOUNTS:
        account = db.query(Account).filter(Account.username == username).first()
        if account:
            print(f"✓ Account already exists: {username} (ID: {account.id})")
            accounts.append(account)
            continue

        account = Account(username=username)
        db.add(account)
        db.flush()
        ledger.post_entry(
            account_id=account.id,
            token_type=TokenType.PARTICIPATION,
            amount=WELCOME_PARTICIPATION_TOKENS,
            transaction_type=TransactionType.EARNED_PARTICIPATION,
            description="Welcome grant",
        )
        db.commit()
        print(f"✓ Created account: {username} (ID: {account.id})")
        accounts.append(account)
    return accounts


def seed_all(db: Session) -> list[Account]:
    """Seed all initial data."""
    return seed_accounts(db)
