"""CLI commands for Neurolex API."""

import json
from datetime import datetime, timedelta

import click

from neurolex_api.auth.session import create_session_token
from neurolex_api.blockchain.client import build_chain_client
from neurolex_api.blockchain.errors import VerificationError
from neurolex_api.blockchain.memo import VerifiedTransactionMemo
from neurolex_api.blockchain.verifier import TransactionVerifier
from neurolex_api.db.seed import seed_all
from neurolex_api.db.session import SessionLocal
from neurolex_api.models import Account
from neurolex_api.settings import get_settings
from neurolex_api.wallets.linkage import build_link_challenge


@click.group()
def cli():
    """Neurolex API CLI."""
    pass


@cli.command()
def seed():
    """Seed initial data."""
    click.echo("Seeding initial data...")
    db = SessionLocal()
    try:
        seed_all(db)
        click.echo("✓ Seed data created.")
    except Exception as e:
        click.echo(f"✗ Error seeding data: {e}", err=True)
        db.rollback()
        raise SystemExit(1)
    finally:
        db.close()


@cli.command("issue-token")
@click.argument("username")
@click.option("--hours", default=None, type=int, help="Token lifetime in hours.")
def issue_token(username, hours):
    """Issue a session token for an existing account."""
    db = SessionLocal()
    try:
        account = db.query(Account).filter(Account.username == username).first()
        if not account:
            click.echo(f"✗ Account not found: {username}", err=True)
            raise SystemExit(1)
        expires_in = timedelta(hours=hours) if hours else None
        click.echo(create_session_token(account.id, expires_in=expires_in))
    finally:
        db.close()


@cli.command("link-challenge")
@click.argument("account_id")
@click.argument("wallet_address")
def link_challenge(account_id, wallet_address):
    """Print the challenge a wallet must sign to be linked to ACCOUNT_ID."""
    settings = get_settings()
    click.echo(build_link_challenge(settings.app_name, account_id, wallet_address, datetime.utcnow()))


@cli.command("check-transaction")
@click.argument("tx_hash")
@click.option("--units", required=True, type=int, help="TA units the transaction should pay for.")
@click.option("--sender", required=True, help="Wallet address the transaction should come from.")
def check_transaction(tx_hash, units, sender):
    """Verify a payment on chain without crediting anything."""
    settings = get_settings()
    policy = settings.purchase_policy
    verifier = TransactionVerifier(build_chain_client(settings), policy, memo=VerifiedTransactionMemo())
    try:
        verified = verifier.verify(
            tx_hash,
            expected_price=policy.quote_price(units),
            expected_recipient=policy.receiving_address,
            expected_sender=sender,
        )
    except VerificationError as e:
        click.echo(json.dumps(e.to_dict(), indent=2), err=True)
        raise SystemExit(1)

    click.echo(
        json.dumps(
            {
                "success": True,
                "transaction_hash": verified.hash,
                "sender": verified.sender,
                "recipient": verified.recipient,
                "value_ether": str(verified.value_ether),
                "block_number": verified.block_number,
                "explorer_url": f"{settings.chain_explorer_url}/tx/{verified.hash}",
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    cli()
