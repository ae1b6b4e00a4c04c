"""Wallet ownership proof via signed challenge messages."""

import logging
from datetime import datetime
from typing import Optional

from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neurolex_api.blockchain.errors import PurchaseError, RejectionReason, WalletLinkError
from neurolex_api.blockchain.types import is_address, normalize_address
from neurolex_api.models import Account
from neurolex_api.utils.metrics import wallet_links

logger = logging.getLogger(__name__)


def build_link_challenge(app_name: str, account_id: str, wallet_address: str, issued_at: datetime) -> str:
    """Challenge text the wallet signs to prove it belongs to ``account_id``."""
    return (
        f"{app_name}\n"
        f"User: {account_id}\n"
        f"Wallet: {wallet_address}\n"
        f"Date: {issued_at.isoformat()}"
    )


def recover_signer(message: str, signature: str) -> Optional[str]:
    """Recover the lowercase address that produced an EIP-191 personal_sign signature."""
    try:
        recovered = EthAccount.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        # eth_account raises several unrelated types for malformed signatures
        logger.debug(f"Signature recovery failed: {e}")
        return None
    return normalize_address(recovered)


def message_names_account(message: str, account_id: str) -> bool:
    """True when a line of the challenge reads exactly ``User: <account_id>``."""
    expected = f"User: {account_id}"
    return any(line.strip() == expected for line in message.splitlines())


class WalletLinkageVerifier:
    """Links a wallet to an account after checking the account controls it."""

    def __init__(self, db: Session):
        """Initialize verifier."""
        self.db = db

    def link(self, account_id: str, wallet_address: str, message: str, signature: str) -> Account:
        """
        Verify the signed challenge and persist the wallet on the account.

        Order: address format, signature recovery, account binding in the
        signed text, account existence, uniqueness across accounts. The unique
        index on accounts.wallet_address closes the race between concurrent
        links of the same address.
        """
        try:
            account = self._link(account_id, wallet_address, message, signature)
        except (WalletLinkError, PurchaseError) as e:
            wallet_links.labels(outcome=e.reason.value).inc()
            logger.info(
                f"Wallet link rejected: {e.reason.value}",
                extra={"account_id": account_id, "reason": e.reason.value},
            )
            raise
        wallet_links.labels(outcome="linked").inc()
        return account

    def _link(self, account_id: str, wallet_address: str, message: str, signature: str) -> Account:
        if not is_address(wallet_address):
            raise WalletLinkError(
                RejectionReason.MALFORMED_ADDRESS,
                "Invalid wallet address format",
            )
        address = normalize_address(wallet_address)

        recovered = recover_signer(message or "", signature or "")
        if recovered is None or recovered != address:
            raise WalletLinkError(
                RejectionReason.INVALID_SIGNATURE,
                "Invalid signature. The wallet could not be verified.",
            )

        if not message_names_account(message, account_id):
            raise WalletLinkError(
                RejectionReason.MESSAGE_ACCOUNT_MISMATCH,
                "The signed message does not belong to this account",
            )

        account = self.db.query(Account).filter(Account.id == account_id).first()
        if not account:
            raise PurchaseError(RejectionReason.UNKNOWN_ACCOUNT, "Account not found")

        if account.wallet_address == address:
            return account
        if account.wallet_address:
            raise WalletLinkError(
                RejectionReason.ACCOUNT_ALREADY_LINKED,
                "This account already has a linked wallet",
            )

        owner = (
            self.db.query(Account.id)
            .filter(Account.wallet_address == address, Account.id != account_id)
            .first()
        )
        if owner:
            raise WalletLinkError(
                RejectionReason.WALLET_ALREADY_LINKED,
                "This wallet is already linked to another account",
            )

        account.wallet_address = address
        account.wallet_linked_at = datetime.utcnow()
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise WalletLinkError(
                RejectionReason.WALLET_ALREADY_LINKED,
                "This wallet is already linked to another account",
            ) from e

        self.db.refresh(account)
        logger.info("Wallet linked", extra={"account_id": account_id, "wallet_address": address})
        return account
