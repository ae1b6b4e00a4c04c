"""Token purchase orchestration.

A purchase claim moves through

    received -> parameters validated -> account resolved -> wallet confirmed
    -> chain verified -> replay checked -> committed

and any failing step ends it with a typed rejection. There is no retry loop
here; a rejected claim is resubmitted by the client.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neurolex_api.blockchain.errors import (
    PurchaseError,
    RejectionReason,
    TransactionVerificationError,
    VerificationError,
)
from neurolex_api.blockchain.verifier import TransactionVerifier
from neurolex_api.ledger.service import LedgerService
from neurolex_api.models import Account, TokenType, TransactionType
from neurolex_api.purchases.validator import validate_purchase_params
from neurolex_api.utils.metrics import purchase_attempts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseClaim:
    """Client assertion that a transaction paid for a number of TA units."""

    account_id: str
    desired_units: int
    claimed_price: str
    transaction_hash: str


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of a committed purchase."""

    account_id: str
    credited_amount: int
    new_balance: int
    transaction_hash: str
    ledger_entry_id: str
    price: Decimal


class PurchaseOrchestrator:
    """Sequences validation, chain verification, replay checks and the commit."""

    def __init__(self, db: Session, verifier: TransactionVerifier):
        """Initialize orchestrator."""
        self.db = db
        self.verifier = verifier
        self.policy = verifier.policy
        self.ledger = LedgerService(db)

    def purchase(self, claim: PurchaseClaim) -> PurchaseResult:
        """Process a purchase claim; raise VerificationError on rejection."""
        try:
            result = self._purchase(claim)
        except VerificationError as e:
            purchase_attempts.labels(outcome=e.reason.value).inc()
            logger.info(
                f"Purchase rejected: {e.reason.value}",
                extra={
                    "account_id": claim.account_id,
                    "tx_hash": claim.transaction_hash,
                    "reason": e.reason.value,
                    "retryable": e.retryable,
                },
            )
            raise

        purchase_attempts.labels(outcome="committed").inc()
        logger.info(
            "Purchase committed",
            extra={
                "account_id": result.account_id,
                "tx_hash": result.transaction_hash,
                "amount": result.credited_amount,
                "new_balance": result.new_balance,
            },
        )
        return result

    def _purchase(self, claim: PurchaseClaim) -> PurchaseResult:
        expected_price = validate_purchase_params(claim.desired_units, claim.claimed_price, self.policy)
        units = int(claim.desired_units)
        logger.debug("Purchase parameters validated", extra={"account_id": claim.account_id})

        account = self.db.query(Account).filter(Account.id == claim.account_id).first()
        if not account:
            raise PurchaseError(RejectionReason.UNKNOWN_ACCOUNT, "Account not found")

        if not account.wallet_address:
            raise PurchaseError(
                RejectionReason.WALLET_NOT_LINKED,
                "Link and verify your wallet before buying tokens",
            )
        logger.debug("Wallet confirmed", extra={"account_id": account.id})

        try:
            verified = self.verifier.verify(
                claim.transaction_hash,
                expected_price=expected_price,
                expected_recipient=self.policy.receiving_address,
                expected_sender=account.wallet_address,
            )
        except TransactionVerificationError as e:
            # A memo hit backed by a ledger credit is reported as the durable duplicate
            if e.reason == RejectionReason.ALREADY_VERIFIED and self.ledger.find_purchase(claim.transaction_hash):
                raise PurchaseError(
                    RejectionReason.DUPLICATE_TRANSACTION,
                    "This transaction has already been credited",
                ) from e
            raise
        tx_hash = verified.hash
        logger.debug("Chain verified", extra={"account_id": account.id, "tx_hash": tx_hash})

        try:
            if self.ledger.find_purchase(tx_hash):
                raise PurchaseError(
                    RejectionReason.DUPLICATE_TRANSACTION,
                    "This transaction has already been credited",
                )

            entry, new_balance = self.ledger.post_entry(
                account_id=account.id,
                token_type=TokenType.SUPPORT,
                amount=units,
                transaction_type=TransactionType.PURCHASED,
                description=f"Purchased {units} TA with {expected_price} ETH",
                related_id=tx_hash,
            )
            entry_id = entry.id
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if self.ledger.find_purchase(tx_hash):
                raise PurchaseError(
                    RejectionReason.DUPLICATE_TRANSACTION,
                    "This transaction has already been credited",
                ) from e
            # Lost a race on some other constraint; nothing was credited
            self.verifier.memo.discard(tx_hash)
            logger.warning(
                f"Purchase commit conflicted: {e.orig}",
                extra={"account_id": account.id, "tx_hash": tx_hash},
            )
            raise PurchaseError(
                RejectionReason.LEDGER_CONFLICT,
                "Your purchase could not be recorded because of a concurrent update. Please try again.",
            ) from e
        except PurchaseError:
            self.db.rollback()
            raise
        except Exception:
            # The memo must not keep a hash whose credit never committed
            self.db.rollback()
            self.verifier.memo.discard(tx_hash)
            raise

        return PurchaseResult(
            account_id=account.id,
            credited_amount=units,
            new_balance=new_balance,
            transaction_hash=tx_hash,
            ledger_entry_id=entry_id,
            price=expected_price,
        )
