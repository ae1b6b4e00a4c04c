"""On-chain verification of purchase payments."""

import logging
from decimal import Decimal
from typing import Optional

from neurolex_api.blockchain.client import ChainClient
from neurolex_api.blockchain.errors import (
    ChainUnavailableError,
    RejectionReason,
    TransactionVerificationError,
)
from neurolex_api.blockchain.memo import VerifiedTransactionMemo
from neurolex_api.blockchain.types import (
    MalformedChainData,
    VerifiedTransaction,
    is_transaction_hash,
)
from neurolex_api.purchases.policy import PurchasePolicy

logger = logging.getLogger(__name__)


class TransactionVerifier:
    """
    Confirms a claimed transaction pays the expected amount to the expected
    recipient from the expected sender, and executed successfully.

    Checks run cheapest first and stop at the first failure:

    1. chain client configured
    2. hash format
    3. in-process memo of already verified hashes
    4. transaction exists
    5. receipt exists (mined)
    6. receipt status is success
    7. recipient matches
    8. sender matches
    9. value matches within tolerance

    ``chain_client`` may be None when no credentials are configured; every
    verification then fails with SERVICE_UNAVAILABLE.
    """

    def __init__(
        self,
        chain_client: Optional[ChainClient],
        policy: PurchasePolicy,
        memo: Optional[VerifiedTransactionMemo] = None,
    ):
        """Initialize verifier."""
        self.chain_client = chain_client
        self.policy = policy
        self.memo = memo if memo is not None else VerifiedTransactionMemo()

    @property
    def available(self) -> bool:
        return self.chain_client is not None

    def verify(
        self,
        tx_hash: str,
        expected_price: Decimal,
        expected_recipient: str,
        expected_sender: str,
    ) -> VerifiedTransaction:
        """Verify a transaction; raise TransactionVerificationError on any failure."""
        if self.chain_client is None:
            raise TransactionVerificationError(
                RejectionReason.SERVICE_UNAVAILABLE,
                "Blockchain service temporarily unavailable. Please contact the administrator.",
            )

        if not is_transaction_hash(tx_hash):
            raise TransactionVerificationError(
                RejectionReason.MALFORMED_HASH,
                "Invalid transaction hash format",
            )
        tx_hash = tx_hash.lower()

        if tx_hash in self.memo:
            raise TransactionVerificationError(
                RejectionReason.ALREADY_VERIFIED,
                "This transaction has already been processed",
            )

        try:
            tx = self.chain_client.fetch_transaction(tx_hash)
            if tx is not None and tx.hash != tx_hash:
                raise MalformedChainData(f"node answered for {tx.hash}")
        except ChainUnavailableError as e:
            raise TransactionVerificationError(
                RejectionReason.SERVICE_UNAVAILABLE,
                "Could not reach the blockchain node. Please try again later.",
            ) from e
        except MalformedChainData as e:
            logger.warning(f"Unparseable transaction from node: {e}", extra={"tx_hash": tx_hash})
            tx = None

        if tx is None:
            raise TransactionVerificationError(
                RejectionReason.NOT_FOUND,
                "Transaction not found on the blockchain",
            )

        try:
            receipt = self.chain_client.fetch_receipt(tx_hash)
            if receipt is not None and receipt.transaction_hash != tx_hash:
                raise MalformedChainData(f"node answered for {receipt.transaction_hash}")
        except (ChainUnavailableError, MalformedChainData) as e:
            raise TransactionVerificationError(
                RejectionReason.SERVICE_UNAVAILABLE,
                "Could not read the transaction receipt. Please try again later.",
            ) from e

        if receipt is None:
            raise TransactionVerificationError(
                RejectionReason.NOT_CONFIRMED,
                "Transaction not confirmed yet. Please wait a few minutes.",
            )

        if not receipt.succeeded:
            raise TransactionVerificationError(
                RejectionReason.EXECUTION_FAILED,
                "The transaction failed on the blockchain",
            )

        if tx.recipient is None or tx.recipient != expected_recipient.lower():
            raise TransactionVerificationError(
                RejectionReason.RECIPIENT_MISMATCH,
                f"Wrong destination address. Expected {expected_recipient} but got {tx.recipient}",
            )

        if tx.sender != expected_sender.lower():
            raise TransactionVerificationError(
                RejectionReason.SENDER_MISMATCH,
                f"The transaction was not sent from your wallet. Expected {expected_sender} but got {tx.sender}",
            )

        actual_price = tx.value_ether
        if not self.policy.within_tolerance(actual_price, Decimal(expected_price)):
            raise TransactionVerificationError(
                RejectionReason.AMOUNT_MISMATCH,
                f"Wrong amount. Expected {expected_price} ETH but received {actual_price} ETH",
            )

        self.memo.add(tx_hash)
        logger.info(
            "Transaction verified",
            extra={"tx_hash": tx_hash, "sender": tx.sender, "block_number": receipt.block_number},
        )

        return VerifiedTransaction(
            hash=tx_hash,
            sender=tx.sender,
            recipient=tx.recipient,
            value_wei=tx.value_wei,
            value_ether=actual_price,
            block_number=receipt.block_number or tx.block_number,
        )
