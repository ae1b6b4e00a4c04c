"""Typed rejections for wallet linkage and token purchases.

Every failure in the verification core is raised as a ``VerificationError``
subclass. Callers read ``reason`` for the machine code, ``str(error)`` for the
user-facing message, and ``retryable`` to decide whether the same claim may be
resubmitted later.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """How a rejection should be handled by the caller."""

    CLIENT_INPUT = "client_input"
    AUTHORIZATION = "authorization"
    TRANSIENT = "transient"
    INTEGRITY = "integrity"
    NOT_FOUND = "not_found"


class RejectionReason(str, Enum):
    """Machine-readable rejection codes."""

    # Wallet linkage
    MALFORMED_ADDRESS = "MALFORMED_ADDRESS"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    MESSAGE_ACCOUNT_MISMATCH = "MESSAGE_ACCOUNT_MISMATCH"
    WALLET_ALREADY_LINKED = "WALLET_ALREADY_LINKED"
    ACCOUNT_ALREADY_LINKED = "ACCOUNT_ALREADY_LINKED"

    # Purchase parameters
    NOT_A_POSITIVE_INTEGER = "NOT_A_POSITIVE_INTEGER"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    ABOVE_MAXIMUM = "ABOVE_MAXIMUM"
    PRICE_MISMATCH = "PRICE_MISMATCH"

    # Transaction verification
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    MALFORMED_HASH = "MALFORMED_HASH"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    NOT_FOUND = "NOT_FOUND"
    NOT_CONFIRMED = "NOT_CONFIRMED"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    RECIPIENT_MISMATCH = "RECIPIENT_MISMATCH"
    SENDER_MISMATCH = "SENDER_MISMATCH"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"

    # Orchestration and ledger
    UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"
    WALLET_NOT_LINKED = "WALLET_NOT_LINKED"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    LEDGER_CONFLICT = "LEDGER_CONFLICT"


_CATEGORIES = {
    RejectionReason.MALFORMED_ADDRESS: ErrorCategory.CLIENT_INPUT,
    RejectionReason.NOT_A_POSITIVE_INTEGER: ErrorCategory.CLIENT_INPUT,
    RejectionReason.BELOW_MINIMUM: ErrorCategory.CLIENT_INPUT,
    RejectionReason.ABOVE_MAXIMUM: ErrorCategory.CLIENT_INPUT,
    RejectionReason.PRICE_MISMATCH: ErrorCategory.CLIENT_INPUT,
    RejectionReason.MALFORMED_HASH: ErrorCategory.CLIENT_INPUT,
    RejectionReason.INSUFFICIENT_BALANCE: ErrorCategory.CLIENT_INPUT,
    RejectionReason.INVALID_SIGNATURE: ErrorCategory.AUTHORIZATION,
    RejectionReason.MESSAGE_ACCOUNT_MISMATCH: ErrorCategory.AUTHORIZATION,
    RejectionReason.WALLET_ALREADY_LINKED: ErrorCategory.AUTHORIZATION,
    RejectionReason.ACCOUNT_ALREADY_LINKED: ErrorCategory.AUTHORIZATION,
    RejectionReason.WALLET_NOT_LINKED: ErrorCategory.AUTHORIZATION,
    RejectionReason.SERVICE_UNAVAILABLE: ErrorCategory.TRANSIENT,
    RejectionReason.NOT_FOUND: ErrorCategory.TRANSIENT,
    RejectionReason.NOT_CONFIRMED: ErrorCategory.TRANSIENT,
    RejectionReason.LEDGER_CONFLICT: ErrorCategory.TRANSIENT,
    RejectionReason.ALREADY_VERIFIED: ErrorCategory.INTEGRITY,
    RejectionReason.EXECUTION_FAILED: ErrorCategory.INTEGRITY,
    RejectionReason.RECIPIENT_MISMATCH: ErrorCategory.INTEGRITY,
    RejectionReason.SENDER_MISMATCH: ErrorCategory.INTEGRITY,
    RejectionReason.AMOUNT_MISMATCH: ErrorCategory.INTEGRITY,
    RejectionReason.DUPLICATE_TRANSACTION: ErrorCategory.INTEGRITY,
    RejectionReason.UNKNOWN_ACCOUNT: ErrorCategory.NOT_FOUND,
}


class VerificationError(Exception):
    """Base class for every typed rejection."""

    reason: RejectionReason

    def __init__(self, reason: RejectionReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self.reason]

    @property
    def retryable(self) -> bool:
        """True when resubmitting the same claim later may succeed."""
        return self.category == ErrorCategory.TRANSIENT

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error_code": self.reason.value,
            "error": self.message,
            "retryable": self.retryable,
        }


class WalletLinkError(VerificationError):
    """Wallet linkage was refused."""


class PurchaseParameterError(VerificationError):
    """Claimed quantity or price violates purchase policy."""


class TransactionVerificationError(VerificationError):
    """The on-chain transaction does not back the claim."""


class PurchaseError(VerificationError):
    """Orchestration-level purchase rejection."""


class LedgerError(VerificationError):
    """A ledger posting could not be applied."""


class ChainUnavailableError(Exception):
    """Raised by chain clients when the node cannot answer in time."""
