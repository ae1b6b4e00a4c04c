"""Process-wide purchase verification components."""

from functools import lru_cache

from neurolex_api.blockchain.client import build_chain_client
from neurolex_api.blockchain.memo import VerifiedTransactionMemo
from neurolex_api.blockchain.verifier import TransactionVerifier
from neurolex_api.settings import get_settings


@lru_cache()
def get_transaction_verifier() -> TransactionVerifier:
    """Get the shared verifier; the memo lives as long as the process."""
    settings = get_settings()
    memo = VerifiedTransactionMemo(
        max_entries=settings.verified_memo_max_entries,
        ttl_seconds=settings.verified_memo_ttl_seconds,
    )
    return TransactionVerifier(
        chain_client=build_chain_client(settings),
        policy=settings.purchase_policy,
        memo=memo,
    )
