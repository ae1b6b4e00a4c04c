"""Chain access abstraction (web3 JSON-RPC)."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

import requests
from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from neurolex_api.blockchain.errors import ChainUnavailableError
from neurolex_api.blockchain.types import ChainReceipt, ChainTransaction
from neurolex_api.settings import Settings, get_settings
from neurolex_api.utils.metrics import chain_lookup_duration, chain_lookups

logger = logging.getLogger(__name__)


class ChainClient(ABC):
    """Read-only access to transactions and receipts on the target chain."""

    @abstractmethod
    def get_transaction(self, tx_hash: str) -> Optional[dict]:
        """Return the raw transaction, or None if the node does not know it."""
        pass

    @abstractmethod
    def get_receipt(self, tx_hash: str) -> Optional[dict]:
        """Return the raw receipt, or None if the transaction is not mined yet."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check the node answers."""
        pass

    def fetch_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
        raw = self.get_transaction(tx_hash)
        return None if raw is None else ChainTransaction.from_node(raw)

    def fetch_receipt(self, tx_hash: str) -> Optional[ChainReceipt]:
        raw = self.get_receipt(tx_hash)
        return None if raw is None else ChainReceipt.from_node(raw)


class Web3ChainClient(ChainClient):
    """JSON-RPC client over HTTP with a request timeout and a cap on in-flight lookups."""

    def __init__(self, rpc_url: str, timeout_seconds: float = 10.0, max_inflight: int = 4):
        """Initialize web3 provider."""
        self.rpc_url = rpc_url
        self.timeout_seconds = timeout_seconds
        self._slots = threading.BoundedSemaphore(max_inflight)
        self._w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout_seconds}))

    def _call(self, method: str, fn, tx_hash: str):
        if not self._slots.acquire(timeout=self.timeout_seconds):
            chain_lookups.labels(method=method, result="saturated").inc()
            raise ChainUnavailableError("Too many concurrent chain lookups")

        started = time.perf_counter()
        try:
            result = fn(tx_hash)
            chain_lookups.labels(method=method, result="found").inc()
            return dict(result)
        except TransactionNotFound:
            chain_lookups.labels(method=method, result="missing").inc()
            return None
        except (requests.exceptions.RequestException, Web3Exception, ValueError) as e:
            chain_lookups.labels(method=method, result="error").inc()
            logger.warning(
                f"Chain lookup {method} failed: {e}",
                exc_info=True,
                extra={"tx_hash": tx_hash},
            )
            raise ChainUnavailableError(f"Chain node error during {method}") from e
        finally:
            chain_lookup_duration.labels(method=method).observe(time.perf_counter() - started)
            self._slots.release()

    def get_transaction(self, tx_hash: str) -> Optional[dict]:
        return self._call("get_transaction", self._w3.eth.get_transaction, tx_hash)

    def get_receipt(self, tx_hash: str) -> Optional[dict]:
        return self._call("get_transaction_receipt", self._w3.eth.get_transaction_receipt, tx_hash)

    def is_connected(self) -> bool:
        try:
            return bool(self._w3.is_connected())
        except Exception as e:
            logger.error(f"Chain connectivity check failed: {e}")
            return False


def build_chain_client(settings: Optional[Settings] = None) -> Optional[ChainClient]:
    """Build the chain client from settings; None when no credentials are configured."""
    settings = settings or get_settings()
    rpc_url = settings.chain_rpc_url_computed
    if not rpc_url:
        logger.warning(
            "No chain RPC credentials configured (CHAIN_RPC_URL / INFURA_API_KEY). "
            "Token purchases are disabled."
        )
        return None

    return Web3ChainClient(
        rpc_url,
        timeout_seconds=settings.chain_request_timeout_seconds,
        max_inflight=settings.chain_max_inflight_requests,
    )
