"""In-process memo of transaction hashes already verified."""

import threading
import time
from collections import OrderedDict
from typing import Callable


class VerifiedTransactionMemo:
    """
    Bounded, time-limited set of verified transaction hashes.

    This is a fast-path duplicate filter only. It is lost on restart and is not
    shared between processes; the ledger's unique index on purchase references
    is what actually prevents double crediting.
    """

    def __init__(
        self,
        max_entries: int = 10000,
        ttl_seconds: float = 86400,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, float] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def __contains__(self, tx_hash: str) -> bool:
        key = tx_hash.lower()
        with self._lock:
            expires_at = self._entries.get(key)
            if expires_at is None:
                return False
            if expires_at <= self._clock():
                del self._entries[key]
                return False
            self._entries.move_to_end(key)
            return True

    def add(self, tx_hash: str) -> None:
        key = tx_hash.lower()
        with self._lock:
            self._entries[key] = self._clock() + self.ttl_seconds
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def discard(self, tx_hash: str) -> None:
        with self._lock:
            self._entries.pop(tx_hash.lower(), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [key for key, expires_at in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
