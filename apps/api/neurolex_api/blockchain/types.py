"""Value types for on-chain data at the node boundary.

Node responses arrive as loosely typed mappings. They are parsed into these
types before any check runs; a field that cannot be parsed raises
``MalformedChainData`` so callers fail closed.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Mapping, Optional

from neurolex_api.purchases.policy import PRICE_QUANTUM

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
WEI_PER_ETHER = Decimal(10) ** 18


class MalformedChainData(ValueError):
    """A node response field could not be parsed."""


def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.match(value))


def is_transaction_hash(value: Any) -> bool:
    return isinstance(value, str) and bool(TX_HASH_RE.match(value))


def normalize_address(value: str) -> str:
    return value.lower()


def wei_to_ether(value_wei: int) -> Decimal:
    """Convert wei to ether, rounded to six decimal places."""
    with localcontext() as ctx:
        # uint256 wei plus six decimal places fits in 100 digits
        ctx.prec = 100
        return (Decimal(value_wei) / WEI_PER_ETHER).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def _hex_string(value: Any, field: str) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    raise MalformedChainData(f"{field} is not hex data")


def _address(value: Any, field: str) -> str:
    if not is_address(value):
        raise MalformedChainData(f"{field} is not an address")
    return normalize_address(value)


def _integer(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise MalformedChainData(f"{field} is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith("0x") else int(value)
        except ValueError:
            pass
    raise MalformedChainData(f"{field} is not an integer")


def _optional_integer(value: Any, field: str) -> Optional[int]:
    return None if value is None else _integer(value, field)


@dataclass(frozen=True)
class ChainTransaction:
    """A transaction as recorded on chain. Addresses are lowercase."""

    hash: str
    sender: str
    recipient: Optional[str]
    value_wei: int
    block_number: Optional[int] = None

    @property
    def value_ether(self) -> Decimal:
        return wei_to_ether(self.value_wei)

    @classmethod
    def from_node(cls, raw: Mapping[str, Any]) -> "ChainTransaction":
        try:
            tx_hash = _hex_string(raw["hash"], "hash").lower()
            sender = _address(raw["from"], "from")
            recipient = raw.get("to")
            value = _integer(raw["value"], "value")
            block_number = _optional_integer(raw.get("blockNumber"), "blockNumber")
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedChainData(f"transaction is missing fields: {e}") from e

        if value < 0:
            raise MalformedChainData("value is negative")
        return cls(
            hash=tx_hash,
            sender=sender,
            recipient=None if recipient is None else _address(recipient, "to"),
            value_wei=value,
            block_number=block_number,
        )


@dataclass(frozen=True)
class ChainReceipt:
    """Execution outcome of a mined transaction."""

    transaction_hash: str
    status: int
    block_number: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_node(cls, raw: Mapping[str, Any]) -> "ChainReceipt":
        try:
            return cls(
                transaction_hash=_hex_string(raw["transactionHash"], "transactionHash").lower(),
                status=_integer(raw["status"], "status"),
                block_number=_optional_integer(raw.get("blockNumber"), "blockNumber"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedChainData(f"receipt is missing fields: {e}") from e


@dataclass(frozen=True)
class VerifiedTransaction:
    """A transaction that passed every verification check."""

    hash: str
    sender: str
    recipient: str
    value_wei: int
    value_ether: Decimal
    block_number: Optional[int]
