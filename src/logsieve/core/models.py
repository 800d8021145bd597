"""Core value types and records shared by the chain-access layer.

This module defines:
- `Address`, `Topic0`, `BlockHeight`, `Timestamp`: explicit value types.
- `BlockRange`: inclusive scan window, immutable once built.
- `EventLog`: raw log as fetched from RPC, minimally normalized.
- `ErrorClass`: outcome of the retryable/fatal error classifier.

Design notes
------------
- Conversions from JSON-RPC representations (hex quantities, mixed-case
  addresses) happen here, at the edge, through the `parse_*` helpers.
- Block 0 is never part of a scan window; `BlockRange` rejects it.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, NewType

Address = NewType("Address", str)  # 0x-prefixed, lowercase, 20 bytes
Topic0 = NewType("Topic0", str)  # 0x-prefixed, lowercase, 32 bytes
BlockHeight = NewType("BlockHeight", int)
Timestamp = NewType("Timestamp", int)  # UNIX seconds

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")
_TOPIC_RE = re.compile(r"^0x[0-9a-f]{64}$")


class ErrorClass(Enum):
    """Tagged result of the transport error classifier."""

    RETRYABLE = "retryable"
    FATAL = "fatal"


def parse_address(value: str) -> Address:
    """Lower-case and validate a 0x-prefixed 20-byte address."""
    s = str(value).strip().lower()
    if not _ADDRESS_RE.match(s):
        raise ValueError(f"Invalid address: {value!r}")
    return Address(s)


def parse_topic0(value: str) -> Topic0:
    """Lower-case and validate a 0x-prefixed 32-byte topic hash."""
    s = str(value).strip().lower()
    if not _TOPIC_RE.match(s):
        raise ValueError(f"Invalid topic0: {value!r}")
    return Topic0(s)


def parse_quantity(value: str | int) -> int:
    """Decode a JSON-RPC quantity (hex string or int) into an int."""
    if isinstance(value, int):
        return value
    s = str(value).strip().lower()
    if s.startswith("0x"):
        return int(s, 16)
    return int(s)


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(int(x))


# === Block window ===


@dataclass(slots=True, frozen=True)
class BlockRange:
    """Inclusive `[from_block, to_block]` window; both ends are >= 1."""

    from_block: BlockHeight
    to_block: BlockHeight

    def __post_init__(self) -> None:
        if self.from_block < 1 or self.to_block < 1:
            raise ValueError(f"Block range must start at 1 or above: {self.from_block}-{self.to_block}")
        if self.from_block > self.to_block:
            raise ValueError(f"from_block must be <= to_block: {self.from_block}-{self.to_block}")

    def span(self) -> int:
        return self.to_block - self.from_block + 1

    def to_rpc(self) -> dict[str, str]:
        """Hex-encoded bounds, as expected by eth_getLogs."""
        return {"fromBlock": to_hex_block(self.from_block), "toBlock": to_hex_block(self.to_block)}


# === RPC record ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int

    @classmethod
    def from_rpc(cls, rl: Mapping[str, Any]) -> EventLog:
        """Build from one entry of an eth_getLogs result."""
        return cls(
            address=str(rl.get("address") or "").lower(),
            topics=tuple(str(t).lower() for t in rl.get("topics") or ()),
            data_hex=str(rl.get("data") or "0x"),
            block_number=parse_quantity(rl["blockNumber"]),
            tx_hash=str(rl.get("transactionHash") or "").lower(),
            log_index=parse_quantity(rl["logIndex"]),
        )
