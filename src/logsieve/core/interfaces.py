from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# IRpcTransport
# ---------------------------------------------------------------------------

@runtime_checkable
class IRpcTransport(Protocol):
    """
    One JSON-RPC endpoint.

    Domain expectations:
    - `send` performs exactly one network attempt; no retries, no failover.
    - JSON-RPC error payloads are raised (not returned) so the pool can
      classify them.
    - `url` is opaque and may carry credentials; never log it in full.
    """

    url: str

    async def send(self, method: str, params: Sequence[Any]) -> Any:
        """
        Return the `result` member of the JSON-RPC response.

        Implementations:
        - httpx-based `RPC` client
        - In-memory fake chain for testing
        """
        ...

    async def aclose(self) -> None:
        ...


# ---------------------------------------------------------------------------
# IChainReader
# ---------------------------------------------------------------------------

@runtime_checkable
class IChainReader(Protocol):
    """
    Read access needed by the block-time resolver and the window planner.

    `ProviderPool` implements it; tests may provide a static chain.
    """

    async def block_number(self) -> int:
        """Return the current chain tip height."""
        ...

    async def get_block(self, height: int) -> Mapping[str, Any] | None:
        """Return the block header at `height`, or None if the node does not have it."""
        ...


# ---------------------------------------------------------------------------
# IAbiLookup
# ---------------------------------------------------------------------------

@runtime_checkable
class IAbiLookup(Protocol):
    """
    Opaque event-name → topic0 mapping.

    How it is built (ABI files, explorer, hard-coded) is an infrastructure
    concern; the log matcher only asks for topic hashes by name.
    """

    def topic0(self, event_name: str) -> str | None:
        """Return the topic0 hash for `event_name`, or None if unknown."""
        ...
