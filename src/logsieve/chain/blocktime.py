"""Timestamp → block height resolution by binary search.

Block timestamps are assumed non-decreasing in height (a chain guarantee,
not checked here). Height 0 is never returned.
"""

from __future__ import annotations

import logging
import time

from logsieve.constants import METHOD_NOT_FOUND_CODE
from logsieve.core.exceptions import RpcError
from logsieve.core.interfaces import IChainReader
from logsieve.core.models import parse_quantity

logger = logging.getLogger(__name__)

_MISSING_BLOCK_MARKERS = ("not found", "unknown block")


def is_missing_block(error: RpcError) -> bool:
    """True when the node reports the requested height as absent rather than failing."""
    if error.code == METHOD_NOT_FOUND_CODE:
        return False
    message = error.message.lower()
    return any(m in message for m in _MISSING_BLOCK_MARKERS)


class BlockTimeResolver:
    """Find the earliest block whose timestamp is at or after a target time."""

    def __init__(self, reader: IChainReader) -> None:
        self._reader = reader

    async def block_timestamp(self, height: int) -> int | None:
        """Timestamp of block `height`, None if the node does not have it.

        Some nodes answer `null` for an unknown height, others a JSON-RPC error
        such as `header not found`; both mean the same here.
        """
        try:
            block = await self._reader.get_block(height)
        except RpcError as e:
            if not is_missing_block(e):
                raise
            logger.debug("block %d reported missing: %s", height, e.message)
            return None
        if block is None:
            return None
        return parse_quantity(block["timestamp"])

    async def find_block_at_or_after(self, target_timestamp: int) -> int:
        """Smallest height with timestamp >= `target_timestamp`.

        Degenerates to 1 when the target precedes genesis and to the tip when
        it lies after the tip. A missing block narrows the upper bound, since
        it can only sit at or above the answer. Probes: at most ceil(log2(tip)).
        """
        tip = await self._reader.block_number()
        lo, hi = 1, max(1, tip)
        probes = 0
        while lo < hi:
            mid = lo + (hi - lo) // 2
            ts = await self.block_timestamp(mid)
            probes += 1
            if ts is None or ts >= target_timestamp:
                hi = mid
            else:
                lo = mid + 1
        logger.debug("timestamp %d -> block %d (tip=%d, probes=%d)", target_timestamp, lo, tip, probes)
        return lo

    async def block_for_lookback(self, lookback_seconds: int, *, now: float | None = None) -> int:
        """Earliest block no older than `lookback_seconds` before `now`."""
        if lookback_seconds < 0:
            raise ValueError("lookback_seconds must be >= 0")
        ref = time.time() if now is None else now
        return await self.find_block_at_or_after(int(ref) - int(lookback_seconds))
