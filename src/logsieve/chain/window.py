"""Scan window planning.

Two policies are offered, chosen per use case:
- `initial_window`: coarse, one RPC round-trip, uses an approximate block interval.
- `exact_window`: precise timestamp cut-off through `BlockTimeResolver`.
"""

from __future__ import annotations

import math
from collections.abc import Generator

from logsieve.chain.blocktime import BlockTimeResolver
from logsieve.core.interfaces import IChainReader
from logsieve.core.models import BlockHeight, BlockRange


class WindowPlanner:
    def __init__(self, reader: IChainReader, resolver: BlockTimeResolver | None = None) -> None:
        self._reader = reader
        self._resolver = resolver or BlockTimeResolver(reader)

    async def _tip(self) -> int:
        return max(1, await self._reader.block_number())

    async def initial_window(self, lookback_seconds: float, approx_block_interval_seconds: float) -> BlockRange:
        """`[max(1, tip - floor(lookback / interval)), tip]`."""
        if approx_block_interval_seconds <= 0:
            raise ValueError("approx_block_interval_seconds must be positive")
        if lookback_seconds < 0:
            raise ValueError("lookback_seconds must be >= 0")
        tip = await self._tip()
        offset = math.floor(lookback_seconds / approx_block_interval_seconds)
        return BlockRange(BlockHeight(max(1, tip - offset)), BlockHeight(tip))

    async def exact_window(self, lookback_seconds: int, *, now: float | None = None) -> BlockRange:
        """Window starting at the first block no older than `lookback_seconds`."""
        start = await self._resolver.block_for_lookback(lookback_seconds, now=now)
        tip = await self._tip()
        # the tip may have moved (or be lagging on another endpoint) between the two reads
        return BlockRange(BlockHeight(min(start, tip)), BlockHeight(tip))


def iter_windows(block_range: BlockRange, step: int) -> Generator[BlockRange, None, None]:
    """Yield consecutive windows of at most `step` blocks covering `block_range`."""
    if step < 1:
        raise ValueError("step must be >= 1")
    x = block_range.from_block
    while x <= block_range.to_block:
        y = min(block_range.to_block, x + step - 1)
        yield BlockRange(BlockHeight(x), BlockHeight(y))
        x = y + 1
