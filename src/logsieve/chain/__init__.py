"""Block-height arithmetic over a live chain.

This package provides:
- `BlockTimeResolver`: timestamp → earliest block at or after it
- `WindowPlanner`: initial scan windows (approximate or exact)
- `iter_windows`: split a window into fixed-size chunks
"""

from logsieve.chain.blocktime import BlockTimeResolver
from logsieve.chain.window import WindowPlanner, iter_windows

__all__ = [
    "BlockTimeResolver",
    "WindowPlanner",
    "iter_windows",
]
