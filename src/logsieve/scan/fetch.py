"""One scan step: filter → eth_getLogs → re-validate.

This module provides:
- `fetch_matching_logs`: a single eth_getLogs call over one window
- `iter_logs_adaptive`: walk a window in sub-ranges whose span adapts to
  provider range limits and rate limits

Every returned log is re-checked with `LogMatcher.accept`; provider-side
filtering is never trusted.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from logsieve.clients.pool import ProviderPool, classify_error
from logsieve.constants import (
    DEFAULT_LOG_INIT_SPAN,
    DEFAULT_LOG_MAX_SPAN,
    DEFAULT_LOG_MIN_SPAN,
    INVALID_REQUEST_CODE,
    LIMITED_RANGE_SPAN_CAP,
)
from logsieve.core.models import BlockHeight, BlockRange, ErrorClass
from logsieve.matching.matcher import LogMatcher

logger = logging.getLogger(__name__)

_RANGE_LIMIT_MARKERS = ("free tier", "block range", "result set too large", "more than", "exceed")
MAX_CONSECUTIVE_FAILURES = 6


def is_range_limited(error: BaseException) -> bool:
    """True when the provider refused the query because the block span is too wide."""
    message = str(error).lower()
    if any(m in message for m in _RANGE_LIMIT_MARKERS):
        return True
    return getattr(error, "code", None) == INVALID_REQUEST_CODE


async def fetch_matching_logs(pool: ProviderPool, matcher: LogMatcher, block_range: BlockRange) -> list[dict[str, Any]]:
    """Raw logs in `block_range` that the matcher accepts, in provider order."""
    params = matcher.build_filter_params(block_range.from_block, block_range.to_block)
    params.update(block_range.to_rpc())
    raw = await pool.get_logs(params)
    kept = matcher.select(raw)
    if len(kept) != len(raw):
        logger.debug(
            "dropped %d/%d logs outside the filter in %d-%d",
            len(raw) - len(kept),
            len(raw),
            block_range.from_block,
            block_range.to_block,
        )
    return kept


async def iter_logs_adaptive(
    pool: ProviderPool,
    matcher: LogMatcher,
    block_range: BlockRange,
    *,
    init_span: int = DEFAULT_LOG_INIT_SPAN,
    min_span: int = DEFAULT_LOG_MIN_SPAN,
    max_span: int = DEFAULT_LOG_MAX_SPAN,
    max_failures: int = MAX_CONSECUTIVE_FAILURES,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> AsyncIterator[tuple[BlockRange, list[dict[str, Any]]]]:
    """Yield `(sub_range, accepted_logs)` covering `block_range` in order.

    Success grows the span by 25% up to the cap. A range-limit refusal caps the
    span at a small value and halves it, down to a single block; a refusal at
    one block propagates. Retryable errors halve the span no lower than
    `min_span`. Both back off 400-800 ms. Other errors propagate, as does any
    error once `max_failures` consecutive attempts have failed. Blocks are
    never skipped.
    """
    end = block_range.to_block
    cur = block_range.from_block
    span_cap = max(1, max_span)
    span = max(1, min(init_span, span_cap))
    failures = 0

    while cur <= end:
        window = BlockRange(BlockHeight(cur), BlockHeight(min(cur + span - 1, end)))
        try:
            logs = await fetch_matching_logs(pool, matcher, window)
        except Exception as e:
            limited = is_range_limited(e)
            if not limited and classify_error(e) is ErrorClass.FATAL:
                raise
            if limited and window.span() == 1:
                raise
            failures += 1
            if failures >= max_failures:
                raise
            if limited:
                span_cap = min(span_cap, LIMITED_RANGE_SPAN_CAP)
                lower = 1
            else:
                lower = max(1, min(min_span, span_cap))
            span = max(lower, min(span // 2, span_cap))
            logger.info(
                "eth_getLogs %d-%d refused (%s), retrying with span %d",
                window.from_block,
                window.to_block,
                "range limit" if limited else "rate limit/timeout",
                span,
            )
            await sleep(0.4 + rng() * 0.4)
            continue

        failures = 0
        yield window, logs
        cur = window.to_block + 1
        span = min(max(span + 1, int(span * 1.25)), span_cap)
