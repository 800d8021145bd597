"""Provider pool: rate-limited JSON-RPC dispatch with rotation and failover.

This module provides:
- `ProviderPool`: dispatches one logical call to one endpoint at a time,
  rotating round-robin and failing over on retryable errors.
- `classify_error`: the retryable/fatal policy, a pure function.
- `redact_url`: endpoint label that is safe to log.

Design notes
------------
- Cursor and throttle state are instance fields; pools never share state.
- Dispatch initiations on one pool are at least `1 / qps` seconds apart.
  The wait is taken under the pool lock, so concurrent callers queue on it.
- Fatal errors are re-raised untouched after a single attempt; retryable
  errors are absorbed until every endpoint has been tried once.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any
from urllib.parse import urlsplit

import httpx

from logsieve.clients.rpc import RPC
from logsieve.constants import DEFAULT_QPS, MIN_QPS, REQUEST_LIMIT_EXCEEDED_CODE, THROTTLE_JITTER
from logsieve.core.config import filter_endpoint_urls
from logsieve.core.exceptions import ConfigurationError, LogsieveError
from logsieve.core.interfaces import IRpcTransport
from logsieve.core.models import ErrorClass, parse_quantity, to_hex_block

logger = logging.getLogger(__name__)

_RETRYABLE_WORDS = ("429", "rate", "limit", "timeout")

Classifier = Callable[[BaseException], ErrorClass]


def _error_code(error: BaseException) -> Any:
    code = getattr(error, "code", None)
    if code is None:
        nested = getattr(error, "error", None)
        if isinstance(nested, Mapping):
            code = nested.get("code")
        elif nested is not None:
            code = getattr(nested, "code", None)
    return code


def classify_error(error: BaseException) -> ErrorClass:
    """Classify a transport failure as retryable (rate limit, timeout) or fatal.

    Matching is text-based because error shapes differ between node vendors.
    A fatal error that happens to mention "limit" or "rate" is misclassified
    as retryable; that gap is accepted.
    """
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return ErrorClass.RETRYABLE
    if isinstance(error, httpx.HTTPStatusError):
        # str(error) embeds the request URL, which may carry an API key
        status = error.response.status_code
        if status == 429:
            return ErrorClass.RETRYABLE
        message = f"{status} {error.response.reason_phrase}".lower()
    else:
        message = str(error).lower()
    if any(word in message for word in _RETRYABLE_WORDS):
        return ErrorClass.RETRYABLE
    if _error_code(error) == REQUEST_LIMIT_EXCEEDED_CODE:
        return ErrorClass.RETRYABLE
    return ErrorClass.FATAL


def redact_url(url: str) -> str:
    """Return `scheme://host` so API keys in paths or queries never reach logs."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.hostname:
        return "<endpoint>"
    return f"{parts.scheme}://{parts.hostname}"


class ProviderPool:
    """Round-robin JSON-RPC dispatcher over interchangeable endpoints.

    Parameters
    ----------
    transports : Iterable[IRpcTransport]
        Endpoints in their configured order. At least one is required.
    qps : int
        Rate budget in requests per second (floor 1).
    classifier : Callable
        Retryable/fatal policy; defaults to `classify_error`.
    clock, sleep, rng
        Time source, timed delay and jitter source. Injectable for tests.
    """

    def __init__(
        self,
        transports: Iterable[IRpcTransport],
        *,
        qps: int = DEFAULT_QPS,
        classifier: Classifier = classify_error,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._transports: tuple[IRpcTransport, ...] = tuple(transports)
        if not self._transports:
            raise ConfigurationError("No usable RPC endpoints")
        self.qps = max(MIN_QPS, int(qps))
        self.gap_s = 1.0 / self.qps
        self._classify = classifier
        self._clock = clock
        self._sleep = sleep
        self._rng = rng

        self._lock = asyncio.Lock()
        self._cursor = 0
        self._last_dispatch: float | None = None

    @classmethod
    def from_urls(
        cls,
        urls: str | Sequence[str],
        *,
        qps: int = DEFAULT_QPS,
        timeout_s: float = 15,
    ) -> ProviderPool:
        """Build a pool with one httpx transport per usable URL."""
        usable = filter_endpoint_urls(urls)
        if not usable:
            raise ConfigurationError("No usable RPC_URLS")
        return cls((RPC(u, timeout_s=timeout_s) for u in usable), qps=qps)

    def __len__(self) -> int:
        return len(self._transports)

    @property
    def cursor(self) -> int:
        """Index of the endpoint the next logical call starts from."""
        return self._cursor

    @property
    def endpoints(self) -> list[str]:
        """Redacted endpoint labels in pool order."""
        return [redact_url(t.url) for t in self._transports]

    async def _throttle(self) -> None:
        async with self._lock:
            if self._last_dispatch is not None:
                wait = self._last_dispatch + self.gap_s - self._clock()
                if wait > 0:
                    await self._sleep(wait + self._rng() * self.gap_s * THROTTLE_JITTER)
            self._last_dispatch = self._clock()

    async def dispatch(self, method: str, params: Sequence[Any] = ()) -> Any:
        """Send one logical JSON-RPC call and return its result.

        Each endpoint is tried at most once, starting from the cursor. On
        success the cursor moves past the endpoint that answered.
        """
        n = len(self._transports)
        start = self._cursor
        last_error: Exception | None = None
        for attempt in range(n):
            idx = (start + attempt) % n
            transport = self._transports[idx]
            await self._throttle()
            try:
                result = await transport.send(method, params)
            except Exception as e:
                if self._classify(e) is ErrorClass.FATAL:
                    logger.debug("%s failed on endpoint %d (%s): %s", method, idx, redact_url(transport.url), type(e).__name__)
                    raise
                logger.warning(
                    "%s: retryable %s on endpoint %d (%s), %d endpoint(s) left",
                    method,
                    type(e).__name__,
                    idx,
                    redact_url(transport.url),
                    n - attempt - 1,
                )
                last_error = e
                continue
            # no await between read and write: atomic for tasks on this loop
            self._cursor = (idx + 1) % n
            return result

        if last_error is None:
            raise LogsieveError(f"{method}: no endpoint to dispatch to")
        raise last_error

    # ---- convenience reads ----

    async def block_number(self) -> int:
        """Current chain tip height."""
        return parse_quantity(await self.dispatch("eth_blockNumber", []))

    async def chain_id(self) -> int:
        return parse_quantity(await self.dispatch("eth_chainId", []))

    async def get_block(self, height: int) -> dict[str, Any] | None:
        """Block header at `height` (no transactions), None if the node lacks it."""
        return await self.dispatch("eth_getBlockByNumber", [to_hex_block(height), False])

    async def get_logs(self, filter_params: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Raw eth_getLogs call; block bounds must already be hex-encoded."""
        return list(await self.dispatch("eth_getLogs", [dict(filter_params)]) or [])

    async def aclose(self) -> None:
        for t in self._transports:
            await t.aclose()

    async def __aenter__(self) -> ProviderPool:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
