from __future__ import annotations

import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from logsieve.constants import (
    APPROX_BLOCK_TIME_SECONDS,
    DEFAULT_LOG_INIT_SPAN,
    DEFAULT_LOG_MAX_SPAN,
    DEFAULT_LOG_MIN_SPAN,
    DEFAULT_LOOKBACK_DAYS,
    DEFAULT_QPS,
    DEFAULT_TIMEOUT_MS,
    MIN_QPS,
    SECONDS_PER_DAY,
)
from logsieve.core.exceptions import ConfigurationError

_PLACEHOLDER_RE = re.compile(r"<key>|your[_-]?key|xxxxx", re.IGNORECASE)


def filter_endpoint_urls(raw: str | Sequence[str] | None) -> list[str]:
    """Split a comma-delimited URL list and drop empty or placeholder entries."""
    if not raw:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    urls = [p.strip() for p in parts]
    return [u for u in urls if u and not _PLACEHOLDER_RE.search(u)]


def parse_address_list(raw: str | None) -> tuple[str, ...]:
    """Comma-delimited addresses, lower-cased, order kept, duplicates dropped."""
    if not raw:
        return ()
    out: list[str] = []
    for part in raw.split(","):
        a = part.strip().lower()
        if a and a not in out:
            out.append(a)
    return tuple(out)


@dataclass(frozen=True)
class ChainAccessConfig:
    """Primitive configuration values consumed by the chain-access layer."""

    rpc_urls: tuple[str, ...]
    qps: int = DEFAULT_QPS
    timeout_s: float = DEFAULT_TIMEOUT_MS / 1000
    lookback_days: float = DEFAULT_LOOKBACK_DAYS
    approx_block_interval_s: float = APPROX_BLOCK_TIME_SECONDS
    addresses: tuple[str, ...] = ()
    log_init_span: int = DEFAULT_LOG_INIT_SPAN
    log_min_span: int = DEFAULT_LOG_MIN_SPAN
    log_max_span: int = DEFAULT_LOG_MAX_SPAN

    def __post_init__(self) -> None:
        if not self.rpc_urls:
            raise ConfigurationError("No usable RPC_URLS")
        if self.approx_block_interval_s <= 0:
            raise ConfigurationError("APPROX_BLOCK_TIME_SECONDS must be positive")
        if self.timeout_s <= 0:
            raise ConfigurationError("RPC_TIMEOUT_MS must be positive")
        if not 1 <= self.log_min_span <= self.log_max_span:
            raise ConfigurationError("LOG_MIN_SPAN must be between 1 and LOG_MAX_SPAN")

    @property
    def lookback_seconds(self) -> int:
        return int(self.lookback_days * SECONDS_PER_DAY)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        dotenv_path: str | Path | None = None,
    ) -> ChainAccessConfig:
        """Build a config from environment variables.

        When `environ` is None, a `.env` file is loaded first (variables that are
        already set win) and `os.environ` is read.
        """
        if environ is None:
            load_dotenv(dotenv_path, override=False)
            environ = os.environ

        urls = filter_endpoint_urls(environ.get("RPC_URLS") or environ.get("RPC_URL"))
        return cls(
            rpc_urls=tuple(urls),
            qps=max(MIN_QPS, _int(environ, "RPC_QPS", DEFAULT_QPS)),
            timeout_s=_number(environ, "RPC_TIMEOUT_MS", DEFAULT_TIMEOUT_MS) / 1000,
            lookback_days=_number(environ, "LOOKBACK_DAYS", DEFAULT_LOOKBACK_DAYS),
            approx_block_interval_s=_number(environ, "APPROX_BLOCK_TIME_SECONDS", APPROX_BLOCK_TIME_SECONDS),
            addresses=parse_address_list(environ.get("CONTEXT_ADDRESSES")),
            log_init_span=_int(environ, "LOG_INIT_SPAN", DEFAULT_LOG_INIT_SPAN),
            log_min_span=_int(environ, "LOG_MIN_SPAN", DEFAULT_LOG_MIN_SPAN),
            log_max_span=_int(environ, "LOG_MAX_SPAN", DEFAULT_LOG_MAX_SPAN),
        )


def _number(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = (environ.get(key) or "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from e


def _int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = (environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from e
