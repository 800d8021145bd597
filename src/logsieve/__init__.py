from __future__ import annotations

from .abi_events import AbiEventLookup, resolve_topic0s
from .chain import BlockTimeResolver, WindowPlanner, iter_windows
from .clients import RPC, ProviderPool, classify_error
from .core import BlockRange, ChainAccessConfig, ConfigurationError, ErrorClass, EventLog, RpcError
from .matching import LogMatcher
from .scan import fetch_matching_logs, iter_logs_adaptive

__all__ = [
    "AbiEventLookup",
    "resolve_topic0s",
    "BlockTimeResolver",
    "WindowPlanner",
    "iter_windows",
    "RPC",
    "ProviderPool",
    "classify_error",
    "BlockRange",
    "ChainAccessConfig",
    "ConfigurationError",
    "ErrorClass",
    "EventLog",
    "RpcError",
    "LogMatcher",
    "fetch_matching_logs",
    "iter_logs_adaptive",
]
