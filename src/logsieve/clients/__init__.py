"""JSON-RPC transports and the provider pool.

This package provides:
- `RPC`: single-endpoint async JSON-RPC transport (httpx)
- `ProviderPool`: throttled round-robin dispatch with failover
- `classify_error`: retryable/fatal error policy
"""

from logsieve.clients.pool import ProviderPool, classify_error, redact_url
from logsieve.clients.rpc import RPC

__all__ = [
    "ProviderPool",
    "RPC",
    "classify_error",
    "redact_url",
]
