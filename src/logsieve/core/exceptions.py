from __future__ import annotations

from typing import Any


class LogsieveError(Exception):
    """Base class for errors raised by logsieve itself."""


class ConfigurationError(LogsieveError):
    """Startup configuration is unusable (no endpoints, unresolved events, bad values)."""


class RpcError(LogsieveError):
    """JSON-RPC error object returned by an endpoint.

    The provider's message is kept verbatim so callers retain full diagnostics.
    """

    def __init__(self, code: int | None, message: str, data: Any = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data

    @classmethod
    def from_payload(cls, err: Any) -> RpcError:
        if isinstance(err, dict):
            return cls(err.get("code"), str(err.get("message") or ""), err.get("data"))
        return cls(None, str(err))
