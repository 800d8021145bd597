"""Lightweight JSON-RPC transport for one Ethereum-compatible endpoint.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- `build_payload`: the JSON-RPC 2.0 request envelope

`RPC.send` makes exactly one network attempt. Retrying and failover are the
provider pool's job.
"""

from __future__ import annotations

import itertools
from collections.abc import Sequence
from typing import Any

import httpx

from logsieve.core.exceptions import RpcError

_ids = itertools.count(1)


def build_payload(method: str, params: Sequence[Any], request_id: int | None = None) -> dict[str, Any]:
    """Return a JSON-RPC 2.0 request body."""
    return {
        "jsonrpc": "2.0",
        "id": next(_ids) if request_id is None else request_id,
        "method": method,
        "params": list(params),
    }


class RPC:
    """Minimal async JSON-RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL. May embed an API key; never logged in full.
    timeout_s : float
        Per-request timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    """

    def __init__(self, url: str, *, timeout_s: float = 15, max_connections: int = 16) -> None:
        self.url = url
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
        )

    async def send(self, method: str, params: Sequence[Any]) -> Any:
        """POST one JSON-RPC call and return its `result`.

        Raises
        ------
        httpx.HTTPStatusError
            Non-2xx HTTP status (the status code is part of the message).
        httpx.TimeoutException
            The request exceeded `timeout_s`.
        RpcError
            The endpoint answered with a JSON-RPC error object.
        """
        r = await self.client.post(self.url, json=build_payload(method, params))
        r.raise_for_status()
        data = r.json()
        if "error" in data and data["error"] is not None:
            raise RpcError.from_payload(data["error"])
        return data.get("result")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
