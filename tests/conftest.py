from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Any
from unittest.mock import AsyncMock

import pytest


class FakeClock:
    """Manual monotonic clock; `sleep` advances it instead of waiting."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


class FakeTransport:
    """Scripted endpoint: each call pops the next outcome (value or exception)."""

    def __init__(self, url: str, outcomes: Sequence[Any] = (), *, clock: Callable[[], float] | None = None) -> None:
        self.url = url
        self._outcomes = list(outcomes)
        self._clock = clock
        self.calls: list[tuple[str, list[Any]]] = []
        self.sent_at: list[float] = []
        self.closed = False

    async def send(self, method: str, params: Sequence[Any]) -> Any:
        self.calls.append((method, list(params)))
        if self._clock is not None:
            self.sent_at.append(self._clock())
        outcome = self._outcomes.pop(0) if self._outcomes else "0x1"
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


class FakeChain:
    """Static chain reader with per-height timestamps; counts block probes."""

    def __init__(self, timestamps: dict[int, int], tip: int, missing_from: int | None = None) -> None:
        self.timestamps = timestamps
        self.tip = tip
        self.missing_from = missing_from
        self.probes: list[int] = []

    async def block_number(self) -> int:
        return self.tip

    async def get_block(self, height: int) -> dict[str, Any] | None:
        self.probes.append(height)
        if self.missing_from is not None and height >= self.missing_from:
            return None
        if height not in self.timestamps:
            return None
        return {"number": hex(height), "timestamp": hex(self.timestamps[height])}


def linear_chain(tip: int, genesis_ts: int = 1_000, step: int = 2) -> FakeChain:
    return FakeChain({h: genesis_ts + step * h for h in range(tip + 1)}, tip)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_reader():
    reader = AsyncMock()
    reader.block_number = AsyncMock(return_value=1_000_000)
    reader.get_block = AsyncMock(return_value=None)
    return reader
