import pytest

from conftest import FakeClock, FakeTransport
from logsieve.clients.pool import ProviderPool
from logsieve.core.exceptions import RpcError
from logsieve.core.models import BlockRange
from logsieve.matching.matcher import LogMatcher
from logsieve.scan.fetch import fetch_matching_logs, is_range_limited, iter_logs_adaptive

T_A = "0x" + "aa" * 32
T_OTHER = "0x" + "cc" * 32
ADDR = "0x" + "11" * 20
STRANGER = "0x" + "99" * 20


def raw_log(address: str, topic0: str, block: int = 1) -> dict:
    return {"address": address, "topics": [topic0], "data": "0x", "blockNumber": hex(block), "logIndex": "0x0"}


def make_pool(transport: FakeTransport) -> ProviderPool:
    clock = FakeClock()
    return ProviderPool([transport], qps=100, clock=clock, sleep=clock.sleep, rng=lambda: 0.0)


class Sleeps:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.mark.parametrize(
    "error, expected",
    [
        (RpcError(-32005, "query returned more than 10000 results"), True),
        (RpcError(-32000, "eth_getLogs block range too large"), True),
        (RpcError(-32600, "invalid request"), True),
        (RuntimeError("Free tier limited to 10 blocks"), True),
        (RpcError(-32000, "execution reverted"), False),
    ],
)
def test_is_range_limited(error: Exception, expected: bool) -> None:
    assert is_range_limited(error) is expected


@pytest.mark.asyncio
async def test_fetch_revalidates_provider_results() -> None:
    good = raw_log(ADDR, T_A)
    transport = FakeTransport("http://a", [[good, raw_log(STRANGER, T_A), raw_log(ADDR, T_OTHER)]])
    matcher = LogMatcher([T_A], [ADDR])

    logs = await fetch_matching_logs(make_pool(transport), matcher, BlockRange(16, 31))

    assert logs == [good]
    method, params = transport.calls[0]
    assert method == "eth_getLogs"
    assert params == [{"fromBlock": "0x10", "toBlock": "0x1f", "topics": [[T_A]], "address": [ADDR]}]


@pytest.mark.asyncio
async def test_fetch_handles_null_result() -> None:
    transport = FakeTransport("http://a", [None])
    assert await fetch_matching_logs(make_pool(transport), LogMatcher([T_A]), BlockRange(1, 1)) == []


async def collect(gen) -> list:
    return [item async for item in gen]


@pytest.mark.asyncio
async def test_adaptive_span_grows_and_covers_range() -> None:
    transport = FakeTransport("http://a", [[] for _ in range(20)])
    chunks = await collect(
        iter_logs_adaptive(make_pool(transport), LogMatcher([T_A]), BlockRange(1, 30), init_span=4, min_span=1, max_span=100)
    )

    windows = [w for w, _ in chunks]
    assert windows[0] == BlockRange(1, 4)
    assert windows[1] == BlockRange(5, 9)
    assert windows[-1].to_block == 30
    assert all(b.from_block == a.to_block + 1 for a, b in zip(windows, windows[1:]))


@pytest.mark.asyncio
async def test_adaptive_span_shrinks_on_range_limit() -> None:
    transport = FakeTransport(
        "http://a",
        [RpcError(-32000, "eth_getLogs block range too large"), [raw_log(ADDR, T_A, 3)], [], [raw_log(STRANGER, T_OTHER, 25)]],
    )
    sleeps = Sleeps()

    chunks = await collect(
        iter_logs_adaptive(
            make_pool(transport),
            LogMatcher([T_A]),
            BlockRange(1, 30),
            init_span=100,
            min_span=5,
            max_span=1_000,
            sleep=sleeps,
            rng=lambda: 0.5,
        )
    )

    assert [w for w, _ in chunks] == [BlockRange(1, 10), BlockRange(11, 20), BlockRange(21, 30)]
    assert [len(logs) for _, logs in chunks] == [1, 0, 0]
    assert sleeps.delays == [pytest.approx(0.6)]


@pytest.mark.asyncio
async def test_adaptive_halves_span_on_exhausted_rate_limit() -> None:
    transport = FakeTransport("http://a", [RpcError(-32005, "rate limit exceeded"), [], []])
    chunks = await collect(
        iter_logs_adaptive(
            make_pool(transport),
            LogMatcher([T_A]),
            BlockRange(1, 40),
            init_span=40,
            min_span=2,
            max_span=40,
            sleep=Sleeps(),
        )
    )
    assert [w for w, _ in chunks] == [BlockRange(1, 20), BlockRange(21, 40)]


@pytest.mark.asyncio
async def test_adaptive_propagates_fatal_errors() -> None:
    transport = FakeTransport("http://a", [[], RpcError(-32000, "execution reverted")])
    gen = iter_logs_adaptive(make_pool(transport), LogMatcher([T_A]), BlockRange(1, 10), init_span=5, sleep=Sleeps())

    first = await gen.__anext__()
    assert first[0] == BlockRange(1, 5)
    with pytest.raises(RpcError, match="execution reverted"):
        await gen.__anext__()


@pytest.mark.asyncio
async def test_adaptive_gives_up_after_consecutive_failures() -> None:
    transport = FakeTransport("http://a", [RpcError(-32005, "rate limit exceeded") for _ in range(10)])
    sleeps = Sleeps()
    gen = iter_logs_adaptive(
        make_pool(transport), LogMatcher([T_A]), BlockRange(1, 100), init_span=50, max_failures=3, sleep=sleeps
    )

    with pytest.raises(RpcError, match="rate limit"):
        await collect(gen)
    assert len(transport.calls) == 3
    assert len(sleeps.delays) == 2


@pytest.mark.asyncio
async def test_range_limit_shrinks_below_min_span_then_gives_up_at_one_block() -> None:
    refusal = RpcError(-32000, "eth_getLogs block range too large")
    transport = FakeTransport("http://a", [refusal for _ in range(10)])
    sleeps = Sleeps()
    gen = iter_logs_adaptive(
        make_pool(transport), LogMatcher([T_A]), BlockRange(1, 100), init_span=4, min_span=3, max_failures=10, sleep=sleeps
    )

    with pytest.raises(RpcError, match="block range too large"):
        await collect(gen)
    sent = [(int(p[0]["fromBlock"], 16), int(p[0]["toBlock"], 16)) for _, p in transport.calls]
    assert sent == [(1, 4), (1, 2), (1, 1)]
    assert len(sleeps.delays) == 2


@pytest.mark.asyncio
async def test_range_limit_single_block_then_recovers() -> None:
    refusal = RpcError(-32000, "eth_getLogs block range too large")
    transport = FakeTransport("http://a", [refusal, [], []])
    chunks = await collect(
        iter_logs_adaptive(make_pool(transport), LogMatcher([T_A]), BlockRange(1, 3), init_span=2, sleep=Sleeps())
    )

    assert [w for w, _ in chunks] == [BlockRange(1, 1), BlockRange(2, 3)]
