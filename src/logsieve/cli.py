import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import TypeVar

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from logsieve.abi_events import AbiEventLookup
from logsieve.chain import BlockTimeResolver, WindowPlanner
from logsieve.clients import ProviderPool
from logsieve.clients.pool import redact_url
from logsieve.constants import DEFAULT_EVENT_NAMES, SECONDS_PER_DAY
from logsieve.core.config import ChainAccessConfig
from logsieve.core.exceptions import LogsieveError
from logsieve.core.models import BlockHeight, BlockRange
from logsieve.matching import LogMatcher
from logsieve.scan import iter_logs_adaptive

console = Console()

T = TypeVar("T")

# httpx logs every request with its full URL at INFO
_URL_LOGGING_LOGGERS = ("httpx", "httpcore")


def _open_pool(config: ChainAccessConfig) -> ProviderPool:
    return ProviderPool.from_urls(list(config.rpc_urls), qps=config.qps, timeout_s=config.timeout_s)


def _error_message(error: Exception, urls: Sequence[str]) -> str:
    """User-facing error text with endpoint URLs reduced to scheme and host."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return f"HTTP {response.status_code} {response.reason_phrase} from {redact_url(str(error.request.url))}"
    message = str(error)
    for url in sorted(urls, key=len, reverse=True):
        message = message.replace(url, redact_url(url))
    return message


def _run(ctx: click.Context, job: Callable[[ChainAccessConfig, ProviderPool], Awaitable[T]]) -> T:
    """Load config, open a pool, run `job`, and map errors to click failures."""

    urls: list[str] = []

    async def main() -> T:
        config = ChainAccessConfig.from_env(dotenv_path=ctx.obj.get("env_file"))
        urls.extend(config.rpc_urls)
        async with _open_pool(config) as pool:
            return await job(config, pool)

    try:
        return asyncio.run(main())
    except (LogsieveError, httpx.HTTPError, ValueError) as e:
        raise click.ClickException(_error_message(e, urls)) from e


@click.group()
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Optional .env file to load")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, env_file: str | None, verbose: bool) -> None:
    """logsieve: chain access for event indexing."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    for name in _URL_LOGGING_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    ctx.obj = {"env_file": env_file}


@cli.command("latest")
@click.pass_context
def latest_cmd(ctx: click.Context) -> None:
    """Print the current chain tip."""

    async def job(config: ChainAccessConfig, pool: ProviderPool) -> int:
        return await pool.block_number()

    console.print(f"[bold]tip[/]: {_run(ctx, job):,}")


@cli.command("find-block")
@click.option("--timestamp", type=int, required=True, help="UNIX seconds")
@click.pass_context
def find_block_cmd(ctx: click.Context, timestamp: int) -> None:
    """Print the earliest block at or after a timestamp."""

    async def job(config: ChainAccessConfig, pool: ProviderPool) -> int:
        return await BlockTimeResolver(pool).find_block_at_or_after(timestamp)

    console.print(f"[bold]block[/]: {_run(ctx, job):,}")


@cli.command("window")
@click.option("--days", type=float, default=None, help="Lookback in days (default: LOOKBACK_DAYS)")
@click.option("--exact/--approx", default=False, show_default=True, help="Binary-search the start block")
@click.pass_context
def window_cmd(ctx: click.Context, days: float | None, exact: bool) -> None:
    """Print the initial scan window."""

    async def job(config: ChainAccessConfig, pool: ProviderPool) -> BlockRange:
        lookback = int((days if days is not None else config.lookback_days) * SECONDS_PER_DAY)
        planner = WindowPlanner(pool)
        if exact:
            return await planner.exact_window(lookback)
        return await planner.initial_window(lookback, config.approx_block_interval_s)

    window = _run(ctx, job)
    console.print(f"[bold]window[/]: {window.from_block:,}-{window.to_block:,} ({window.span():,} blocks)")


@cli.command("logs")
@click.option("--abi", "abi_paths", type=click.Path(exists=True, dir_okay=False, path_type=Path), multiple=True, required=True)
@click.option("--event", "events", multiple=True, help="Event name; repeat to OR (default: all domain events)")
@click.option("--from-block", type=int, default=None, help="Default: start of the initial window")
@click.option("--to-block", type=int, default=None, help="Default: chain tip")
@click.option("--jsonl-out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write accepted logs (NDJSON)")
@click.pass_context
def logs_cmd(
    ctx: click.Context,
    abi_paths: tuple[Path, ...],
    events: tuple[str, ...],
    from_block: int | None,
    to_block: int | None,
    jsonl_out: Path | None,
) -> None:
    """Fetch and re-validate domain logs over a block window with a live progress bar."""

    async def job(config: ChainAccessConfig, pool: ProviderPool) -> int:
        lookup = AbiEventLookup.from_abis(*abi_paths)
        matcher = LogMatcher.from_abi(lookup, list(events) or list(DEFAULT_EVENT_NAMES), config.addresses)

        if from_block is None or to_block is None:
            initial = await WindowPlanner(pool).initial_window(config.lookback_seconds, config.approx_block_interval_s)
            window = BlockRange(
                BlockHeight(from_block if from_block is not None else initial.from_block),
                BlockHeight(to_block if to_block is not None else initial.to_block),
            )
        else:
            window = BlockRange(BlockHeight(from_block), BlockHeight(to_block))

        total = 0
        out = jsonl_out.open("a") if jsonl_out else None
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]collecting logs[/]"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("•"),
            TimeElapsedColumn(),
            TextColumn("→"),
            TimeRemainingColumn(),
            TextColumn(" • {task.description}"),
            console=console,
            transient=False,
            expand=True,
        )
        try:
            with progress:
                task = progress.add_task(description=f"{window.from_block:,}-{window.to_block:,}", total=window.span())
                async for sub, logs in iter_logs_adaptive(
                    pool,
                    matcher,
                    window,
                    init_span=config.log_init_span,
                    min_span=config.log_min_span,
                    max_span=config.log_max_span,
                ):
                    total += len(logs)
                    if out:
                        for log in logs:
                            out.write(json.dumps(log, separators=(",", ":")) + "\n")
                    progress.advance(task, sub.span())
        finally:
            if out:
                out.close()
        return total

    t0 = time.time()
    total_logs = _run(ctx, job)
    console.print(f"[bold]done[/]: {total_logs} logs • {time.time() - t0:.2f}s")
