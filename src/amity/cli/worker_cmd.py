"""CLI command for running a dispatcher.

Usage:
    amity worker
    amity worker --concurrency 64 --log-level debug
    amity worker --console
"""

from __future__ import annotations

import asyncio
import logging
import signal

import typer

app = typer.Typer(help="Run a dispatcher consuming the request stream")

logger = logging.getLogger(__name__)


@app.callback(invoke_without_command=True)
def worker(
    concurrency: int | None = typer.Option(
        None,
        "--concurrency",
        "-c",
        help="Maximum messages processed at once (default: from settings)",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    console: bool = typer.Option(
        False,
        "--console",
        help="Human-readable logs instead of JSON",
    ),
) -> None:
    """Run a dispatcher until SIGINT or SIGTERM.

    Consumes operations from the request stream, executes them against the
    graph store and delivers correlated replies.
    """
    from amity.config import settings
    from amity.observability.logging import configure_logging

    configure_logging(
        json_format=settings.log_json and not console,
        level=log_level or settings.log_level,
    )
    if concurrency is not None:
        settings.dispatcher_concurrency = concurrency

    asyncio.run(_run_worker())


async def _run_worker() -> None:
    """Async implementation of worker command."""
    from amity.runtime import build_dispatcher, shutdown

    try:
        dispatcher = await build_dispatcher()
    except Exception as e:
        logger.error(f"Cannot start dispatcher: {e}")
        await shutdown()
        raise typer.Exit(code=1) from e

    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        logger.info("Received shutdown signal")
        asyncio.create_task(dispatcher.stop())

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _signal_handler)

    try:
        await dispatcher.run()
    finally:
        logger.info(f"Dispatcher stats: {dispatcher.get_stats()}")
        await shutdown(dispatcher)
