"""Entry point for the mid-price tracker.

Wires all components together and runs the HTTP API and both background
loops on a single asyncio event loop via uvicorn's programmatic API and
FastAPI's lifespan context manager.

Startup order (in run):
1. AppSettings (configuration)
2. Logging setup
3. Components (database, store, price source, workers, query service)
4. Database connect + schema creation -- fatal on failure
5. One synchronous price fetch so the API has data when it starts serving
6. uvicorn server; the lifespan starts the fetch and retention loops

Shutdown on SIGINT/SIGTERM (uvicorn owns the signal handlers):
1. uvicorn stops accepting connections and drains in-flight requests for
   up to SHUTDOWN_HTTP_TIMEOUT seconds
2. The lifespan signals both loops to stop and waits up to
   SHUTDOWN_WORKER_TIMEOUT seconds; stragglers are logged as a forced
   shutdown and cancelled
3. Price source and database are closed
"""

import asyncio
from collections.abc import Sequence
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import uvicorn
from fastapi import FastAPI

from midwatch.api.app import create_app
from midwatch.config import AppSettings, sqlite_path_from_url
from midwatch.data.database import PriceDatabase
from midwatch.data.query import PriceQueryService
from midwatch.data.store import ObservationStore
from midwatch.exchange.hyperliquid_client import HyperliquidClient
from midwatch.logging import get_logger, setup_logging
from midwatch.workers.periodic import PeriodicWorker
from midwatch.workers.price_fetcher import PriceFetcher
from midwatch.workers.retention import RetentionWorker

# Upper bound on waiting for tasks to unwind after a forced cancel.
_CANCEL_GRACE_SECONDS = 1.0


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Note: Does NOT connect to the database -- that happens in run() so a
    failure aborts startup before anything else is started.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    database = PriceDatabase(sqlite_path_from_url(settings.database_url))
    store = ObservationStore(database)
    price_source = HyperliquidClient(settings.fetch)

    price_fetcher = PriceFetcher(
        source=price_source,
        store=store,
        symbols=settings.fetch.symbols,
        interval=settings.fetch.interval_seconds,
    )
    retention_worker = RetentionWorker(
        store=store,
        retention=timedelta(days=settings.retention.days),
        interval=settings.retention.interval_seconds,
        run_on_start=settings.retention.run_on_start,
    )
    query_service = PriceQueryService(
        store, window=timedelta(hours=settings.query.window_hours)
    )

    return {
        "database": database,
        "store": store,
        "price_source": price_source,
        "price_fetcher": price_fetcher,
        "retention_worker": retention_worker,
        "query_service": query_service,
    }


def start_workers(workers: Sequence[PeriodicWorker]) -> list[asyncio.Task]:
    """Start each worker loop as an independent task."""
    return [asyncio.create_task(w.start(), name=w.name) for w in workers]


async def stop_workers(
    workers: Sequence[PeriodicWorker],
    tasks: Sequence[asyncio.Task],
    timeout: float,
) -> bool:
    """Signal every worker to stop and wait up to ``timeout`` seconds.

    Returns True if all loops exited in time. Otherwise the remaining tasks
    are cancelled, a forced shutdown is logged, and False is returned; the
    caller proceeds with exit either way.
    """
    logger = get_logger("midwatch.main")

    for worker in workers:
        await worker.stop()

    if not tasks:
        return True

    done, pending = await asyncio.wait(tasks, timeout=timeout)

    for task in done:
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "worker_task_failed",
                worker=task.get_name(),
                error=repr(task.exception()),
            )

    if pending:
        logger.warning(
            "forced_shutdown",
            timeout=timeout,
            pending=sorted(t.get_name() for t in pending),
        )
        for task in pending:
            task.cancel()
        await asyncio.wait(pending, timeout=_CANCEL_GRACE_SECONDS)
        return False

    logger.info("workers_stopped")
    return True


async def close_resources(components: dict[str, Any]) -> None:
    """Close the price source and database; safe to call more than once."""
    logger = get_logger("midwatch.main")
    try:
        await components["price_source"].close()
    except Exception:
        logger.warning("price_source_close_failed", exc_info=True)
    await components["database"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage background loop lifecycle within the FastAPI application.

    On startup: exposes the query service on app.state and starts the fetch
    and retention loops as background tasks.

    On shutdown (after uvicorn has drained HTTP connections): stops both
    loops within the worker deadline, then closes the price source and
    database.
    """
    logger = get_logger("midwatch.main")
    settings: AppSettings = app.state.settings
    components = app.state.components

    app.state.query_service = components["query_service"]

    workers = [components["price_fetcher"], components["retention_worker"]]
    tasks = start_workers(workers)

    logger.info(
        "lifespan_started",
        symbols=settings.fetch.symbols,
        fetch_interval=settings.fetch.interval_seconds,
        retention_interval=settings.retention.interval_seconds,
    )

    try:
        yield
    finally:
        logger.info("shutdown_signal_received")
        await stop_workers(workers, tasks, timeout=settings.shutdown.worker_timeout)
        await close_resources(components)
        logger.info("midwatch_stopped")


async def run(settings: AppSettings | None = None) -> None:
    """Run the service until SIGINT/SIGTERM.

    Raises on startup failure (settings, database, schema); there is no
    degraded-start mode.
    """
    # 1. Load settings
    settings = settings or AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("midwatch.main")

    # 3. Build all components
    components = _build_components(settings)

    try:
        # 4. Database and schema
        await components["database"].connect()
        logger.info("database_initialized")

        # 5. Initial fetch before serving
        logger.info("fetching_initial_prices", symbols=settings.fetch.symbols)
        await components["price_fetcher"].fetch_prices()
    except Exception:
        logger.critical("startup_failed", exc_info=True)
        await close_resources(components)
        raise

    # 6. HTTP server + background loops
    app = create_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = components

    logger.info("http_server_starting", host=settings.host, port=settings.port)

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",  # request logging is done by the API middleware
        log_config=None,
        timeout_graceful_shutdown=settings.shutdown.http_timeout,
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    finally:
        await close_resources(components)


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
