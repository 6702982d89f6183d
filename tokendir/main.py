from contextlib import asynccontextmanager
import asyncio
from typing import Awaitable, Callable, List

from fastapi import FastAPI

from tokendir.api.routes import dictionary, health, stats
from tokendir.core.config import settings
from tokendir.core.errors import DirectoryUnavailableError
from tokendir.core.logging import get_logger
from tokendir.ingestion.tickers import TickerCache, TickerPoller
from tokendir.services.pipeline import DirectoryPipeline
from tokendir.services.store import DirectoryStore


log = get_logger("app")


async def scheduled_cycle(name: str, interval: float, cycle: Callable[[], Awaitable[object]]) -> None:
    """Run ``cycle`` immediately, then every ``interval`` seconds until cancelled."""
    log.info(f"Scheduled {name} task started (interval: {interval}s)")
    while True:
        try:
            await cycle()
            await asyncio.sleep(interval)
        except asyncio.CancelledError:
            log.info(f"Scheduled {name} task cancelled")
            raise
        except Exception as exc:
            log.exception(f"Scheduled {name} task error: {exc}")
            # Continue running despite errors
            await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Starting application in {settings.ENV.upper()} mode")

    store = DirectoryStore()
    tickers = TickerCache()
    pipeline = DirectoryPipeline(store, tickers=tickers)
    app.state.store = store
    app.state.tickers = tickers
    app.state.pipeline = pipeline

    # Serve the base dictionary until the first reconciliation completes
    if settings.SEED_DICTIONARY_PATH:
        try:
            store.load_seed(settings.SEED_DICTIONARY_PATH)
        except DirectoryUnavailableError as exc:
            log.warning(f"Seed dictionary not loaded, waiting for first reconciliation: {exc}")

    poller = TickerPoller(tickers)
    if settings.TICKER_POLLING_ENABLED:
        poller.start()
    else:
        log.info("Ticker polling is disabled (TICKER_POLLING_ENABLED=false)")

    tasks: List[asyncio.Task] = []
    if settings.PIPELINE_ENABLED:
        log.info("Starting scheduled reconciliation and overlay tasks...")
        tasks.append(
            asyncio.create_task(
                scheduled_cycle(
                    "reconciliation", settings.RECONCILE_INTERVAL_SECONDS, pipeline.run_reconciliation_cycle
                )
            )
        )
        tasks.append(
            asyncio.create_task(
                scheduled_cycle("overlay", settings.OVERLAY_INTERVAL_SECONDS, pipeline.run_overlay_cycle)
            )
        )
    else:
        log.info("Scheduled pipeline is disabled (PIPELINE_ENABLED=false)")

    yield

    # Shutdown
    log.info("Shutting down services...")
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await poller.stop()
    log.info("Application shutdown complete")


app = FastAPI(
    title="Token Directory",
    description="Cross-exchange token directory reconciled by contract address, with DEX and live CEX prices",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)


app.include_router(dictionary.router)
app.include_router(health.router)
app.include_router(stats.router)
