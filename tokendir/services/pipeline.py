"""Token directory pipeline: the slow reconciliation cycle and the fast overlay cycle."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Dict, List, Optional

from tokendir.core.errors import DirectoryUnavailableError
from tokendir.core.logging import get_logger
from tokendir.ingestion.coingecko import CoinGeckoSource
from tokendir.ingestion.tickers import TickerCache
from tokendir.models.directory import TokenEntry
from tokendir.models.runs import CycleName, CycleRun
from tokendir.services.asset_directory import AssetDirectory, AssetDirectoryBuilder
from tokendir.services.dex_enrichment import DexEnrichmentBatcher, RateLimitBackoff, apply_dex_quotes
from tokendir.services.price_overlay import overlay_directory
from tokendir.services.reconciliation import build_directory, reconcile
from tokendir.services.store import DirectoryStore

log = get_logger("services.pipeline")

RUN_HISTORY = 50


class DirectoryPipeline:
    """Builds and refreshes the published token directory.

    Responsibilities:
    - Load catalog, catalog tickers and exchange asset metadata concurrently
    - Reconcile, resolve chain ambiguity and enrich with DEX prices
    - Publish a new snapshot, or keep the previous one when the cycle is skipped
    - Overlay live exchange prices on the published snapshot
    - Keep a short in-memory history of cycle runs
    """

    def __init__(
        self,
        store: DirectoryStore,
        tickers: Optional[TickerCache] = None,
        catalog: Optional[CoinGeckoSource] = None,
        assets: Optional[AssetDirectoryBuilder] = None,
        dex: Optional[DexEnrichmentBatcher] = None,
        backoff: Optional[RateLimitBackoff] = None,
    ):
        self.store = store
        self.tickers = tickers or TickerCache()
        self.catalog = catalog or CoinGeckoSource()
        self.assets = assets or AssetDirectoryBuilder()
        self.dex = dex or DexEnrichmentBatcher()
        self.backoff = backoff or RateLimitBackoff.from_settings()
        self._runs: Dict[CycleName, Deque[CycleRun]] = {
            "reconciliation": deque(maxlen=RUN_HISTORY),
            "overlay": deque(maxlen=RUN_HISTORY),
        }

    def recent_runs(self, cycle: Optional[CycleName] = None, limit: int = 10) -> List[CycleRun]:
        cycles = [cycle] if cycle else list(self._runs)
        runs = [run for name in cycles for run in self._runs[name]]
        runs.sort(key=lambda run: run.started_at, reverse=True)
        return runs[:limit]

    def last_run(self, cycle: CycleName) -> Optional[CycleRun]:
        runs = self._runs[cycle]
        return runs[-1] if runs else None

    def _start(self, cycle: CycleName) -> CycleRun:
        run = CycleRun(cycle=cycle)
        self._runs[cycle].append(run)
        return run

    # -------------------------------------------------------------------------
    # Reconciliation cycle
    # -------------------------------------------------------------------------
    async def run_reconciliation_cycle(self) -> CycleRun:
        run = self._start("reconciliation")
        log.info("=== Reconciliation cycle start ===")
        try:
            tokens = await self._reconcile()
            published = self.store.publish(build_directory(tokens))
            run.finish("success", records=len(published.all_tokens))
            log.info(
                f"Published directory v{published.version}: all={len(published.all_tokens)} "
                f"usdt={len(published.usdt)} sol_eth={len(published.sol_eth)} usdc={len(published.usdc)}"
            )
        except DirectoryUnavailableError as exc:
            run.finish("skipped", error=str(exc))
            log.warning(f"Reconciliation cycle skipped, previous directory stays published: {exc}")
        except asyncio.CancelledError:
            run.finish("failure", error="cancelled")
            log.warning("Reconciliation cycle cancelled")
            raise
        except Exception as exc:  # noqa: BLE001
            run.finish("failure", error=str(exc))
            log.error(f"Reconciliation cycle failed: {exc}")
            raise
        return run

    async def _reconcile(self) -> List[TokenEntry]:
        catalog, tickers, assets = await asyncio.gather(
            self.catalog.list_coins(),
            self.catalog.list_all_tickers(),
            self.assets.build(),
            return_exceptions=True,
        )

        if isinstance(catalog, BaseException):
            raise DirectoryUnavailableError(f"coin catalog unavailable: {catalog}") from catalog
        if not catalog:
            raise DirectoryUnavailableError("coin catalog is empty")
        if isinstance(tickers, BaseException):
            log.error(f"Catalog tickers unavailable this cycle: {tickers}")
            tickers = []
        if isinstance(assets, BaseException):
            log.error(f"Asset directory unavailable this cycle: {assets}")
            assets = AssetDirectory()

        log.info(f"Loaded: coins={len(catalog)} tickers={len(tickers)} asset_records={len(assets)}")
        tokens = reconcile(catalog, tickers, assets)
        if not tokens:
            raise DirectoryUnavailableError("reconciliation produced no tokens")

        # Fresh entries start from the last known DEX prices so a failed lookup never zeroes them
        tokens = apply_dex_quotes(tokens, self.store.dex_quotes)
        result = await self.dex.enrich(tokens, self.backoff)
        self.backoff = result.backoff
        self.store.merge_dex_quotes(result.quotes)
        dropped = self.store.retain_dex_quotes(token.dex_key for token in tokens)
        if dropped:
            log.info(f"Dropped {dropped} DEX quotes for pairs no longer in the directory")
        return apply_dex_quotes(tokens, result.quotes)

    # -------------------------------------------------------------------------
    # Overlay cycle
    # -------------------------------------------------------------------------
    async def run_overlay_cycle(self) -> CycleRun:
        run = self._start("overlay")
        try:
            directory = self.store.require()
        except DirectoryUnavailableError as exc:
            run.finish("skipped", error=str(exc))
            log.debug(f"Overlay skipped: {exc}")
            return run

        refreshed, stats = overlay_directory(directory, self.tickers.get)
        if not self.store.swap_if(directory.version, refreshed):
            run.finish("skipped", error="directory republished during overlay")
            log.debug(f"Overlay discarded: directory moved past v{directory.version}")
            return run

        run.finish("success", records=stats.updated_entries)
        log.debug(
            f"Overlay v{directory.version}: updated={stats.updated_entries} "
            f"with_data={stats.exchanges_with_data} without_data={stats.exchanges_without_data}"
        )
        return run
