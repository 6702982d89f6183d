"""Pipeline cycle tests"""

import asyncio
from decimal import Decimal

import pytest

from tokendir.core.errors import SourceUnavailableError
from tokendir.ingestion.tickers import TickerCache
from tokendir.models.directory import AssetRecord, CatalogEntry, DexQuote, RawTicker
from tokendir.services.asset_directory import AssetDirectory
from tokendir.services.dex_enrichment import EnrichmentResult, RateLimitBackoff
from tokendir.services.pipeline import DirectoryPipeline
from tokendir.services.store import DirectoryStore

CATALOG = [CatalogEntry(coin_id="token1", symbol="TKX", platforms={"ethereum": "0xabc"})]
TICKERS = [
    RawTicker(exchange_id="bybit_spot", base_asset="TKX", quote_asset="USDT", coin_catalog_id="token1"),
]


class FakeCatalog:
    def __init__(self, coins=CATALOG, tickers=TICKERS):
        self.coins = coins
        self.tickers = tickers

    async def list_coins(self):
        if isinstance(self.coins, Exception):
            raise self.coins
        return self.coins

    async def list_all_tickers(self):
        if isinstance(self.tickers, Exception):
            raise self.tickers
        return self.tickers


class FakeAssets:
    def __init__(self, records=()):
        self.records = records

    async def build(self):
        return AssetDirectory.from_records(self.records)


class FakeDex:
    def __init__(self, quotes=None, rate_limited=False):
        self.quotes = quotes or {}
        self.rate_limited = rate_limited
        self.seen = []

    async def enrich(self, tokens, backoff):
        self.seen.append(list(tokens))
        if self.rate_limited:
            backoff = backoff.bump()
        return EnrichmentResult(quotes=self.quotes, backoff=backoff, requested=len(tokens), batches=1)


def _quote(price):
    return {("ethereum", "0xabc"): DexQuote(chain="ethereum", contract_address="0xabc", price=Decimal(price))}


def _pipeline(store=None, catalog=None, assets=None, dex=None, tickers=None):
    return DirectoryPipeline(
        store or DirectoryStore(),
        tickers=tickers or TickerCache(ttl=60),
        catalog=catalog or FakeCatalog(),
        assets=assets or FakeAssets(),
        dex=dex or FakeDex(),
        backoff=RateLimitBackoff(),
    )


class TestReconciliationCycle:
    """Test the slow cycle"""

    @pytest.mark.asyncio
    async def test_publishes_directory(self):
        """Test a successful cycle publishes a partitioned directory with DEX prices"""
        store = DirectoryStore()
        record = AssetRecord(
            exchange_id="bybit",
            contract_address="0xabc",
            settlement_chain="ETH",
            deposit_enabled=True,
            withdraw_enabled=True,
        )
        pipeline = _pipeline(store, assets=FakeAssets([record]), dex=FakeDex(_quote("2.5")))

        run = await pipeline.run_reconciliation_cycle()

        assert run.status == "success"
        assert run.records_processed == 1
        directory = store.require()
        assert directory.version == 1
        (token,) = directory.usdt
        assert token.dex_price == Decimal("2.5")
        assert token.exchanges[0].exchange_id == "bybit"
        assert token.exchanges[0].settlement_chain == "ETH"

    @pytest.mark.asyncio
    async def test_catalog_failure_keeps_previous_directory(self):
        """Test an unavailable catalog skips the cycle without replacing the snapshot"""
        store = DirectoryStore()
        await _pipeline(store).run_reconciliation_cycle()
        previous = store.current()

        failing = _pipeline(store, catalog=FakeCatalog(coins=SourceUnavailableError("down", source="coingecko")))
        run = await failing.run_reconciliation_cycle()

        assert run.status == "skipped"
        assert "down" in run.error_message
        assert store.current() is previous

    @pytest.mark.asyncio
    async def test_empty_catalog_skips(self):
        """Test an empty catalog publishes nothing"""
        store = DirectoryStore()
        run = await _pipeline(store, catalog=FakeCatalog(coins=[])).run_reconciliation_cycle()
        assert run.status == "skipped"
        assert store.current() is None

    @pytest.mark.asyncio
    async def test_ticker_failure_degrades(self):
        """Test failed catalog tickers leave nothing to reconcile and skip the cycle"""
        store = DirectoryStore()
        catalog = FakeCatalog(tickers=SourceUnavailableError("tickers down", source="coingecko"))
        run = await _pipeline(store, catalog=catalog).run_reconciliation_cycle()
        assert run.status == "skipped"
        assert store.current() is None

    @pytest.mark.asyncio
    async def test_dex_prices_carried_forward(self):
        """Test a failed DEX lookup keeps the last known price"""
        store = DirectoryStore()
        await _pipeline(store, dex=FakeDex(_quote("3"))).run_reconciliation_cycle()

        dex = FakeDex()
        run = await _pipeline(store, dex=dex).run_reconciliation_cycle()

        assert run.status == "success"
        assert store.require().all_tokens[0].dex_price == Decimal("3")
        assert dex.seen[0][0].dex_price == Decimal("3")

    @pytest.mark.asyncio
    async def test_backoff_carries_between_cycles(self):
        """Test a widened delay is kept for the next cycle"""
        pipeline = _pipeline(dex=FakeDex(rate_limited=True))
        await pipeline.run_reconciliation_cycle()
        await pipeline.run_reconciliation_cycle()
        assert pipeline.backoff.delay_ms == 150
        assert pipeline.backoff.hits == 2

    @pytest.mark.asyncio
    async def test_departed_pairs_pruned(self):
        """Test DEX quotes for pairs that left the directory are dropped on the next cycle"""
        store = DirectoryStore()
        await _pipeline(store, dex=FakeDex(_quote("3"))).run_reconciliation_cycle()
        departed = DexQuote(chain="ethereum", contract_address="0xdead", price=Decimal("9"))
        store.merge_dex_quotes({departed.key: departed})

        run = await _pipeline(store).run_reconciliation_cycle()

        assert run.status == "success"
        assert list(store.dex_quotes) == [("ethereum", "0xabc")]

    @pytest.mark.asyncio
    async def test_cancelled_cycle_recorded_as_failure(self):
        """Test a cycle cancelled mid-fetch does not stay running in the history"""
        started = asyncio.Event()

        class StalledCatalog(FakeCatalog):
            async def list_coins(self):
                started.set()
                await asyncio.Event().wait()

        pipeline = _pipeline(catalog=StalledCatalog())
        task = asyncio.create_task(pipeline.run_reconciliation_cycle())
        await asyncio.wait_for(started.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        run = pipeline.last_run("reconciliation")
        assert run.status == "failure"
        assert run.error_message == "cancelled"
        assert run.ended_at is not None

    @pytest.mark.asyncio
    async def test_run_history(self):
        """Test runs are recorded newest first"""
        pipeline = _pipeline()
        await pipeline.run_reconciliation_cycle()
        await pipeline.run_overlay_cycle()
        runs = pipeline.recent_runs()
        assert [r.cycle for r in runs] == ["overlay", "reconciliation"]
        assert pipeline.last_run("reconciliation").status == "success"
        assert pipeline.recent_runs("overlay", limit=5)[0].cycle == "overlay"


class TestOverlayCycle:
    """Test the fast cycle"""

    @pytest.mark.asyncio
    async def test_skipped_without_directory(self):
        """Test the overlay does nothing before the first publish"""
        run = await _pipeline().run_overlay_cycle()
        assert run.status == "skipped"

    @pytest.mark.asyncio
    async def test_overlay_refreshes_prices(self):
        """Test cached raw tickers refresh prices in place"""
        store = DirectoryStore()
        cache = TickerCache(ttl=60)
        pipeline = _pipeline(store, tickers=cache)
        await pipeline.run_reconciliation_cycle()

        cache.put(
            "bybit",
            {"result": {"list": [{"symbol": "TKXUSDT", "lastPrice": "4", "volume24h": "10", "turnover24h": "40"}]}},
        )
        run = await pipeline.run_overlay_cycle()

        assert run.status == "success"
        assert run.records_processed == 1
        entry = store.require().usdt[0].exchanges[0]
        assert (entry.last, entry.volume, entry.turnover) == (Decimal("4"), Decimal("10"), Decimal("40"))
        assert store.version == 1
