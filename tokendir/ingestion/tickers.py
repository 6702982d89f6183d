"""Raw exchange ticker cache and pollers.

Each poller fetches its exchange's full ticker snapshot on a fixed timer and
stores the payload as is. Entries expire after the TTL, so a dead poller shows
up as "no data" rather than as frozen prices.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from tokendir.core.config import settings
from tokendir.core.errors import PipelineError
from tokendir.core.logging import get_logger
from tokendir.exchanges import ExchangeAdapter, all_adapters
from tokendir.ingestion.http import request_json

log = get_logger("ingestion.tickers")


class TickerCache:
    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl if ttl is not None else settings.TICKER_TTL_SECONDS
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def put(self, exchange_id: str, payload: Any) -> None:
        self._entries[exchange_id] = (self._clock(), payload)

    def get(self, exchange_id: str) -> Optional[Any]:
        entry = self._entries.get(exchange_id)
        if entry is None:
            return None
        stored_at, payload = entry
        if self._clock() - stored_at > self.ttl:
            return None
        return payload

    def age(self, exchange_id: str) -> Optional[float]:
        entry = self._entries.get(exchange_id)
        return self._clock() - entry[0] if entry else None

    def fresh_exchanges(self) -> List[str]:
        return sorted(ex for ex in self._entries if self.get(ex) is not None)


class TickerPoller:
    """One background task per exchange, each refreshing the shared cache."""

    def __init__(
        self,
        cache: TickerCache,
        adapters: Optional[Sequence[ExchangeAdapter]] = None,
        interval: Optional[float] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.adapters = list(adapters) if adapters is not None else all_adapters()
        self.interval = interval or settings.TICKER_POLL_INTERVAL_SECONDS
        self.timeout = timeout
        self.transport = transport
        self._tasks: List[asyncio.Task] = []

    async def poll_once(self, adapter: ExchangeAdapter) -> bool:
        """Fetch one snapshot; cache it only when it holds ticker rows."""
        try:
            payload = await request_json(
                "GET",
                adapter.ticker_url,
                source=adapter.exchange_id,
                timeout=self.timeout,
                transport=self.transport,
            )
        except PipelineError as exc:
            log.warning(f"Ticker poll failed: {exc}")
            return False

        if not adapter.ticker_rows(payload):
            log.warning(f"Ticker poll {adapter.exchange_id}: payload has no ticker rows")
            return False
        self.cache.put(adapter.exchange_id, payload)
        return True

    async def _run(self, adapter: ExchangeAdapter) -> None:
        while True:
            await self.poll_once(adapter)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        log.info(f"Starting ticker pollers for {len(self.adapters)} exchanges (interval: {self.interval}s)")
        self._tasks = [
            asyncio.create_task(self._run(adapter), name=f"tickers-{adapter.exchange_id}")
            for adapter in self.adapters
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        log.info("Ticker pollers stopped")
