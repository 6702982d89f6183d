"""CoinGecko coin catalog and exchange ticker source."""

from __future__ import annotations

import asyncio
import time
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from tokendir.core.config import settings
from tokendir.core.errors import PipelineError, SourceParseError
from tokendir.core.extraction import raw_field, to_decimal
from tokendir.core.logging import get_logger
from tokendir.exchanges import ExchangeAdapter, all_adapters
from tokendir.ingestion.http import request_json
from tokendir.models.directory import CatalogEntry, RawTicker

log = get_logger("ingestion.coingecko")

BASE_URL = "https://api.coingecko.com/api/v3"


class RequestThrottle:
    """Spaces requests at least ``60 / per_minute`` seconds apart across all callers."""

    def __init__(
        self,
        per_minute: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.interval = 60.0 / per_minute if per_minute > 0 else 0.0
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            if self._last is not None:
                remaining = self.interval - (self._clock() - self._last)
                if remaining > 0:
                    await self._sleep(remaining)
            self._last = self._clock()


def _optional_str(item: Any, key: str) -> Optional[str]:
    value = item.get(key) if isinstance(item, dict) else None
    return value.strip() if isinstance(value, str) and value.strip() else None


def _optional_decimal(item: Any, key: str) -> Optional[Decimal]:
    raw = raw_field(item, key)
    if not raw.ok:
        return None
    parsed = to_decimal(raw.value)
    return parsed.value if parsed.ok else None


def parse_catalog(payload: Any) -> List[CatalogEntry]:
    if not isinstance(payload, list):
        raise SourceParseError("coin list is not an array", source="coingecko")
    catalog: List[CatalogEntry] = []
    for item in payload:
        coin_id = _optional_str(item, "id")
        if coin_id is None:
            continue
        platforms = item.get("platforms") if isinstance(item.get("platforms"), dict) else {}
        catalog.append(
            CatalogEntry(
                coin_id=coin_id,
                symbol=_optional_str(item, "symbol"),
                platforms={
                    str(chain): (contract if isinstance(contract, str) else None)
                    for chain, contract in platforms.items()
                    if chain
                },
            )
        )
    return catalog


def parse_ticker_page(payload: Any, exchange_id: str) -> List[RawTicker]:
    rows = payload.get("tickers") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        return []
    return [
        RawTicker(
            exchange_id=exchange_id,
            base_asset=_optional_str(row, "base"),
            quote_asset=_optional_str(row, "target"),
            last_price=_optional_decimal(row, "last"),
            volume=_optional_decimal(row, "volume"),
            trade_url=_optional_str(row, "trade_url"),
            coin_catalog_id=_optional_str(row, "coin_id"),
        )
        for row in rows
        if isinstance(row, dict)
    ]


class CoinGeckoSource:
    """Reads the coin catalog and per-exchange tickers from CoinGecko.

    All requests share one throttle; the demo API key allows about 30 requests
    per minute.
    """

    name = "coingecko"

    def __init__(
        self,
        api_key: Optional[str] = None,
        throttle: Optional[RequestThrottle] = None,
        max_pages: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.COINGECKO_API_KEY
        self.throttle = throttle or RequestThrottle(settings.COINGECKO_REQUESTS_PER_MINUTE)
        self.max_pages = max_pages or settings.COINGECKO_MAX_TICKER_PAGES
        self.timeout = timeout or settings.COINGECKO_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        await self.throttle.wait()
        return await request_json(
            "GET",
            BASE_URL + path,
            source=self.name,
            timeout=self.timeout,
            headers=self.headers,
            params=params,
            transport=self.transport,
        )

    async def list_coins(self) -> List[CatalogEntry]:
        """Full coin list with platform contracts; raises on any failure."""
        payload = await self._get("/coins/list", {"include_platform": "true"})
        catalog = parse_catalog(payload)
        log.info(f"Fetched {len(catalog)} coins from CoinGecko")
        return catalog

    async def list_exchange_tickers(self, adapter: ExchangeAdapter) -> List[RawTicker]:
        """Page through an exchange's tickers until an empty or failed page."""
        tickers: List[RawTicker] = []
        for page in range(1, self.max_pages + 1):
            try:
                payload = await self._get(f"/exchanges/{adapter.catalog_id}/tickers", {"page": page})
            except PipelineError as exc:
                log.warning(f"Ticker page error {adapter.catalog_id} page {page}: {exc}")
                break
            rows = parse_ticker_page(payload, adapter.exchange_id)
            if not rows:
                break
            tickers.extend(rows)
        log.info(f"{adapter.exchange_id}: {len(tickers)} catalog tickers loaded")
        return tickers

    async def list_all_tickers(self, adapters: Optional[Sequence[ExchangeAdapter]] = None) -> List[RawTicker]:
        adapters = list(adapters) if adapters is not None else all_adapters()
        log.info(f"Loading catalog tickers from {len(adapters)} exchanges")
        tickers: List[RawTicker] = []
        # Sequential: every page goes through the shared throttle anyway
        for adapter in adapters:
            tickers.extend(await self.list_exchange_tickers(adapter))
        return tickers
