"""Dictionary routes - Serves the published token directory and its raw inputs."""

import time
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from tokendir.api.deps import get_store, get_ticker_cache
from tokendir.exchanges import get_adapter
from tokendir.ingestion.tickers import TickerCache
from tokendir.schemas.api import DexPriceOut, DexPricesResponse, DirectoryResponse
from tokendir.services.dex_enrichment import quotes_blob
from tokendir.services.store import DirectoryStore

router = APIRouter(prefix="/api", tags=["dictionary"])


def _view_response(store: DirectoryStore, view: str) -> DirectoryResponse:
    start = time.perf_counter()
    directory = store.current()
    if directory is None:
        raise HTTPException(status_code=404, detail="Directory not published yet")

    tokens = directory.view(view)
    return DirectoryResponse(
        request_id=str(uuid.uuid4()),
        api_latency_ms=int((time.perf_counter() - start) * 1000),
        view=view,
        version=directory.version,
        published_at=directory.published_at,
        count=len(tokens),
        data=list(tokens),
    )


# -----------------------------------------------------------------------------
# Directory views
# -----------------------------------------------------------------------------


@router.get("/dict", response_model=DirectoryResponse)
def get_dictionary(store: DirectoryStore = Depends(get_store)):
    """All reconciled tokens with every confirmed exchange listing."""
    return _view_response(store, "all")


@router.get("/dict_usdt", response_model=DirectoryResponse)
def get_usdt_dictionary(store: DirectoryStore = Depends(get_store)):
    """Tokens with their USDT-quoted listings only."""
    return _view_response(store, "usdt")


@router.get("/dict_sol_eth", response_model=DirectoryResponse)
def get_sol_eth_dictionary(store: DirectoryStore = Depends(get_store)):
    """Tokens with their SOL- and ETH-quoted listings only."""
    return _view_response(store, "sol_eth")


@router.get("/dict_usdc", response_model=DirectoryResponse)
def get_usdc_dictionary(store: DirectoryStore = Depends(get_store)):
    """Tokens with their USDC-quoted listings only."""
    return _view_response(store, "usdc")


# -----------------------------------------------------------------------------
# Diagnostics
# -----------------------------------------------------------------------------


@router.get("/dex_prices", response_model=DexPricesResponse)
def get_dex_prices(store: DirectoryStore = Depends(get_store)):
    """Last known DEX quotes, every value as a string."""
    quotes = store.dex_quotes
    if not quotes:
        raise HTTPException(status_code=404, detail="No DEX prices collected yet")
    blob = quotes_blob(quotes)
    return DexPricesResponse(
        updated_at=store.dex_updated_at,
        count=len(blob),
        data=[DexPriceOut(**item) for item in blob],
    )


@router.get("/tickers/{exchange}")
def get_raw_tickers(exchange: str, tickers: TickerCache = Depends(get_ticker_cache)) -> Any:
    """Raw cached ticker payload for one exchange, as the exchange returned it."""
    adapter = get_adapter(exchange)
    if adapter is None:
        raise HTTPException(status_code=404, detail=f"Unknown exchange: {exchange}")
    payload = tickers.get(adapter.exchange_id)
    if payload is None:
        raise HTTPException(status_code=404, detail=f"No fresh tickers for {adapter.exchange_id}")
    return payload
