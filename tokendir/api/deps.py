"""API dependencies.

The store, pipeline and ticker cache live on ``app.state``; tests swap them
through ``app.dependency_overrides``.
"""

from fastapi import Request

from tokendir.ingestion.tickers import TickerCache
from tokendir.services.pipeline import DirectoryPipeline
from tokendir.services.store import DirectoryStore


def get_store(request: Request) -> DirectoryStore:
    return request.app.state.store


def get_pipeline(request: Request) -> DirectoryPipeline:
    return request.app.state.pipeline


def get_ticker_cache(request: Request) -> TickerCache:
    return request.app.state.tickers
