"""Asset Directory Builder.

Fetches deposit/withdraw metadata from every exchange that exposes it and
folds the results into one lookup table keyed by lowercased contract address
and exchange id. The table is rebuilt wholesale every reconciliation cycle.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

import httpx

from tokendir.core.config import Credentials, settings
from tokendir.core.errors import (
    AuthenticationError,
    MissingCredentialsError,
    PipelineError,
)
from tokendir.core.logging import get_logger
from tokendir.exchanges import ExchangeAdapter, asset_roster
from tokendir.ingestion.http import request_json
from tokendir.models.directory import AssetRecord

log = get_logger("services.asset_directory")

CredentialsLookup = Callable[[Optional[str]], Credentials]


class AssetDirectory:
    """``contract(lower) -> {exchange_id -> AssetRecord}``; last write wins."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, AssetRecord]] = {}
        self.failures: Dict[str, str] = {}

    @classmethod
    def from_records(cls, records: Iterable[AssetRecord]) -> "AssetDirectory":
        directory = cls()
        for record in records:
            directory.add(record)
        return directory

    def add(self, record: AssetRecord) -> None:
        self._records.setdefault(record.contract_address.lower(), {})[record.exchange_id] = record

    def lookup(self, contract_address: str, exchange_id: str) -> Optional[AssetRecord]:
        return self._records.get(contract_address.strip().lower(), {}).get(exchange_id)

    def __contains__(self, contract_address: object) -> bool:
        return isinstance(contract_address, str) and contract_address.strip().lower() in self._records

    def __len__(self) -> int:
        return sum(len(by_exchange) for by_exchange in self._records.values())

    def counts_by_exchange(self) -> Dict[str, int]:
        counts: Counter = Counter()
        for by_exchange in self._records.values():
            counts.update(by_exchange.keys())
        return dict(counts)


class AssetDirectoryBuilder:
    """Builds an ``AssetDirectory`` from all exchanges concurrently.

    One request per exchange, each bounded by its own timeout. A failing
    exchange (missing credentials, timeout, rejected signature, bad payload)
    contributes nothing and never blocks the others.
    """

    def __init__(
        self,
        adapters: Optional[Sequence[ExchangeAdapter]] = None,
        credentials: Optional[CredentialsLookup] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.adapters = list(adapters) if adapters is not None else asset_roster()
        self.credentials = credentials or settings.credentials_for
        self.timeout = timeout or settings.ASSET_REQUEST_TIMEOUT_SECONDS
        self.transport = transport

    async def build(self) -> AssetDirectory:
        log.info(f"Loading asset metadata from {len(self.adapters)} exchanges")
        results = await asyncio.gather(
            *(self._fetch(adapter) for adapter in self.adapters),
            return_exceptions=True,
        )

        directory = AssetDirectory()
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                self._log_failure(adapter, result)
                directory.failures[adapter.exchange_id] = str(result)
                continue
            added, skipped = self._fill(directory, adapter, result)
            log.info(f"Assets {adapter.exchange_id}: added={added} skipped={skipped}")

        log.info(f"Assets loaded: total={len(directory)} by_exchange={directory.counts_by_exchange()}")
        return directory

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------
    async def _fetch(self, adapter: ExchangeAdapter) -> Any:
        creds = self.credentials(adapter.credential_prefix)
        # Sign right before sending: the timestamp must fall inside the receive window
        request = adapter.asset_request(creds)
        if request is None:
            return None
        return await request_json(
            request.method,
            request.url,
            source=adapter.exchange_id,
            timeout=self.timeout,
            headers=request.headers,
            content=request.content,
            transport=self.transport,
        )

    @staticmethod
    def _fill(directory: AssetDirectory, adapter: ExchangeAdapter, payload: Any) -> Tuple[int, int]:
        added = skipped = 0
        for extracted in adapter.parse_asset_metadata(payload):
            if not extracted.ok:
                skipped += 1
                log.debug(f"Skipping {adapter.exchange_id} asset entry: {extracted.reason}")
                continue
            directory.add(extracted.value)
            added += 1
        return added, skipped

    @staticmethod
    def _log_failure(adapter: ExchangeAdapter, exc: BaseException) -> None:
        if isinstance(exc, MissingCredentialsError):
            log.warning(f"Assets {adapter.exchange_id} skipped: {exc}")
        elif isinstance(exc, AuthenticationError):
            log.error(f"Assets {adapter.exchange_id} authentication rejected, check credentials: {exc}")
        elif isinstance(exc, PipelineError):
            log.warning(f"Assets {adapter.exchange_id} unavailable ({type(exc).__name__}): {exc}")
        else:
            log.error(f"Assets {adapter.exchange_id} failed unexpectedly: {exc!r}")
