"""Live Price Overlay.

Refreshes last/volume/turnover on the published directory from the cached raw
ticker snapshots. Chain, contract and confirmation fields are never touched;
exchanges without a fresh snapshot keep their previous prices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from tokendir.core.logging import get_logger
from tokendir.exchanges import ExchangeAdapter, TickerQuote, get_adapter
from tokendir.models.directory import Directory, ExchangeEntry, TokenEntry
from tokendir.services.reconciliation import build_directory

log = get_logger("services.price_overlay")

TickerLookup = Callable[[str], Optional[Any]]
TickerIndex = Dict[str, TickerQuote]


@dataclass
class OverlayStats:
    exchanges_with_data: List[str] = field(default_factory=list)
    exchanges_without_data: List[str] = field(default_factory=list)
    updated_entries: int = 0


def build_ticker_index(adapter: ExchangeAdapter, payload: Any) -> TickerIndex:
    """``SYMBOL -> TickerQuote`` for every row whose required fields parse."""
    index: TickerIndex = {}
    skipped = 0
    for row in adapter.ticker_rows(payload):
        extracted = adapter.parse_raw_ticker(row)
        if not extracted.ok:
            skipped += 1
            continue
        index[extracted.value.symbol.upper()] = extracted.value
    if skipped:
        log.debug(f"{adapter.exchange_id}: skipped {skipped} unparsable ticker rows")
    return index


def overlay_entry(entry: ExchangeEntry, adapter: ExchangeAdapter, index: TickerIndex) -> ExchangeEntry:
    quote = index.get(adapter.compose_symbol(entry.base_asset, entry.quote_asset))
    if quote is None:
        return entry

    update: Dict[str, Any] = {"last": quote.last}
    if quote.volume is not None:
        update["volume"] = quote.volume
    if quote.turnover is not None:
        update["turnover"] = quote.turnover
    return entry.model_copy(update=update)


def overlay_tokens(
    tokens: Iterable[TokenEntry], indexes: Mapping[str, Tuple[ExchangeAdapter, TickerIndex]]
) -> Tuple[List[TokenEntry], int]:
    updated = 0
    result: List[TokenEntry] = []
    for token in tokens:
        entries = []
        changed = False
        for entry in token.exchanges:
            found = indexes.get(entry.exchange_id)
            new_entry = overlay_entry(entry, *found) if found else entry
            if new_entry is not entry:
                changed = True
                updated += 1
            entries.append(new_entry)
        result.append(token.model_copy(update={"exchanges": tuple(entries)}) if changed else token)
    return result, updated


def overlay_directory(directory: Directory, tickers: TickerLookup) -> Tuple[Directory, OverlayStats]:
    """Return a new snapshot with refreshed prices; views are re-partitioned from it."""
    stats = OverlayStats()
    exchange_ids = sorted({e.exchange_id for t in directory.all_tokens for e in t.exchanges})

    indexes: Dict[str, Tuple[ExchangeAdapter, TickerIndex]] = {}
    for exchange_id in exchange_ids:
        adapter = get_adapter(exchange_id)
        payload = tickers(adapter.exchange_id) if adapter else None
        if adapter is None or payload is None:
            stats.exchanges_without_data.append(exchange_id)
            continue
        indexes[exchange_id] = (adapter, build_ticker_index(adapter, payload))
        stats.exchanges_with_data.append(exchange_id)

    tokens, stats.updated_entries = overlay_tokens(directory.all_tokens, indexes)
    return build_directory(tokens, version=directory.version), stats
