"""Token Reconciliation Engine.

Merges catalog-side tickers, the coin catalog and the exchange asset directory
into canonical token entries, one per (symbol, contract, chain):

1. index tickers by catalog coin id;
2. per catalog (chain, contract) on a supported chain, collect tickers quoted
   in USDT, USDC, ETH or SOL;
3. confirm every exchange entry from the asset directory, or default-confirm
   it with the catalog chain;
4. resolve chain ambiguity per (symbol, contract);
5. partition into quote-asset views.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from tokendir.core.logging import get_logger
from tokendir.exchanges import canonical_exchange_id
from tokendir.models.directory import (
    ZERO,
    CatalogEntry,
    Directory,
    ExchangeEntry,
    RawTicker,
    TokenEntry,
)
from tokendir.services.asset_directory import AssetDirectory
from tokendir.services.chains import is_target_chain, normalize_chain

log = get_logger("services.reconciliation")

ALLOWED_QUOTES: FrozenSet[str] = frozenset({"USDT", "USDC", "ETH", "SOL"})

QUOTE_VIEWS: Dict[str, FrozenSet[str]] = {
    "usdt": frozenset({"USDT"}),
    "sol_eth": frozenset({"SOL", "ETH"}),
    "usdc": frozenset({"USDC"}),
}


@dataclass
class ReconciliationStats:
    coins: int = 0
    coins_with_platforms: int = 0
    matched_contracts: int = 0
    confirmed_exchanges: int = 0
    defaulted_exchanges: int = 0
    tokens: int = 0
    exchanges: Counter = field(default_factory=Counter)

    def summary(self) -> str:
        return (
            f"coins={self.coins} with_platforms={self.coins_with_platforms} "
            f"matched_contracts={self.matched_contracts} confirmed={self.confirmed_exchanges} "
            f"defaulted={self.defaulted_exchanges} tokens={self.tokens}"
        )


# ---------------------------------------------------------------------------
# Steps 1-3: build token entries
# ---------------------------------------------------------------------------
def index_tickers(tickers: Iterable[RawTicker]) -> Dict[str, List[RawTicker]]:
    by_coin: Dict[str, List[RawTicker]] = {}
    for ticker in tickers:
        if ticker.coin_catalog_id:
            by_coin.setdefault(ticker.coin_catalog_id.lower(), []).append(ticker)
    return by_coin


def _quoted(tickers: Sequence[RawTicker]) -> List[RawTicker]:
    return [t for t in tickers if t.quote_asset and t.quote_asset.strip().upper() in ALLOWED_QUOTES]


def _exchange_entry(ticker: RawTicker, symbol: str) -> ExchangeEntry:
    return ExchangeEntry(
        exchange_id=canonical_exchange_id(ticker.exchange_id),
        base_asset=ticker.base_asset or symbol,
        quote_asset=ticker.quote_asset.strip().upper(),
        last=ticker.last_price if ticker.last_price is not None else ZERO,
        volume=ticker.volume if ticker.volume is not None else ZERO,
        trade_url=(ticker.trade_url or "").strip(),
    )


def confirm_entry(
    entry: ExchangeEntry,
    contract: str,
    chain: str,
    assets: AssetDirectory,
    stats: Optional[ReconciliationStats] = None,
) -> ExchangeEntry:
    """Back an exchange entry with asset metadata, or default-confirm it on ``chain``."""
    record = assets.lookup(contract, entry.exchange_id)
    if record is not None:
        if stats is not None:
            stats.confirmed_exchanges += 1
        return entry.model_copy(
            update={
                "settlement_chain": record.settlement_chain,
                "confirmed": True,
                "deposit_enabled": record.deposit_enabled,
                "withdraw_enabled": record.withdraw_enabled,
                "withdraw_fee": record.withdraw_fee,
            }
        )

    if stats is not None:
        stats.defaulted_exchanges += 1
    return entry.model_copy(
        update={
            "settlement_chain": chain,
            "confirmed": True,
            "deposit_enabled": True,
            "withdraw_enabled": True,
            "withdraw_fee": ZERO,
        }
    )


def _merge_exchanges(
    existing: Tuple[ExchangeEntry, ...], incoming: Iterable[ExchangeEntry]
) -> Tuple[ExchangeEntry, ...]:
    seen = {(e.exchange_id, e.base_asset, e.quote_asset) for e in existing}
    merged = list(existing)
    for entry in incoming:
        key = (entry.exchange_id, entry.base_asset, entry.quote_asset)
        if key not in seen:
            seen.add(key)
            merged.append(entry)
    return tuple(merged)


def build_token_entries(
    catalog: Sequence[CatalogEntry],
    tickers: Iterable[RawTicker],
    assets: AssetDirectory,
    stats: Optional[ReconciliationStats] = None,
) -> List[TokenEntry]:
    stats = stats if stats is not None else ReconciliationStats()
    by_coin = index_tickers(tickers)
    tokens: Dict[Tuple[str, str, str], TokenEntry] = {}

    for coin in catalog:
        stats.coins += 1
        if not coin.coin_id or not coin.platforms:
            continue
        stats.coins_with_platforms += 1

        coin_tickers = _quoted(by_coin.get(coin.coin_id.lower(), []))
        if not coin_tickers:
            continue
        symbol = (coin.symbol or coin.coin_id).strip().upper()

        for raw_chain, raw_contract in coin.platforms.items():
            if not is_target_chain(raw_chain) or not raw_contract or not raw_contract.strip():
                continue
            chain = raw_chain.strip().lower()
            contract = raw_contract.strip()
            try:
                if contract in assets:
                    stats.matched_contracts += 1
                entries = [
                    confirm_entry(_exchange_entry(t, symbol), contract, chain, assets, stats)
                    for t in coin_tickers
                ]
            except ValueError as exc:
                log.debug(f"Skipping {coin.coin_id} on {chain}: {exc}")
                continue

            token = TokenEntry(symbol=symbol, chain=chain, contract_address=contract)
            existing = tokens.get(token.key)
            base = existing.exchanges if existing is not None else ()
            tokens[token.key] = (existing or token).model_copy(
                update={"exchanges": _merge_exchanges(base, entries)}
            )

    result = [t for t in tokens.values() if t.exchanges]
    stats.tokens = len(result)
    for token in result:
        stats.exchanges.update(e.exchange_id for e in token.exchanges)
    return result


# ---------------------------------------------------------------------------
# Step 4: ambiguity resolution
# ---------------------------------------------------------------------------
def _confirmed_chain(token: TokenEntry) -> str:
    for entry in token.exchanges:
        if entry.confirmed:
            return normalize_chain(entry.settlement_chain)
    return ""


def resolve_chain_ambiguity(tokens: Sequence[TokenEntry]) -> List[TokenEntry]:
    """Keep only the chain variants the exchanges agree on.

    Per (symbol, contract) group: when the confirmed exchange entries point at
    exactly one recognized chain, drop the group members on other chains. With
    zero or several distinct chains the group cannot be disambiguated and is
    kept as is; the same holds when no member sits on the agreed chain.
    """
    groups: Dict[Tuple[str, str], List[TokenEntry]] = {}
    for token in tokens:
        groups.setdefault((token.symbol, token.contract_address), []).append(token)

    resolved: List[TokenEntry] = []
    for (symbol, contract), members in groups.items():
        chains: List[str] = []
        for member in members:
            chain = _confirmed_chain(member)
            if chain and chain not in chains:
                chains.append(chain)

        if len(chains) != 1:
            resolved.extend(members)
            continue

        matching = [m for m in members if m.chain.lower() == chains[0]]
        if not matching:
            log.debug(f"{symbol} {contract}: exchanges settle on {chains[0]}, not listed by catalog; kept")
            resolved.extend(members)
            continue
        if len(matching) < len(members):
            dropped = sorted({m.chain for m in members if m not in matching})
            log.debug(f"{symbol} {contract}: kept {chains[0]}, dropped {dropped}")
        resolved.extend(matching)
    return resolved


# ---------------------------------------------------------------------------
# Step 5: quote partitioning
# ---------------------------------------------------------------------------
def partition_by_quote(tokens: Iterable[TokenEntry], quotes: Iterable[str]) -> List[TokenEntry]:
    wanted = {q.upper() for q in quotes}
    view: List[TokenEntry] = []
    for token in tokens:
        exchanges = tuple(e for e in token.exchanges if e.quote_asset.upper() in wanted)
        if exchanges:
            view.append(token.model_copy(update={"exchanges": exchanges}))
    return view


def build_directory(tokens: Sequence[TokenEntry], version: int = 0) -> Directory:
    all_tokens = tuple(tokens)
    return Directory(
        all_tokens=all_tokens,
        usdt=tuple(partition_by_quote(all_tokens, QUOTE_VIEWS["usdt"])),
        sol_eth=tuple(partition_by_quote(all_tokens, QUOTE_VIEWS["sol_eth"])),
        usdc=tuple(partition_by_quote(all_tokens, QUOTE_VIEWS["usdc"])),
        version=version,
        published_at=datetime.now(timezone.utc),
    )


def reconcile(
    catalog: Sequence[CatalogEntry],
    tickers: Sequence[RawTicker],
    assets: AssetDirectory,
) -> List[TokenEntry]:
    """Steps 1-4; returns the resolved "all tokens" list."""
    stats = ReconciliationStats()
    log.info(f"Reconciling {len(catalog)} coins against {len(tickers)} tickers")
    tokens = build_token_entries(catalog, tickers, assets, stats)
    log.info(f"Reconciliation stats: {stats.summary()}")
    log.info(f"Exchanges in result: {dict(stats.exchanges.most_common())}")

    resolved = resolve_chain_ambiguity(tokens)
    log.info(f"Chain filter: before={len(tokens)} after={len(resolved)}")
    return resolved
