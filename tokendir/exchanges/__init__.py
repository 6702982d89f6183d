"""Exchange adapter registry.

Adapters are looked up by canonical id or by any alias (the catalog uses its
own ids such as ``okex`` and ``mxc``). Adding an exchange means adding a module
and listing its adapter here.
"""

from typing import Dict, List, Optional, Tuple

from tokendir.exchanges.base import ExchangeAdapter, TickerQuote
from tokendir.exchanges.binance import BinanceAdapter
from tokendir.exchanges.bitget import BitgetAdapter
from tokendir.exchanges.bitmart import BitmartAdapter
from tokendir.exchanges.bybit import BybitAdapter
from tokendir.exchanges.gate import GateAdapter
from tokendir.exchanges.htx import HtxAdapter
from tokendir.exchanges.kucoin import KucoinAdapter
from tokendir.exchanges.lbank import LbankAdapter
from tokendir.exchanges.mexc import MexcAdapter
from tokendir.exchanges.okx import OkxAdapter
from tokendir.exchanges.poloniex import PoloniexAdapter
from tokendir.exchanges.xt import XtAdapter

ADAPTERS: Tuple[ExchangeAdapter, ...] = (
    BybitAdapter(),
    BinanceAdapter(),
    MexcAdapter(),
    OkxAdapter(),
    BitgetAdapter(),
    HtxAdapter(),
    BitmartAdapter(),
    GateAdapter(),
    KucoinAdapter(),
    XtAdapter(),
    LbankAdapter(),
    PoloniexAdapter(),
)

_BY_NAME: Dict[str, ExchangeAdapter] = {
    name.lower(): adapter for adapter in ADAPTERS for name in adapter.names
}


def get_adapter(name: str) -> Optional[ExchangeAdapter]:
    return _BY_NAME.get((name or "").strip().lower())


def canonical_exchange_id(name: str) -> str:
    """Map any known alias to the canonical id; unknown names are lower-cased."""
    adapter = get_adapter(name)
    return adapter.exchange_id if adapter else (name or "").strip().lower()


def all_adapters() -> List[ExchangeAdapter]:
    return list(ADAPTERS)


def asset_roster() -> List[ExchangeAdapter]:
    return [adapter for adapter in ADAPTERS if adapter.has_asset_endpoint]


__all__ = [
    "ADAPTERS",
    "ExchangeAdapter",
    "TickerQuote",
    "all_adapters",
    "asset_roster",
    "canonical_exchange_id",
    "get_adapter",
]
