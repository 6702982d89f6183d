from typing import Any, List

from tokendir.core.extraction import list_at
from tokendir.exchanges.base import ExchangeAdapter


class LbankAdapter(ExchangeAdapter):
    """Ticker-only: LBank exposes no public asset metadata."""

    exchange_id = "lbank"
    catalog_id = "lbank"
    base_url = "https://api.lbkex.com"

    ticker_path = "/v2/supplement/ticker/price.do"
    symbol_field = "symbol"
    last_field = "price"
    symbol_separator = "_"

    def ticker_rows(self, payload: Any) -> List[Any]:
        if isinstance(payload, list):
            return payload
        return list_at(payload, "data")
