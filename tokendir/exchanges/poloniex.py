from tokendir.exchanges.base import ExchangeAdapter


class PoloniexAdapter(ExchangeAdapter):
    """Ticker-only: no asset metadata endpoint is polled."""

    exchange_id = "poloniex"
    catalog_id = "poloniex"
    base_url = "https://api.poloniex.com"

    ticker_path = "/markets/price"
    symbol_field = "symbol"
    last_field = "price"
    symbol_separator = "_"
