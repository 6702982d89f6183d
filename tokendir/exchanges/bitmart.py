from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter, fee_field
from tokendir.models.directory import AssetRecord


class BitmartAdapter(ExchangeAdapter):
    exchange_id = "bitmart"
    catalog_id = "bitmart"
    base_url = "https://api-cloud.bitmart.com"

    asset_path = "/account/v1/currencies"

    ticker_path = "/spot/v1/ticker"
    ticker_container = ("data", "tickers")
    symbol_field = "symbol"
    last_field = "last_price"
    volume_field = "base_volume_24h"
    turnover_field = "quote_volume_24h"
    symbol_separator = "_"

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        for currency in list_at(payload, "data", "currencies"):
            yield self.asset_record(
                contract=str_field(currency, "contract_address"),
                chain=self.chain_label(currency, "network"),
                deposit=bool_field(currency, "deposit_enabled"),
                withdraw=bool_field(currency, "withdraw_enabled"),
                fee=fee_field(currency, "withdraw_fee"),
            )
