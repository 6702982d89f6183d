from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter, fee_field
from tokendir.models.directory import AssetRecord


class KucoinAdapter(ExchangeAdapter):
    exchange_id = "kucoin"
    catalog_id = "kucoin"
    base_url = "https://api.kucoin.com"

    asset_path = "/api/v3/currencies"

    ticker_path = "/api/v1/market/allTickers"
    ticker_container = ("data", "ticker")
    symbol_field = "symbol"
    last_field = "last"
    volume_field = "vol"
    turnover_field = "volValue"
    symbol_separator = "-"

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        for currency in list_at(payload, "data"):
            for chain in list_at(currency, "chains"):
                yield self.asset_record(
                    contract=str_field(chain, "contractAddress"),
                    chain=self.chain_label(chain, "chainName"),
                    deposit=bool_field(chain, "isDepositEnabled"),
                    withdraw=bool_field(chain, "isWithdrawEnabled"),
                    fee=fee_field(chain, "withdrawalMinFee"),
                )
