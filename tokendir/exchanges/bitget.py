from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter, fee_field
from tokendir.models.directory import AssetRecord


class BitgetAdapter(ExchangeAdapter):
    exchange_id = "bitget"
    catalog_id = "bitget"
    base_url = "https://api.bitget.com"

    asset_path = "/api/v2/spot/public/coins"

    ticker_path = "/api/v2/spot/market/tickers"
    ticker_container = ("data",)
    symbol_field = "symbol"
    last_field = "lastPr"
    volume_field = "baseVolume"
    turnover_field = "quoteVolume"

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        for coin in list_at(payload, "data"):
            for chain in list_at(coin, "chains"):
                yield self.asset_record(
                    contract=str_field(chain, "contractAddress"),
                    chain=self.chain_label(chain, "chain"),
                    deposit=bool_field(chain, "rechargeable"),
                    withdraw=bool_field(chain, "withdrawable"),
                    fee=fee_field(chain, "withdrawFee"),
                )
