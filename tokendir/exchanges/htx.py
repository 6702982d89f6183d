from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter
from tokendir.models.directory import ZERO, AssetRecord


class HtxAdapter(ExchangeAdapter):
    exchange_id = "htx"
    catalog_id = "huobi"
    aliases = ("huobi_global",)
    base_url = "https://api.huobi.pro"

    # Chain settings carry no fee
    asset_path = "/v1/settings/common/chains"

    ticker_path = "/market/tickers"
    ticker_container = ("data",)
    symbol_field = "symbol"
    last_field = "close"
    volume_field = "vol"

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        for chain in list_at(payload, "data"):
            yield self.asset_record(
                contract=str_field(chain, "ca"),
                chain=self.chain_label(chain, "dn"),
                deposit=bool_field(chain, "de"),
                withdraw=bool_field(chain, "we"),
                fee=Extracted.of(ZERO),
            )
