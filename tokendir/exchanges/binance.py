from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter, fee_field
from tokendir.exchanges.signing import QueryStringSigner, Signer
from tokendir.models.directory import AssetRecord


class BinanceAdapter(ExchangeAdapter):
    exchange_id = "binance"
    catalog_id = "binance"
    base_url = "https://api.binance.com"

    asset_path = "/sapi/v1/capital/config/getall"
    credential_prefix = "BINANCE"

    ticker_path = "/api/v3/ticker/price"
    symbol_field = "symbol"
    last_field = "price"

    def signer(self) -> Signer:
        return QueryStringSigner("X-MBX-APIKEY", self._clock)

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        if not isinstance(payload, list):
            return
        for coin in payload:
            for network in list_at(coin, "networkList"):
                yield self.asset_record(
                    contract=str_field(network, "contractAddress"),
                    chain=self.chain_label(network, "network"),
                    deposit=bool_field(network, "depositEnable"),
                    withdraw=bool_field(network, "withdrawEnable"),
                    fee=fee_field(network, "withdrawFee"),
                )
