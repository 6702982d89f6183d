from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter, fee_field
from tokendir.exchanges.signing import QueryStringSigner, Signer
from tokendir.models.directory import AssetRecord


class MexcAdapter(ExchangeAdapter):
    exchange_id = "mexc"
    catalog_id = "mxc"
    base_url = "https://api.mexc.com"

    asset_path = "/api/v3/capital/config/getall"
    credential_prefix = "MEXC"

    ticker_path = "/api/v3/ticker/24hr"
    symbol_field = "symbol"
    last_field = "lastPrice"
    volume_field = "volume"
    turnover_field = "quoteVolume"

    def signer(self) -> Signer:
        return QueryStringSigner("X-MEXC-APIKEY", self._clock)

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        if not isinstance(payload, list):
            return
        for coin in payload:
            for network in list_at(coin, "networkList"):
                yield self.asset_record(
                    contract=str_field(network, "contract"),
                    chain=self.chain_label(network, "netWork"),
                    deposit=bool_field(network, "depositEnable"),
                    withdraw=bool_field(network, "withdrawEnable"),
                    fee=fee_field(network, "withdrawFee"),
                )
