from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter, fee_field
from tokendir.exchanges.signing import OkxSigner, Signer
from tokendir.models.directory import AssetRecord


class OkxAdapter(ExchangeAdapter):
    exchange_id = "okx"
    catalog_id = "okex"
    base_url = "https://www.okx.com"

    asset_path = "/api/v5/asset/currencies"
    credential_prefix = "OKX"

    ticker_path = "/api/v5/market/tickers?instType=SPOT"
    ticker_container = ("data",)
    symbol_field = "instId"
    last_field = "last"
    volume_field = "vol24h"
    turnover_field = "volCcy24h"
    symbol_separator = "-"

    def signer(self) -> Signer:
        return OkxSigner(self._clock)

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        for currency in list_at(payload, "data"):
            yield self.asset_record(
                contract=str_field(currency, "ctAddr"),
                chain=self.chain_label(currency, "chain"),
                deposit=bool_field(currency, "canDep"),
                withdraw=bool_field(currency, "canWd"),
                fee=fee_field(currency, "fee"),
            )
