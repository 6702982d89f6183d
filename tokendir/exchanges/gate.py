from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter
from tokendir.models.directory import ZERO, AssetRecord


def _enabled(obj: Any, disabled_key: str) -> Extracted[bool]:
    disabled = bool_field(obj, disabled_key)
    return Extracted.of(not disabled.value) if disabled.ok else disabled


class GateAdapter(ExchangeAdapter):
    exchange_id = "gate"
    catalog_id = "gate"
    aliases = ("gateio", "gate.io")
    base_url = "https://api.gateio.ws"

    asset_path = "/api/v4/spot/currencies"

    ticker_path = "/api/v4/spot/tickers"
    symbol_field = "currency_pair"
    last_field = "last"
    volume_field = "base_volume"
    turnover_field = "quote_volume"
    symbol_separator = "_"

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        if not isinstance(payload, list):
            return
        for currency in payload:
            for chain in list_at(currency, "chains"):
                yield self.asset_record(
                    contract=str_field(chain, "addr"),
                    chain=self.chain_label(chain, "name"),
                    deposit=_enabled(chain, "deposit_disabled"),
                    withdraw=_enabled(chain, "withdraw_disabled"),
                    fee=Extracted.of(ZERO),
                )
