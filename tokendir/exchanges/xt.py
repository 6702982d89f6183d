from decimal import Decimal
from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, raw_field, str_field, to_decimal
from tokendir.exchanges.base import ExchangeAdapter
from tokendir.models.directory import ZERO, AssetRecord


def _optional_fee(obj: Any, key: str) -> Extracted[Decimal]:
    """XT omits the fee for some chains and sends it as a string or a number."""
    raw = raw_field(obj, key)
    if not raw.ok:
        return Extracted.of(ZERO)
    parsed = to_decimal(raw.value)
    return parsed if parsed.ok else Extracted.of(ZERO)


class XtAdapter(ExchangeAdapter):
    exchange_id = "xt"
    catalog_id = "xt"
    base_url = "https://sapi.xt.com"

    asset_path = "/v4/public/wallet/support/currency"

    ticker_path = "/v4/public/ticker"
    ticker_container = ("result",)
    symbol_field = "s"
    last_field = "c"
    volume_field = "q"
    turnover_field = "v"
    symbol_separator = "_"

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        for currency in list_at(payload, "result"):
            for chain in list_at(currency, "supportChains"):
                yield self.asset_record(
                    contract=str_field(chain, "contract"),
                    chain=self.chain_label(chain, "chain"),
                    deposit=bool_field(chain, "depositEnabled"),
                    withdraw=bool_field(chain, "withdrawEnabled"),
                    fee=_optional_fee(chain, "withdrawFeeAmount"),
                )
