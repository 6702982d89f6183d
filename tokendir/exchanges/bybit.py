from typing import Any, Iterator

from tokendir.core.extraction import Extracted, bool_field, list_at, str_field
from tokendir.exchanges.base import ExchangeAdapter, fee_field
from tokendir.exchanges.signing import BybitSigner, Signer
from tokendir.models.directory import AssetRecord

# Bybit rejects requests stamped ahead of its own clock
CLOCK_OFFSET_MS = 10_000


class BybitAdapter(ExchangeAdapter):
    exchange_id = "bybit"
    catalog_id = "bybit_spot"
    base_url = "https://api.bybit.com"

    asset_path = "/v5/asset/coin/query-info"
    credential_prefix = "BYBIT"

    ticker_path = "/v5/market/tickers?category=spot"
    ticker_container = ("result", "list")
    symbol_field = "symbol"
    last_field = "lastPrice"
    volume_field = "volume24h"
    turnover_field = "turnover24h"

    def signer(self) -> Signer:
        return BybitSigner(self._clock, recv_window=30_000, clock_offset_ms=CLOCK_OFFSET_MS)

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        for coin in list_at(payload, "result", "rows"):
            for chain in list_at(coin, "chains"):
                yield self.asset_record(
                    contract=str_field(chain, "contractAddress"),
                    chain=self.chain_label(chain, "chain"),
                    deposit=bool_field(chain, "chainDeposit", truthy=("1",)),
                    withdraw=bool_field(chain, "chainWithdraw", truthy=("1",)),
                    fee=fee_field(chain, "withdrawFee"),
                )
