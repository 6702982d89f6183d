"""Exchange adapter interface.

An adapter bundles everything exchange-specific the pipeline needs: how to
request and parse asset (deposit/withdraw) metadata, where the raw ticker
snapshot lives and how to read it, and how the exchange spells a trading pair.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Any, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from tokendir.core.config import Credentials
from tokendir.core.extraction import (
    Extracted,
    decimal_field,
    first_absent,
    list_at,
    raw_field,
    str_field,
    to_decimal,
)
from tokendir.exchanges.signing import Clock, PublicSigner, RequestDescriptor, SignedRequest, Signer
from tokendir.models.directory import ZERO, AssetRecord


class TickerQuote(BaseModel):
    """Prices read from one raw ticker row; None means the exchange does not report the field."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    last: Decimal
    volume: Optional[Decimal] = None
    turnover: Optional[Decimal] = None


def fee_field(obj: Any, key: str) -> Extracted[Decimal]:
    """Fee must be present; an unparsable value counts as zero."""
    result = raw_field(obj, key)
    if not result.ok:
        return result
    parsed = to_decimal(result.value)
    return parsed if parsed.ok else Extracted.of(ZERO)


class ExchangeAdapter:
    exchange_id: str = ""
    catalog_id: str = ""
    aliases: Tuple[str, ...] = ()
    base_url: str = ""

    # Asset metadata endpoint; None when the exchange is not in the asset roster
    asset_path: Optional[str] = None
    credential_prefix: Optional[str] = None

    # Raw ticker snapshot
    ticker_path: str = ""
    ticker_container: Tuple[str, ...] = ()
    symbol_field: str = "symbol"
    last_field: str = "last"
    volume_field: Optional[str] = None
    turnover_field: Optional[str] = None
    symbol_separator: str = ""

    def __init__(self, clock: Clock = time.time):
        self._clock = clock

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.exchange_id}>"

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.exchange_id, self.catalog_id, *self.aliases)

    @property
    def has_asset_endpoint(self) -> bool:
        return self.asset_path is not None

    # ------------------------------------------------------------------
    # Asset metadata
    # ------------------------------------------------------------------
    def signer(self) -> Signer:
        return PublicSigner(self._clock)

    def asset_request(self, credentials: Credentials) -> Optional[SignedRequest]:
        if self.asset_path is None:
            return None
        descriptor = RequestDescriptor(base_url=self.base_url, path=self.asset_path)
        return self.signer().sign(credentials, descriptor, source=self.exchange_id)

    def parse_asset_metadata(self, payload: Any) -> Iterator[Extracted[AssetRecord]]:
        return iter(())

    def asset_record(
        self,
        contract: Extracted[str],
        chain: Extracted[str],
        deposit: Extracted[bool],
        withdraw: Extracted[bool],
        fee: Extracted[Decimal],
    ) -> Extracted[AssetRecord]:
        missing = first_absent(contract, chain, deposit, withdraw, fee)
        if missing is not None:
            return Extracted.absent(missing.reason)
        return Extracted.of(
            AssetRecord(
                exchange_id=self.exchange_id,
                contract_address=contract.value.lower(),
                settlement_chain=chain.value,
                deposit_enabled=deposit.value,
                withdraw_enabled=withdraw.value,
                withdraw_fee=fee.value,
            )
        )

    @staticmethod
    def chain_label(obj: Any, key: str) -> Extracted[str]:
        return str_field(obj, key, allow_empty=True)

    # ------------------------------------------------------------------
    # Raw tickers
    # ------------------------------------------------------------------
    @property
    def ticker_url(self) -> str:
        return self.base_url + self.ticker_path

    def ticker_rows(self, payload: Any) -> List[Any]:
        if not self.ticker_container:
            return payload if isinstance(payload, list) else []
        return list_at(payload, *self.ticker_container)

    def parse_raw_ticker(self, row: Any) -> Extracted[TickerQuote]:
        symbol = str_field(row, self.symbol_field)
        last = decimal_field(row, self.last_field)
        volume = decimal_field(row, self.volume_field) if self.volume_field else Extracted.of(None)
        turnover = decimal_field(row, self.turnover_field) if self.turnover_field else Extracted.of(None)

        missing = first_absent(symbol, last, volume, turnover)
        if missing is not None:
            return Extracted.absent(missing.reason)
        return Extracted.of(
            TickerQuote(
                symbol=symbol.value.upper(),
                last=last.value,
                volume=volume.value,
                turnover=turnover.value,
            )
        )

    def compose_symbol(self, base: str, quote: str) -> str:
        return f"{base}{self.symbol_separator}{quote}".upper()
