"""Token directory domain models.

Every model is frozen: the published directory is handed to readers as an
immutable snapshot, and writers build new instances with ``model_copy``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

ZERO = Decimal("0")


class RawTicker(BaseModel):
    """One catalog-side ticker row for an exchange, valid for a single reconciliation pass."""

    model_config = ConfigDict(frozen=True)

    exchange_id: str
    base_asset: Optional[str] = None
    quote_asset: Optional[str] = None
    last_price: Optional[Decimal] = None
    volume: Optional[Decimal] = None
    trade_url: Optional[str] = None
    coin_catalog_id: Optional[str] = None


class CatalogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    coin_id: str
    symbol: Optional[str] = None
    platforms: Dict[str, Optional[str]] = Field(default_factory=dict)


class AssetRecord(BaseModel):
    """Deposit/withdraw metadata an exchange reports for one contract."""

    model_config = ConfigDict(frozen=True)

    exchange_id: str
    contract_address: str
    settlement_chain: str
    deposit_enabled: bool
    withdraw_enabled: bool
    withdraw_fee: Decimal = ZERO


class ExchangeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    exchange_id: str
    base_asset: str
    quote_asset: str
    last: Decimal = ZERO
    volume: Decimal = ZERO
    turnover: Decimal = ZERO
    trade_url: str = ""
    settlement_chain: str = ""
    confirmed: bool = False
    deposit_enabled: bool = False
    withdraw_enabled: bool = False
    withdraw_fee: Decimal = ZERO


class TokenEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    chain: str
    contract_address: str
    dex_price: Decimal = ZERO
    dex_liquidity: Decimal = ZERO
    dex_market_cap: Decimal = ZERO
    exchanges: Tuple[ExchangeEntry, ...] = ()

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.symbol, self.contract_address, self.chain)

    @property
    def dex_key(self) -> Tuple[str, str]:
        return (self.chain.lower(), self.contract_address.lower())


class DexQuote(BaseModel):
    """A DEX price observation for one (chain, contract)."""

    model_config = ConfigDict(frozen=True)

    chain: str
    contract_address: str
    price: Decimal
    liquidity: Decimal = ZERO
    market_cap: Decimal = ZERO

    @property
    def key(self) -> Tuple[str, str]:
        return (self.chain.lower(), self.contract_address.lower())


class Directory(BaseModel):
    """The published, quote-partitioned token directory."""

    model_config = ConfigDict(frozen=True)

    all_tokens: Tuple[TokenEntry, ...] = ()
    usdt: Tuple[TokenEntry, ...] = ()
    sol_eth: Tuple[TokenEntry, ...] = ()
    usdc: Tuple[TokenEntry, ...] = ()
    version: int = 0
    published_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    # Last live price overlay; published_at only moves on reconciliation
    prices_updated_at: Optional[datetime] = None

    def view(self, name: str) -> Tuple[TokenEntry, ...]:
        return {
            "all": self.all_tokens,
            "usdt": self.usdt,
            "sol_eth": self.sol_eth,
            "usdc": self.usdc,
        }[name]
