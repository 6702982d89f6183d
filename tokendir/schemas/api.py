from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from tokendir.models.directory import TokenEntry


class DirectoryResponse(BaseModel):
    request_id: str
    api_latency_ms: int
    view: str
    version: int
    published_at: datetime
    count: int
    data: list[TokenEntry]


class DexPriceOut(BaseModel):
    chainName: str
    tokenContractAddress: str
    price: str
    liquidity: str
    marketCap: str


class DexPricesResponse(BaseModel):
    updated_at: Optional[datetime] = None
    count: int
    data: list[DexPriceOut]


class HealthResponse(BaseModel):
    status: str
    directory_version: int | None = None
    published_at: datetime | None = None
    prices_updated_at: datetime | None = None
    age_seconds: float | None = None
    tokens: int = 0
    last_reconciliation_status: str | None = None
    fresh_ticker_exchanges: list[str] = []
    ticker_age_seconds: dict[str, float] = {}


class StatsResponse(BaseModel):
    run_id: str
    cycle: str
    status: str
    records_processed: int
    error_message: str | None = None
    started_at: datetime
    ended_at: datetime | None

    class Config:
        from_attributes = True
