from tokendir.models.directory import (
    AssetRecord,
    CatalogEntry,
    DexQuote,
    Directory,
    ExchangeEntry,
    RawTicker,
    TokenEntry,
)
from tokendir.models.runs import CycleRun

__all__ = [
    "AssetRecord",
    "CatalogEntry",
    "CycleRun",
    "DexQuote",
    "Directory",
    "ExchangeEntry",
    "RawTicker",
    "TokenEntry",
]
