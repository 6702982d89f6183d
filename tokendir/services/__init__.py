# Services package
from tokendir.services.asset_directory import AssetDirectory, AssetDirectoryBuilder
from tokendir.services.chains import DEX_CHAIN_INDEX, TARGET_CHAINS, normalize_chain
from tokendir.services.dex_enrichment import DexEnrichmentBatcher, RateLimitBackoff, apply_dex_quotes
from tokendir.services.pipeline import DirectoryPipeline
from tokendir.services.price_overlay import overlay_directory
from tokendir.services.reconciliation import (
    build_directory,
    build_token_entries,
    partition_by_quote,
    reconcile,
    resolve_chain_ambiguity,
)
from tokendir.services.store import DirectoryStore

__all__ = [
    "AssetDirectory",
    "AssetDirectoryBuilder",
    "DEX_CHAIN_INDEX",
    "DexEnrichmentBatcher",
    "DirectoryPipeline",
    "DirectoryStore",
    "RateLimitBackoff",
    "TARGET_CHAINS",
    "apply_dex_quotes",
    "build_directory",
    "build_token_entries",
    "normalize_chain",
    "overlay_directory",
    "partition_by_quote",
    "reconcile",
    "resolve_chain_ambiguity",
]
