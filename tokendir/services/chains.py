"""Chain label normalization.

Exchanges spell the same network many ways ("ERC20", "ETH", "Ethereum").
``normalize_chain`` maps a free-form label onto the catalog's chain slugs; the
alias table is closed, so supporting a new chain means adding entries here.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Tuple

_ALIASES: Dict[str, Tuple[str, ...]] = {
    "ethereum": ("ETH", "ERC20", "ETHEREUM", "ETH-ERC20"),
    "solana": ("SOL", "SOL-SOL", "SOLANA", "SPL"),
    "arbitrum-one": ("ARBITRUM", "ARBITRUMONE", "ARBI", "ARBEVM", "ANIME-ARBITRUM ONE", "ARBITRUM-ONE"),
    "scroll": ("SCROLL", "SCROLLETH", "SCROLL-ETH"),
    "zksync": ("ZKSYNC", "ZKSYNCERA", "ZKSERA", "ZKSYNK"),
    "binance-smart-chain": ("BSC", "BEP20", "BNB SMART CHAIN", "BSC_BNB", "BNB", "BNBCHAIN"),
    "base": ("BASE", "BASEEVM", "BASE-ETH"),
    "zora-network": ("ZORA", "ZORA-NETWORK"),
    "sui": ("SUI",),
    "optimistic-ethereum": ("OPTIMISM", "OP", "OPETH", "OPT", "OPTIMISTIC-ETHEREUM"),
    "avalanche": ("AVAX", "AVAX_C", "C-CHAIN", "CAVAX", "AVALANCHE"),
    "tron": ("TRON", "TRX", "TRC20", "TRC"),
    "the-open-network": ("TON", "TONCOIN"),
    "aptos": ("APTOS", "APT"),
    "near-protocol": ("NEAR", "NEAR PROTOCOL"),
    "kava": ("KAVA",),
    "celo": ("CELO",),
    "linea": ("LINEA", "LINEAETH", "LINEA-ETH"),
    "polygon-pos": ("POLYGON", "MATIC", "POLYGON POS", "POLYGON-POS"),
    "osmosis": ("OSMOSIS",),
}

TARGET_CHAINS: FrozenSet[str] = frozenset(_ALIASES)

# Every slug resolves to itself so normalization is idempotent
_LOOKUP: Dict[str, str] = {slug.upper(): slug for slug in _ALIASES}
_LOOKUP.update({alias: slug for slug, aliases in _ALIASES.items() for alias in aliases})

# OKX DEX chain index -> chain slug
DEX_CHAIN_INDEX: Dict[str, str] = {
    "1": "ethereum",
    "501": "solana",
    "42161": "arbitrum-one",
    "534352": "scroll",
    "324": "zksync",
    "56": "binance-smart-chain",
    "8453": "base",
    "7777777": "zora-network",
    "784": "sui",
    "10": "optimistic-ethereum",
    "43114": "avalanche",
    "195": "tron",
    "607": "the-open-network",
    "59144": "linea",
    "137": "polygon-pos",
}

_INDEX_BY_CHAIN: Dict[str, str] = {chain: index for index, chain in DEX_CHAIN_INDEX.items()}


def normalize_chain(label: Optional[str]) -> str:
    """Return the canonical slug for ``label``, or "" when it is not recognized."""
    if not label or not label.strip():
        return ""
    return _LOOKUP.get(label.strip().upper(), "")


def is_target_chain(chain: Optional[str]) -> bool:
    return bool(chain) and chain.strip().lower() in TARGET_CHAINS


def dex_chain_index(chain: Optional[str]) -> Optional[str]:
    if not chain:
        return None
    return _INDEX_BY_CHAIN.get(chain.strip().lower())
