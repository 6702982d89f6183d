"""DEX Enrichment Batcher.

Looks up DEX price, liquidity and market cap for every distinct
(chain, contract) in the directory through the OKX DEX price-info endpoint.
Batches go out strictly one after another with an inter-batch delay; rate-limit
responses widen that delay up to a cap and the wider delay carries over to the
next cycle through ``RateLimitBackoff``.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

import httpx

from tokendir.core.config import Credentials, settings
from tokendir.core.errors import (
    AuthenticationError,
    MissingCredentialsError,
    PayloadTooLargeError,
    PipelineError,
    RateLimitError,
)
from tokendir.core.extraction import Extracted, raw_field, str_field, to_decimal
from tokendir.core.logging import get_logger
from tokendir.exchanges.signing import Clock, OkxSigner, RequestDescriptor
from tokendir.ingestion.http import request_json
from tokendir.models.directory import ZERO, DexQuote, TokenEntry
from tokendir.services.chains import DEX_CHAIN_INDEX, dex_chain_index

log = get_logger("services.dex_enrichment")

DEX_BASE_URL = "https://www.okx.com"
DEX_PRICE_PATH = "/api/v6/dex/market/price-info"

RATE_LIMIT_CODE = "50011"
AUTH_ERROR_CODES = frozenset({"50111", "50113"})
OVERSIZED_MARKER = "not stored due to its length"

QuoteKey = Tuple[str, str]
BatchStatus = Literal["ok", "empty", "rate_limited", "oversized", "auth_failed", "failed"]


@dataclass(frozen=True)
class RateLimitBackoff:
    """Inter-batch delay; ``bump`` widens it by one step, never past ``max_ms``."""

    delay_ms: int = 50
    step_ms: int = 50
    max_ms: int = 500
    hits: int = 0

    @classmethod
    def from_settings(cls) -> "RateLimitBackoff":
        return cls(
            delay_ms=settings.DEX_INITIAL_DELAY_MS,
            step_ms=settings.DEX_DELAY_STEP_MS,
            max_ms=settings.DEX_MAX_DELAY_MS,
        )

    def bump(self) -> "RateLimitBackoff":
        return replace(self, delay_ms=min(self.delay_ms + self.step_ms, self.max_ms), hits=self.hits + 1)

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000


@dataclass(frozen=True)
class DexLookup:
    chain_index: str
    contract_address: str
    chain: str

    def as_param(self) -> Dict[str, str]:
        return {"chainIndex": self.chain_index, "tokenContractAddress": self.contract_address}


@dataclass(frozen=True)
class BatchOutcome:
    status: BatchStatus
    quotes: Dict[QuoteKey, DexQuote] = field(default_factory=dict)
    detail: str = ""


@dataclass(frozen=True)
class EnrichmentResult:
    quotes: Dict[QuoteKey, DexQuote]
    backoff: RateLimitBackoff
    requested: int = 0
    batches: int = 0
    failed_batches: int = 0
    skipped: bool = False


def _optional_decimal(item: Any, key: str) -> Decimal:
    raw = raw_field(item, key)
    if not raw.ok:
        return ZERO
    parsed = to_decimal(raw.value)
    return parsed.value if parsed.ok else ZERO


def parse_price_item(item: Any, lookups: Mapping[str, DexLookup]) -> Extracted[DexQuote]:
    """One price-info row; rejected unless the price parses strictly positive."""
    chain_index = str_field(item, "chainIndex")
    contract = str_field(item, "tokenContractAddress")
    if not chain_index.ok or not contract.ok:
        return Extracted.absent(chain_index.reason or contract.reason)

    lookup = lookups.get(f"{chain_index.value}:{contract.value}".lower())
    if lookup is None:
        return Extracted.absent(f"unrequested pair {chain_index.value}:{contract.value}")

    price = to_decimal(raw_field(item, "price").value)
    if not price.ok or price.value <= 0:
        return Extracted.absent(f"no positive price for {lookup.chain}:{contract.value}")

    return Extracted.of(
        DexQuote(
            chain=lookup.chain,
            contract_address=contract.value.lower(),
            price=price.value,
            liquidity=_optional_decimal(item, "liquidity"),
            market_cap=_optional_decimal(item, "marketCap"),
        )
    )


def parse_price_response(payload: Any, lookups: Mapping[str, DexLookup]) -> BatchOutcome:
    if not isinstance(payload, dict):
        return BatchOutcome("failed", detail="response is not an object")

    code = str(payload.get("code") or "0")
    msg = str(payload.get("msg") or "")

    if OVERSIZED_MARKER in msg:
        return BatchOutcome("oversized", detail=msg)
    if code == RATE_LIMIT_CODE:
        return BatchOutcome("rate_limited", detail=msg)
    if code in AUTH_ERROR_CODES:
        return BatchOutcome("auth_failed", detail=f"code {code}: {msg}")
    if code != "0":
        return BatchOutcome("failed", detail=f"code {code}: {msg}")

    data = payload.get("data")
    if not isinstance(data, list):
        return BatchOutcome("empty", detail="no data array")

    quotes: Dict[QuoteKey, DexQuote] = {}
    for item in data:
        extracted = parse_price_item(item, lookups)
        if extracted.ok:
            quotes[extracted.value.key] = extracted.value
        else:
            log.debug(f"DEX item skipped: {extracted.reason}")
    return BatchOutcome("ok" if quotes else "empty", quotes=quotes)


def apply_dex_quotes(tokens: Sequence[TokenEntry], quotes: Mapping[QuoteKey, DexQuote]) -> List[TokenEntry]:
    """Overlay DEX fields by (chain, contract); unmatched tokens keep their previous values."""
    applied: List[TokenEntry] = []
    for token in tokens:
        quote = quotes.get(token.dex_key)
        if quote is None:
            applied.append(token)
            continue
        applied.append(
            token.model_copy(
                update={
                    "dex_price": quote.price,
                    "dex_liquidity": quote.liquidity,
                    "dex_market_cap": quote.market_cap,
                }
            )
        )
    return applied


def quotes_blob(quotes: Mapping[QuoteKey, DexQuote]) -> List[Dict[str, str]]:
    """Diagnostic form of the enrichment result: every value as a string."""
    return [
        {
            "chainName": quote.chain,
            "tokenContractAddress": quote.contract_address,
            "price": str(quote.price),
            "liquidity": str(quote.liquidity),
            "marketCap": str(quote.market_cap),
        }
        for quote in quotes.values()
    ]


class DexEnrichmentBatcher:
    """Sequential, rate-limit aware batch lookups against the DEX price source."""

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        batch_size: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Clock = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.credentials = credentials if credentials is not None else settings.credentials_for("OKX")
        self.batch_size = batch_size or settings.DEX_BATCH_SIZE
        self.timeout = timeout or settings.DEX_REQUEST_TIMEOUT_SECONDS
        self.transport = transport
        self.signer = OkxSigner(clock)
        self._sleep = sleep

    @staticmethod
    def lookups_for(tokens: Sequence[TokenEntry]) -> List[DexLookup]:
        """Distinct (chain, contract) pairs on chains the DEX source indexes."""
        seen = set()
        lookups: List[DexLookup] = []
        for token in tokens:
            if not token.chain or not token.contract_address.strip():
                continue
            key = token.dex_key
            if key in seen:
                continue
            seen.add(key)
            chain_index = dex_chain_index(token.chain)
            if chain_index is None:
                continue
            lookups.append(DexLookup(chain_index, token.contract_address.strip(), DEX_CHAIN_INDEX[chain_index]))
        return lookups

    async def enrich(self, tokens: Sequence[TokenEntry], backoff: RateLimitBackoff) -> EnrichmentResult:
        try:
            self.signer.check(self.credentials, "okx_dex")
        except MissingCredentialsError as exc:
            log.warning(f"DEX enrichment skipped this cycle: {exc}")
            return EnrichmentResult(quotes={}, backoff=backoff, skipped=True)

        lookups = self.lookups_for(tokens)
        batches = [lookups[i : i + self.batch_size] for i in range(0, len(lookups), self.batch_size)]
        log.info(
            f"DEX enrichment: {len(lookups)} pairs in {len(batches)} batches of {self.batch_size}, "
            f"delay={backoff.delay_ms}ms"
        )

        quotes: Dict[QuoteKey, DexQuote] = {}
        failed = 0
        for number, batch in enumerate(batches, start=1):
            outcome = await self._run_batch(batch)
            label = f"DEX batch {number}/{len(batches)}"

            if outcome.status == "ok":
                quotes.update(outcome.quotes)
            elif outcome.status == "rate_limited":
                failed += 1
                backoff = backoff.bump()
                log.warning(f"{label}: rate limited, delay now {backoff.delay_ms}ms (hit #{backoff.hits})")
            elif outcome.status == "oversized":
                failed += 1
                log.error(f"{label}: response too large, reduce DEX_BATCH_SIZE ({self.batch_size})")
            elif outcome.status == "auth_failed":
                failed += 1
                log.error(f"{label}: authentication rejected, check OKX credentials ({outcome.detail})")
            else:
                failed += 1
                log.warning(f"{label}: no prices ({outcome.status}: {outcome.detail})")

            await self._sleep(backoff.delay_seconds)

        log.info(f"DEX enrichment finished: prices={len(quotes)} failed_batches={failed}/{len(batches)}")
        return EnrichmentResult(
            quotes=quotes,
            backoff=backoff,
            requested=len(lookups),
            batches=len(batches),
            failed_batches=failed,
        )

    async def _run_batch(self, batch: Sequence[DexLookup]) -> BatchOutcome:
        lookups = {f"{item.chain_index}:{item.contract_address}".lower(): item for item in batch}
        body = json.dumps([item.as_param() for item in batch], separators=(",", ":"))
        request = self.signer.sign(
            self.credentials,
            RequestDescriptor(method="POST", base_url=DEX_BASE_URL, path=DEX_PRICE_PATH, body=body),
            source="okx_dex",
        )
        try:
            payload = await request_json(
                request.method,
                request.url,
                source="okx_dex",
                timeout=self.timeout,
                headers=request.headers,
                content=request.content,
                transport=self.transport,
            )
        except RateLimitError as exc:
            return BatchOutcome("rate_limited", detail=str(exc))
        except AuthenticationError as exc:
            return BatchOutcome("auth_failed", detail=str(exc))
        except PayloadTooLargeError as exc:
            return BatchOutcome("oversized", detail=str(exc))
        except PipelineError as exc:
            return BatchOutcome("failed", detail=str(exc))
        return parse_price_response(payload, lookups)
