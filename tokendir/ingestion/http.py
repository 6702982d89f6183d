"""Shared HTTP call used by every upstream source.

Maps transport failures and HTTP statuses onto the pipeline error taxonomy so
callers branch on exception type instead of status codes.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from tokendir.core.errors import (
    AuthenticationError,
    PayloadTooLargeError,
    RateLimitError,
    SourceParseError,
    SourceUnavailableError,
)


async def request_json(
    method: str,
    url: str,
    *,
    source: str,
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    content: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.request(method, url, headers=headers, params=params, content=content or None)
    except httpx.TimeoutException as exc:
        raise SourceUnavailableError(f"timed out after {timeout}s", source=source) from exc
    except httpx.HTTPError as exc:
        raise SourceUnavailableError(f"transport error: {exc!r}", source=source) from exc

    if resp.status_code in (401, 403):
        raise AuthenticationError(f"HTTP {resp.status_code}: {resp.text[:200]}", source=source)
    if resp.status_code == 429:
        raise RateLimitError("HTTP 429", source=source)
    if resp.status_code == 413:
        raise PayloadTooLargeError("HTTP 413", source=source)
    if resp.is_error:
        raise SourceUnavailableError(f"HTTP {resp.status_code}", source=source)

    try:
        return resp.json()
    except ValueError as exc:
        raise SourceParseError(f"malformed JSON: {exc}", source=source) from exc
