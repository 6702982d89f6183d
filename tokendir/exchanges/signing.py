"""Request signing for authenticated exchange endpoints.

Every signer turns a ``RequestDescriptor`` plus credentials into a
transport-ready ``SignedRequest``. The timestamp is read from the clock inside
``sign`` so the request must be sent right after signing: exchanges reject
timestamps outside their receive window. Signers never retry; a rejected
signature surfaces as an authentication error to the caller.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from tokendir.core.config import Credentials
from tokendir.core.errors import MissingCredentialsError

Clock = Callable[[], float]


class RequestDescriptor(BaseModel):
    """Shape of a request before signing."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    base_url: str
    path: str
    params: Dict[str, str] = Field(default_factory=dict)
    body: str = ""


class SignedRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    content: str = ""


def hmac_sha256(secret: str, message: str) -> bytes:
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()


def _with_query(path: str, params: Dict[str, str]) -> str:
    return f"{path}?{urlencode(params)}" if params else path


class Signer(ABC):
    """Base signer; ``clock`` returns Unix seconds."""

    name = "base"
    requires_credentials = True
    requires_passphrase = False

    def __init__(self, clock: Clock = time.time):
        self._clock = clock

    def check(self, credentials: Credentials, source: str) -> None:
        if not self.requires_credentials:
            return
        if not credentials.complete:
            raise MissingCredentialsError("API key/secret not configured", source=source)
        if self.requires_passphrase and not credentials.passphrase:
            raise MissingCredentialsError("API passphrase not configured", source=source)

    def sign(self, credentials: Credentials, request: RequestDescriptor, source: str = "") -> SignedRequest:
        self.check(credentials, source or self.name)
        return self._sign(credentials, request)

    @abstractmethod
    def _sign(self, credentials: Credentials, request: RequestDescriptor) -> SignedRequest:
        """Build the signed request."""


class PublicSigner(Signer):
    """Unauthenticated endpoints: passes the request through."""

    name = "public"
    requires_credentials = False

    def _sign(self, credentials: Credentials, request: RequestDescriptor) -> SignedRequest:
        return SignedRequest(
            method=request.method,
            url=request.base_url + _with_query(request.path, request.params),
            headers={"Accept": "application/json"},
            content=request.body,
        )


class OkxSigner(Signer):
    """OKX: BASE64(HMAC-SHA256(timestamp + METHOD + path + body))."""

    name = "okx"
    requires_passphrase = True

    def timestamp(self) -> str:
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return now.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def _sign(self, credentials: Credentials, request: RequestDescriptor) -> SignedRequest:
        path = _with_query(request.path, request.params)
        method = request.method.upper()
        timestamp = self.timestamp()
        message = f"{timestamp}{method}{path}{request.body}"
        signature = base64.b64encode(hmac_sha256(credentials.secret_key, message)).decode()

        headers = {
            "Accept": "application/json",
            "OK-ACCESS-KEY": credentials.api_key,
            "OK-ACCESS-SIGN": signature,
            "OK-ACCESS-TIMESTAMP": timestamp,
            "OK-ACCESS-PASSPHRASE": credentials.passphrase,
        }
        if request.body:
            headers["Content-Type"] = "application/json"
        return SignedRequest(method=method, url=request.base_url + path, headers=headers, content=request.body)


class BybitSigner(Signer):
    """Bybit v5: HEX(HMAC-SHA256(timestamp + api_key + recv_window + query|body))."""

    name = "bybit"

    def __init__(self, clock: Clock = time.time, recv_window: int = 30_000, clock_offset_ms: int = 0):
        super().__init__(clock)
        self.recv_window = recv_window
        # Shifts the timestamp back when the local clock runs ahead of the exchange
        self.clock_offset_ms = clock_offset_ms

    def _sign(self, credentials: Credentials, request: RequestDescriptor) -> SignedRequest:
        timestamp = str(int(self._clock() * 1000) - self.clock_offset_ms)
        payload = request.body if request.method.upper() == "POST" else urlencode(request.params)
        message = f"{timestamp}{credentials.api_key}{self.recv_window}{payload}"
        signature = hmac_sha256(credentials.secret_key, message).hex()

        headers = {
            "Accept": "application/json",
            "X-BAPI-API-KEY": credentials.api_key,
            "X-BAPI-SIGN": signature,
            "X-BAPI-SIGN-TYPE": "2",
            "X-BAPI-TIMESTAMP": timestamp,
            "X-BAPI-RECV-WINDOW": str(self.recv_window),
        }
        return SignedRequest(
            method=request.method.upper(),
            url=request.base_url + _with_query(request.path, request.params),
            headers=headers,
            content=request.body,
        )


class QueryStringSigner(Signer):
    """Binance-style: HEX(HMAC-SHA256(query)) appended as ``signature``."""

    name = "query"

    def __init__(self, api_key_header: str, clock: Clock = time.time, recv_window: int = 30_000):
        super().__init__(clock)
        self.api_key_header = api_key_header
        self.recv_window = recv_window

    def _sign(self, credentials: Credentials, request: RequestDescriptor) -> SignedRequest:
        params = dict(request.params)
        params["recvWindow"] = str(self.recv_window)
        params["timestamp"] = str(int(self._clock() * 1000))
        query = urlencode(params)
        signature = hmac_sha256(credentials.secret_key, query).hex()

        return SignedRequest(
            method=request.method.upper(),
            url=f"{request.base_url}{request.path}?{query}&signature={signature}",
            headers={"Accept": "application/json", self.api_key_header: credentials.api_key},
            content=request.body,
        )
