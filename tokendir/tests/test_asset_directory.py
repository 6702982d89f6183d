"""Asset directory builder tests"""

from decimal import Decimal

import httpx
import pytest

from tokendir.core.config import Credentials
from tokendir.exchanges.binance import BinanceAdapter
from tokendir.exchanges.bitget import BitgetAdapter
from tokendir.exchanges.htx import HtxAdapter
from tokendir.exchanges.kucoin import KucoinAdapter
from tokendir.models.directory import AssetRecord
from tokendir.services.asset_directory import AssetDirectory, AssetDirectoryBuilder

BITGET_PAYLOAD = {
    "data": [
        {
            "coin": "TKX",
            "chains": [
                {
                    "chain": "ERC20",
                    "contractAddress": "0xABC",
                    "rechargeable": "true",
                    "withdrawable": "true",
                    "withdrawFee": "0.3",
                },
                {"chain": "BEP20", "contractAddress": "0xdef", "rechargeable": "true"},
            ],
        }
    ]
}

HTX_PAYLOAD = {"data": [{"ca": "0xabc", "dn": "ETH", "de": False, "we": True}]}


def _no_credentials(prefix):
    return Credentials()


def _builder(handler, adapters):
    return AssetDirectoryBuilder(
        adapters=adapters,
        credentials=_no_credentials,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


class TestAssetDirectory:
    """Test the asset lookup table"""

    def test_lookup_is_case_insensitive_on_contract(self):
        """Test contracts are matched lowercased"""
        record = AssetRecord(
            exchange_id="gate",
            contract_address="0xabc",
            settlement_chain="ETH",
            deposit_enabled=True,
            withdraw_enabled=True,
        )
        directory = AssetDirectory.from_records([record])
        assert directory.lookup("0xABC", "gate") == record
        assert "0xAbC" in directory
        assert directory.lookup("0xabc", "binance") is None
        assert len(directory) == 1

    def test_last_write_wins(self):
        """Test a duplicate (contract, exchange) keeps the last record"""
        first = AssetRecord(
            exchange_id="gate", contract_address="0x1", settlement_chain="ETH", deposit_enabled=True, withdraw_enabled=True
        )
        second = first.model_copy(update={"settlement_chain": "BSC"})
        directory = AssetDirectory.from_records([first, second])
        assert directory.lookup("0x1", "gate").settlement_chain == "BSC"
        assert directory.counts_by_exchange() == {"gate": 1}


class TestAssetDirectoryBuilder:
    """Test concurrent fetching and failure isolation"""

    @pytest.mark.asyncio
    async def test_builds_from_all_exchanges(self):
        """Test records from every exchange land in one directory"""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.bitget.com":
                return httpx.Response(200, json=BITGET_PAYLOAD)
            return httpx.Response(200, json=HTX_PAYLOAD)

        directory = await _builder(handler, [BitgetAdapter(), HtxAdapter()]).build()

        assert directory.counts_by_exchange() == {"bitget": 1, "htx": 1}
        bitget = directory.lookup("0xabc", "bitget")
        assert bitget.withdraw_fee == Decimal("0.3")
        assert directory.lookup("0xabc", "htx").deposit_enabled is False
        # Malformed BEP20 entry skipped
        assert directory.lookup("0xdef", "bitget") is None
        assert directory.failures == {}

    @pytest.mark.asyncio
    async def test_missing_credentials_do_not_block_others(self):
        """Test an exchange without credentials contributes nothing"""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            return httpx.Response(200, json=BITGET_PAYLOAD)

        directory = await _builder(handler, [BinanceAdapter(), BitgetAdapter()]).build()

        assert calls == ["api.bitget.com"]
        assert "binance" in directory.failures
        assert directory.counts_by_exchange() == {"bitget": 1}

    @pytest.mark.asyncio
    async def test_http_failures_are_isolated(self):
        """Test 401, timeouts and malformed JSON only affect their exchange"""

        def handler(request: httpx.Request) -> httpx.Response:
            host = request.url.host
            if host == "api.bitget.com":
                return httpx.Response(401, json={"msg": "invalid key"})
            if host == "api.kucoin.com":
                raise httpx.ReadTimeout("timed out", request=request)
            if host == "api.huobi.pro":
                return httpx.Response(200, content=b"<html>")
            return httpx.Response(500)

        directory = await _builder(handler, [BitgetAdapter(), KucoinAdapter(), HtxAdapter()]).build()

        assert len(directory) == 0
        assert set(directory.failures) == {"bitget", "kucoin", "htx"}
        assert "HTTP 401" in directory.failures["bitget"]
        assert "timed out" in directory.failures["kucoin"]
        assert "malformed JSON" in directory.failures["htx"]

    @pytest.mark.asyncio
    async def test_signed_request_sent(self):
        """Test authenticated exchanges send their signed headers"""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.headers.get("X-MBX-APIKEY")
            seen["path"] = request.url.path
            return httpx.Response(200, json=[])

        builder = AssetDirectoryBuilder(
            adapters=[BinanceAdapter()],
            credentials=lambda prefix: Credentials(api_key="k", secret_key="s"),
            transport=httpx.MockTransport(handler),
        )
        directory = await builder.build()

        assert seen == {"key": "k", "path": "/sapi/v1/capital/config/getall"}
        assert len(directory) == 0
        assert directory.failures == {}
