"""Exchange adapter tests"""

from decimal import Decimal

import pytest

from tokendir.core.config import Credentials
from tokendir.core.errors import MissingCredentialsError
from tokendir.exchanges import asset_roster, canonical_exchange_id, get_adapter
from tokendir.exchanges.binance import BinanceAdapter
from tokendir.exchanges.bitget import BitgetAdapter
from tokendir.exchanges.bybit import BybitAdapter
from tokendir.exchanges.gate import GateAdapter
from tokendir.exchanges.htx import HtxAdapter
from tokendir.exchanges.kucoin import KucoinAdapter
from tokendir.exchanges.lbank import LbankAdapter
from tokendir.exchanges.okx import OkxAdapter
from tokendir.exchanges.xt import XtAdapter


def _records(adapter, payload):
    return [r.value for r in adapter.parse_asset_metadata(payload) if r.ok]


class TestRegistry:
    """Test adapter lookup"""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("okex", "okx"),
            ("mxc", "mexc"),
            ("bybit_spot", "bybit"),
            ("huobi", "htx"),
            ("BINANCE", "binance"),
            ("gate", "gate"),
        ],
    )
    def test_aliases_resolve(self, name, expected):
        """Test catalog ids resolve to canonical exchange ids"""
        assert get_adapter(name).exchange_id == expected
        assert canonical_exchange_id(name) == expected

    def test_unknown_exchange(self):
        """Test unknown names return None and lower-case as id"""
        assert get_adapter("nowhere") is None
        assert canonical_exchange_id("NoWhere") == "nowhere"

    def test_asset_roster(self):
        """Test roster holds exchanges with an asset endpoint only"""
        roster = {a.exchange_id for a in asset_roster()}
        assert roster == {"binance", "bybit", "okx", "mexc", "bitget", "htx", "bitmart", "gate", "kucoin", "xt"}
        assert get_adapter("lbank").asset_request(Credentials()) is None


class TestAssetMetadata:
    """Test per-exchange asset metadata extraction"""

    def test_binance_network_list(self):
        """Test Binance networks are flattened and contracts lowercased"""
        payload = [
            {
                "coin": "TKX",
                "networkList": [
                    {
                        "network": "ETH",
                        "contractAddress": "0xABC",
                        "depositEnable": True,
                        "withdrawEnable": False,
                        "withdrawFee": "1.5",
                    },
                    {"network": "BSC", "contractAddress": "", "depositEnable": True, "withdrawEnable": True, "withdrawFee": "0"},
                ],
            }
        ]
        records = _records(BinanceAdapter(), payload)
        assert len(records) == 1
        assert records[0].contract_address == "0xabc"
        assert records[0].settlement_chain == "ETH"
        assert records[0].deposit_enabled is True
        assert records[0].withdraw_enabled is False
        assert records[0].withdraw_fee == Decimal("1.5")

    def test_bybit_string_flags(self):
        """Test Bybit "1"/"0" flags"""
        payload = {
            "result": {
                "rows": [
                    {
                        "coin": "TKX",
                        "chains": [
                            {
                                "chain": "ARBI",
                                "contractAddress": "0xdef",
                                "chainDeposit": "1",
                                "chainWithdraw": "0",
                                "withdrawFee": "0.2",
                            }
                        ],
                    }
                ]
            }
        }
        (record,) = _records(BybitAdapter(), payload)
        assert record.exchange_id == "bybit"
        assert record.deposit_enabled is True
        assert record.withdraw_enabled is False

    def test_bitget_true_strings(self):
        """Test Bitget "true"/"false" flags"""
        payload = {
            "data": [
                {
                    "chains": [
                        {
                            "chain": "BEP20",
                            "contractAddress": "0x1",
                            "rechargeable": "true",
                            "withdrawable": "false",
                            "withdrawFee": "0.1",
                        }
                    ]
                }
            ]
        }
        (record,) = _records(BitgetAdapter(), payload)
        assert record.deposit_enabled is True
        assert record.withdraw_enabled is False

    def test_gate_inverted_flags_and_zero_fee(self):
        """Test Gate disabled flags are inverted and fee defaults to zero"""
        payload = [
            {
                "currency": "TKX",
                "chains": [{"name": "ETH", "addr": "0xAa", "deposit_disabled": False, "withdraw_disabled": True}],
            }
        ]
        (record,) = _records(GateAdapter(), payload)
        assert record.deposit_enabled is True
        assert record.withdraw_enabled is False
        assert record.withdraw_fee == Decimal("0")

    def test_htx_chain_settings(self):
        """Test HTX chain settings"""
        payload = {"data": [{"ca": "0xbb", "dn": "TRC20", "de": True, "we": True}]}
        (record,) = _records(HtxAdapter(), payload)
        assert record.settlement_chain == "TRC20"
        assert record.withdraw_fee == Decimal("0")

    def test_xt_optional_fee(self):
        """Test XT fee may be missing, a string or a number"""
        payload = {
            "result": [
                {
                    "supportChains": [
                        {"chain": "ETH", "contract": "0x1", "depositEnabled": True, "withdrawEnabled": True},
                        {
                            "chain": "BSC",
                            "contract": "0x2",
                            "depositEnabled": True,
                            "withdrawEnabled": True,
                            "withdrawFeeAmount": 0.5,
                        },
                    ]
                }
            ]
        }
        first, second = _records(XtAdapter(), payload)
        assert first.withdraw_fee == Decimal("0")
        assert second.withdraw_fee == Decimal("0.5")

    def test_malformed_entries_skipped(self):
        """Test entries with missing or mistyped fields are skipped with a reason"""
        payload = {
            "data": [
                {"chains": [{"chainName": "ETH", "contractAddress": "0x1", "isDepositEnabled": True}]},
                {"chains": "not-a-list"},
                {
                    "chains": [
                        {
                            "chainName": "ETH",
                            "contractAddress": "0x2",
                            "isDepositEnabled": True,
                            "isWithdrawEnabled": True,
                            "withdrawalMinFee": "0.01",
                        }
                    ]
                },
            ]
        }
        results = list(KucoinAdapter().parse_asset_metadata(payload))
        assert [r.ok for r in results] == [False, True]
        assert "isWithdrawEnabled" in results[0].reason

    def test_unexpected_payload_shape(self):
        """Test a payload of the wrong shape yields nothing"""
        assert _records(BinanceAdapter(), {"code": -1}) == []
        assert _records(OkxAdapter(), []) == []


class TestAssetRequests:
    """Test asset request construction"""

    def test_public_request(self):
        """Test public endpoints need no credentials"""
        request = BitgetAdapter().asset_request(Credentials())
        assert request.url == "https://api.bitget.com/api/v2/spot/public/coins"

    def test_signed_request_requires_credentials(self):
        """Test authenticated endpoints refuse to sign without credentials"""
        with pytest.raises(MissingCredentialsError):
            BinanceAdapter().asset_request(Credentials())

    def test_binance_signed_request(self):
        """Test Binance request carries the API key header and signature"""
        adapter = BinanceAdapter(clock=lambda: 1_700_000_000.0)
        request = adapter.asset_request(Credentials(api_key="k", secret_key="s"))
        assert request.url.startswith("https://api.binance.com/sapi/v1/capital/config/getall?recvWindow=30000")
        assert "&signature=" in request.url
        assert request.headers["X-MBX-APIKEY"] == "k"


class TestTickerRules:
    """Test raw ticker extraction and symbol composition"""

    @pytest.mark.parametrize(
        "exchange,base,quote,expected",
        [
            ("binance", "tkx", "usdt", "TKXUSDT"),
            ("okx", "TKX", "USDT", "TKX-USDT"),
            ("kucoin", "TKX", "USDC", "TKX-USDC"),
            ("gate", "TKX", "USDT", "TKX_USDT"),
            ("bitmart", "TKX", "USDT", "TKX_USDT"),
            ("xt", "tkx", "usdt", "TKX_USDT"),
            ("poloniex", "TKX", "USDT", "TKX_USDT"),
            ("htx", "tkx", "usdt", "TKXUSDT"),
        ],
    )
    def test_compose_symbol(self, exchange, base, quote, expected):
        """Test per-exchange symbol composition"""
        assert get_adapter(exchange).compose_symbol(base, quote) == expected

    def test_bybit_rows(self):
        """Test Bybit ticker rows and fields"""
        adapter = BybitAdapter()
        payload = {
            "result": {
                "list": [
                    {"symbol": "TKXUSDT", "lastPrice": "1.25", "volume24h": "100", "turnover24h": "125"},
                ]
            }
        }
        (row,) = adapter.ticker_rows(payload)
        quote = adapter.parse_raw_ticker(row).value
        assert quote.symbol == "TKXUSDT"
        assert quote.last == Decimal("1.25")
        assert quote.volume == Decimal("100")
        assert quote.turnover == Decimal("125")

    def test_price_only_exchange(self):
        """Test exchanges without volume fields report None for them"""
        quote = get_adapter("binance").parse_raw_ticker({"symbol": "TKXUSDT", "price": "2"}).value
        assert quote.volume is None
        assert quote.turnover is None

    def test_htx_numeric_fields(self):
        """Test JSON numbers parse as decimals and symbols are upper-cased"""
        quote = HtxAdapter().parse_raw_ticker({"symbol": "tkxusdt", "close": 0.5, "vol": 10}).value
        assert quote.symbol == "TKXUSDT"
        assert quote.last == Decimal("0.5")

    def test_unparsable_row_skipped(self):
        """Test a row with an unparsable required field is rejected"""
        result = get_adapter("kucoin").parse_raw_ticker(
            {"symbol": "TKX-USDT", "last": None, "vol": "1", "volValue": "1"}
        )
        assert not result.ok

    def test_lbank_rows_in_list_or_data(self):
        """Test LBank rows are read from a root list or from data"""
        adapter = LbankAdapter()
        row = {"symbol": "tkx_usdt", "price": "1"}
        assert adapter.ticker_rows([row]) == [row]
        assert adapter.ticker_rows({"data": [row]}) == [row]
        assert adapter.ticker_rows({"result": "true"}) == []
