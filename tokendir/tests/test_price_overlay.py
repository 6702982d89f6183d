"""Live price overlay tests"""

from decimal import Decimal

from tokendir.models.directory import ExchangeEntry, TokenEntry
from tokendir.services.price_overlay import build_ticker_index, overlay_directory
from tokendir.exchanges import get_adapter
from tokendir.services.reconciliation import build_directory


def _entry(exchange, quote="USDT", **kwargs):
    return ExchangeEntry(
        exchange_id=exchange,
        base_asset="TKX",
        quote_asset=quote,
        settlement_chain="ERC20",
        confirmed=True,
        deposit_enabled=True,
        withdraw_enabled=False,
        withdraw_fee=Decimal("0.3"),
        **kwargs,
    )


def _directory():
    token = TokenEntry(
        symbol="TKX",
        chain="ethereum",
        contract_address="0xabc",
        exchanges=(
            _entry("bybit", last=Decimal("1"), volume=Decimal("5"), turnover=Decimal("5")),
            _entry("binance", last=Decimal("1"), volume=Decimal("7"), turnover=Decimal("7")),
            _entry("kucoin", quote="USDC", last=Decimal("1")),
        ),
    )
    return build_directory([token], version=3)


PAYLOADS = {
    "bybit": {
        "result": {
            "list": [
                {"symbol": "TKXUSDT", "lastPrice": "1.25", "volume24h": "100", "turnover24h": "125"},
                {"symbol": "OTHERUSDT", "lastPrice": "9", "volume24h": "1", "turnover24h": "9"},
            ]
        }
    },
    "binance": [{"symbol": "TKXUSDT", "price": "1.1"}],
}


class TestPriceOverlay:
    """Test refreshing prices from raw ticker snapshots"""

    def test_updates_prices_only(self):
        """Test last, volume and turnover change while chain and confirmation fields do not"""
        updated, stats = overlay_directory(_directory(), PAYLOADS.get)
        bybit, binance, kucoin = updated.all_tokens[0].exchanges

        assert (bybit.last, bybit.volume, bybit.turnover) == (Decimal("1.25"), Decimal("100"), Decimal("125"))
        assert bybit.settlement_chain == "ERC20"
        assert bybit.confirmed is True
        assert bybit.withdraw_enabled is False
        assert bybit.withdraw_fee == Decimal("0.3")
        assert stats.updated_entries == 2
        assert stats.exchanges_without_data == ["kucoin"]
        assert sorted(stats.exchanges_with_data) == ["binance", "bybit"]

    def test_price_only_exchange_keeps_volume(self):
        """Test exchanges without volume fields only refresh last"""
        updated, _ = overlay_directory(_directory(), PAYLOADS.get)
        binance = updated.all_tokens[0].exchanges[1]
        assert binance.last == Decimal("1.1")
        assert binance.volume == Decimal("7")
        assert binance.turnover == Decimal("7")

    def test_missing_payload_leaves_entries(self):
        """Test exchanges without a cached snapshot keep their previous prices"""
        directory = _directory()
        updated, stats = overlay_directory(directory, lambda exchange_id: None)
        assert updated.all_tokens == directory.all_tokens
        assert stats.updated_entries == 0

    def test_views_and_version_kept(self):
        """Test the overlay keeps the version and re-partitions the views"""
        updated, _ = overlay_directory(_directory(), PAYLOADS.get)
        assert updated.version == 3
        assert updated.usdt[0].exchanges[0].last == Decimal("1.25")
        assert [e.exchange_id for e in updated.usdc[0].exchanges] == ["kucoin"]


class TestTickerIndex:
    """Test the symbol index built from a raw payload"""

    def test_unparsable_rows_skipped(self):
        """Test rows missing required fields are left out of the index"""
        adapter = get_adapter("kucoin")
        payload = {
            "data": {
                "ticker": [
                    {"symbol": "TKX-USDT", "last": "2", "vol": "3", "volValue": "6"},
                    {"symbol": "BAD-USDT", "last": "x", "vol": "3", "volValue": "6"},
                    {"last": "1", "vol": "1", "volValue": "1"},
                ]
            }
        }
        index = build_ticker_index(adapter, payload)
        assert list(index) == ["TKX-USDT"]
        assert index["TKX-USDT"].turnover == Decimal("6")
