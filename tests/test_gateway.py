# -*- coding: utf-8 -*-
"""
Market Data / Order Gateway Tests
=================================

ccxt 래퍼 단위 테스트 (가짜 exchange 객체 사용, 네트워크 없음).
"""
from datetime import datetime, timezone

import ccxt
import pytest

from hps_bot.config import ConfigError, ExchangeParams
from hps_bot.execution import (
    Bar,
    CcxtGateway,
    CcxtMarketData,
    MarketDataError,
    PaperGateway,
    bars_to_frame,
    create_exchange,
    normalize_bars,
)

T0 = 1704067200000  # 2024-01-01 00:00 UTC (ms)
FIVE_MIN = 5 * 60 * 1000


class FakeExchange:
    def __init__(self, ohlcv=None, order=None, error=None):
        self.ohlcv = ohlcv
        self.order = order
        self.error = error
        self.calls = []

    def fetch_ohlcv(self, symbol, timeframe=None, limit=None):
        self.calls.append(('fetch_ohlcv', symbol, timeframe, limit))
        if self.error:
            raise self.error
        return self.ohlcv

    def create_market_order(self, symbol, side, amount):
        self.calls.append(('create_market_order', symbol, side, amount))
        if self.error:
            raise self.error
        return self.order


class TestBars:
    def test_from_ohlcv(self):
        bar = Bar.from_ohlcv([T0, 1, 2, 0.5, 1.5, None])
        assert bar.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert (bar.open, bar.high, bar.low, bar.close) == (1.0, 2.0, 0.5, 1.5)
        assert bar.volume == 0.0

    def test_normalize_sorts_and_dedupes(self):
        rows = [
            [T0 + FIVE_MIN, 2, 2, 2, 2, 1],
            [T0, 1, 1, 1, 1, 1],
            [T0 + FIVE_MIN, 3, 3, 3, 3, 1],
        ]
        bars = normalize_bars(Bar.from_ohlcv(r) for r in rows)
        assert [b.close for b in bars] == [1.0, 3.0]

    def test_bars_to_frame(self):
        bars = [Bar.from_ohlcv([T0 + i * FIVE_MIN, 1, 2, 0, 1, 10]) for i in range(3)]
        frame = bars_to_frame(bars)
        assert list(frame.columns) == ["open", "high", "low", "close", "volume"]
        assert len(frame) == 3
        assert frame.index.is_monotonic_increasing


class TestCcxtMarketData:
    def test_fetch_bars(self):
        rows = [[T0 + i * FIVE_MIN, 100, 101, 99, 100 + i, 5] for i in range(4)]
        exchange = FakeExchange(ohlcv=rows)
        bars = CcxtMarketData(exchange).fetch_bars("BTC/USDT", "5m", 4)

        assert [b.close for b in bars] == [100.0, 101.0, 102.0, 103.0]
        assert exchange.calls == [('fetch_ohlcv', "BTC/USDT", "5m", 4)]

    def test_empty_result(self):
        assert CcxtMarketData(FakeExchange(ohlcv=[])).fetch_bars("BTC/USDT", "5m", 500) == []

    def test_network_error(self):
        exchange = FakeExchange(error=ccxt.NetworkError("timeout"))
        with pytest.raises(MarketDataError, match="NetworkError"):
            CcxtMarketData(exchange).fetch_bars("BTC/USDT", "5m", 500)

    def test_malformed_row(self):
        exchange = FakeExchange(ohlcv=[[T0, "x", 1, 1, 1, 1]])
        with pytest.raises(MarketDataError):
            CcxtMarketData(exchange).fetch_bars("BTC/USDT", "5m", 1)


class TestPaperGateway:
    def test_full_fill_at_reference(self):
        gateway = PaperGateway("BTC/USDT")
        first = gateway.submit('buy', 0.5, 42000.0)
        second = gateway.submit('sell', 0.5, 42100.0)

        assert first.filled == 0.5
        assert first.average == 42000.0
        assert (first.order_id, second.order_id) == ("paper_1", "paper_2")


class TestCcxtGateway:
    def test_filled_order(self):
        exchange = FakeExchange(order={'id': 123, 'filled': 0.4, 'average': 100.5, 'status': 'closed'})
        fill = CcxtGateway(exchange, "BTC/USDT").submit('buy', 0.5, 100.0)

        assert fill.filled == 0.4
        assert fill.average == 100.5
        assert fill.order_id == "123"
        assert exchange.calls == [('create_market_order', "BTC/USDT", 'buy', 0.5)]

    def test_missing_fill_fields_fall_back(self):
        exchange = FakeExchange(order={'id': 'a', 'filled': None, 'average': None})
        fill = CcxtGateway(exchange, "BTC/USDT").submit('sell', 0.5, 99.0)
        assert fill.filled == 0.5
        assert fill.average == 99.0

    def test_unfilled_order(self):
        exchange = FakeExchange(order={'id': 'a', 'filled': 0.0, 'average': None, 'status': 'canceled'})
        assert CcxtGateway(exchange, "BTC/USDT").submit('buy', 0.5, 100.0) is None

    @pytest.mark.parametrize("error", [
        ccxt.InsufficientFunds("no money"),
        ccxt.NetworkError("down"),
        ccxt.ExchangeError("rejected"),
    ])
    def test_errors_return_none(self, error):
        exchange = FakeExchange(error=error)
        assert CcxtGateway(exchange, "BTC/USDT").submit('buy', 0.5, 100.0) is None


class TestCreateExchange:
    def test_unknown_exchange(self):
        with pytest.raises(ConfigError, match="not supported"):
            create_exchange(ExchangeParams(exchange_id="no_such_exchange"))

    def test_live_requires_credentials(self):
        with pytest.raises(ConfigError):
            create_exchange(ExchangeParams(dry_run=False))

    def test_paper_exchange(self):
        exchange = create_exchange(ExchangeParams(exchange_id="binance"))
        assert isinstance(exchange, ccxt.Exchange)
        assert exchange.enableRateLimit
