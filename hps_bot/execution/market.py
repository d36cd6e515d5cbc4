"""
Market Data
===========

OHLCV Bar 타입 + 시세 제공자.

- Bar: 불변 OHLCV 봉
- normalize_bars(): 타임스탬프 오름차순, 중복 제거
- bars_to_frame(): 지표 계산용 DataFrame
- CcxtMarketData: ccxt fetch_ohlcv 래퍼 (실패 시 MarketDataError)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Protocol, Sequence

import ccxt
import pandas as pd

logger = logging.getLogger(__name__)


class MarketDataError(RuntimeError):
    """시세 조회 실패 (일시적, 이번 틱만 스킵)"""


@dataclass(frozen=True)
class Bar:
    """OHLCV bar."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_ohlcv(cls, row: Sequence) -> "Bar":
        """ccxt 행 [ms, open, high, low, close, volume] → Bar"""
        ts, o, h, l, c, v = row[:6]
        return cls(
            timestamp=datetime.fromtimestamp(int(ts) / 1000, tz=timezone.utc),
            open=float(o),
            high=float(h),
            low=float(l),
            close=float(c),
            volume=float(v) if v is not None else 0.0,
        )


class MarketDataProvider(Protocol):
    """시세 제공자 인터페이스"""

    def fetch_bars(self, symbol: str, timeframe: str, limit: int) -> List[Bar]:
        ...


def normalize_bars(bars: Iterable[Bar]) -> List[Bar]:
    """타임스탬프 오름차순 정렬 + 중복 제거 (마지막 값 유지)"""
    by_ts = {}
    for bar in bars:
        by_ts[bar.timestamp] = bar
    return [by_ts[ts] for ts in sorted(by_ts)]


def bars_to_frame(bars: Sequence[Bar]) -> pd.DataFrame:
    """Bar 리스트 → DataFrame (index: timestamp, columns: open/high/low/close/volume)"""
    df = pd.DataFrame(
        [(b.timestamp, b.open, b.high, b.low, b.close, b.volume) for b in bars],
        columns=["timestamp", "open", "high", "low", "close", "volume"],
    )
    return df.set_index("timestamp")


class CcxtMarketData:
    """ccxt 기반 시세 제공자"""

    def __init__(self, exchange: ccxt.Exchange):
        self.exchange = exchange

    def fetch_bars(self, symbol: str, timeframe: str, limit: int) -> List[Bar]:
        try:
            ohlcv = self.exchange.fetch_ohlcv(symbol, timeframe=timeframe, limit=limit)
        except (ccxt.NetworkError, ccxt.ExchangeError) as e:
            raise MarketDataError(f"{type(e).__name__}: {e}") from e

        if not ohlcv:
            logger.warning(f"No OHLCV data returned for {symbol} ({timeframe})")
            return []

        try:
            bars = [Bar.from_ohlcv(row) for row in ohlcv]
        except (TypeError, ValueError) as e:
            raise MarketDataError(f"Malformed OHLCV row: {e}") from e

        logger.debug(f"Fetched {len(bars)} bars for {symbol} ({timeframe})")
        return normalize_bars(bars)
