"""
Technical Indicators
====================

EMA, SMA, ATR 등 기술적 지표 계산 함수.

모든 함수는 입력과 같은 길이의 float 배열을 반환한다 (index-aligned).
Warm-up 구간은 NaN으로 채워지며 0으로 취급하면 안 된다.
값이 정의됐는지는 반드시 ``np.isfinite`` 로 확인할 것.
"""
from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view


ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]


def _as_series(values: ArrayLike) -> pd.Series:
    return pd.Series(np.asarray(values, dtype=np.float64))


def _check_period(period: int, name: str = "period") -> int:
    period = int(period)
    if period <= 0:
        raise ValueError(f"{name} must be positive")
    return period


def ema(values: ArrayLike, period: int) -> np.ndarray:
    """
    Exponential Moving Average

    첫 값으로 시드, 이후 k = 2 / (period + 1) 재귀 적용.
    Warm-up NaN 구간 없음 (out[0] == values[0]).
    """
    period = _check_period(period)
    s = _as_series(values)
    return s.ewm(span=period, adjust=False).mean().to_numpy()


def sma(values: ArrayLike, period: int) -> np.ndarray:
    """
    Simple Moving Average

    index < period - 1 은 NaN.
    윈도우 안에 NaN이 하나라도 있으면 결과도 NaN.

    윈도우마다 합을 새로 계산 (같은 봉 값은 윈도우 시작 위치와 무관).
    """
    period = _check_period(period)
    arr = np.asarray(values, dtype=np.float64)
    out = np.full(len(arr), np.nan)
    if len(arr) >= period:
        out[period - 1:] = sliding_window_view(arr, period).mean(axis=1)
    return out


def true_range(high: ArrayLike, low: ArrayLike, close: ArrayLike) -> np.ndarray:
    """True Range 계산 (TR[0] = 0)"""
    high = _as_series(high)
    low = _as_series(low)
    close = _as_series(close)

    prev_close = close.shift(1)
    tr = pd.concat([
        high - low,
        (high - prev_close).abs(),
        (low - prev_close).abs(),
    ], axis=1).max(axis=1)

    if len(tr) > 0:
        tr.iloc[0] = 0.0
    return tr.to_numpy()


def atr(high: ArrayLike, low: ArrayLike, close: ArrayLike, period: int = 14) -> np.ndarray:
    """Average True Range (TR의 SMA)"""
    period = _check_period(period)
    return sma(true_range(high, low, close), period)


def last_value(values: np.ndarray) -> float:
    """마지막 봉 값 (미정의면 NaN 그대로, 빈 배열도 NaN)"""
    if len(values) == 0:
        return float('nan')
    return float(values[-1])
