"""
Stochastic Oscillator Bands
===========================

HPS Quad Divergence용 다중 Stochastic 밴드 계산.

- stochastic(): raw %K → smoothed %K → %D
- compute_bands(): 설정된 period 마다 StochasticBand 생성 (첫 번째 = primary)
- is_oversold / is_overbought: NaN 안전한 임계치 비교

Flat market (HH == LL) 에서는 raw %K = 50 (NaN 아님).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .indicators import ArrayLike, _as_series, _check_period, sma


OVERSOLD = 20.0
OVERBOUGHT = 80.0


@dataclass(frozen=True)
class StochasticBand:
    """단일 Stochastic 밴드"""
    period: int
    k: np.ndarray  # smoothed %K
    d: np.ndarray  # %D

    def __len__(self) -> int:
        return len(self.k)


def raw_stochastic_k(
    high: ArrayLike,
    low: ArrayLike,
    close: ArrayLike,
    k_period: int,
) -> np.ndarray:
    """
    Raw %K = (close - LL) / (HH - LL) * 100

    index < k_period - 1 은 NaN, HH == LL 이면 50.
    """
    k_period = _check_period(k_period, "k_period")
    high = _as_series(high)
    low = _as_series(low)
    close = _as_series(close)

    hh = high.rolling(k_period, min_periods=k_period).max()
    ll = low.rolling(k_period, min_periods=k_period).min()
    rng = hh - ll

    raw = (close - ll) / rng.replace(0.0, np.nan) * 100.0
    raw = raw.mask(rng == 0.0, 50.0)
    return raw.to_numpy()


def stochastic(
    high: ArrayLike,
    low: ArrayLike,
    close: ArrayLike,
    k_period: int,
    k_smooth: int = 3,
    d_smooth: int = 3,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stochastic Oscillator

    Args:
        high, low, close: 가격 배열
        k_period: lookback 기간
        k_smooth: %K smoothing 기간
        d_smooth: %D smoothing 기간

    Returns:
        (k, d): smoothed %K와 %D 배열 (0-100 스케일)
    """
    raw = raw_stochastic_k(high, low, close, k_period)
    k = sma(raw, k_smooth)
    d = sma(k, d_smooth)
    return k, d


def compute_bands(
    high: ArrayLike,
    low: ArrayLike,
    close: ArrayLike,
    periods: Sequence[int],
    k_smooth: int = 3,
    d_smooth: int = 3,
) -> List[StochasticBand]:
    """설정된 period 순서대로 밴드 계산 (bands[0] = primary)"""
    if not periods:
        raise ValueError("at least one stochastic period is required")

    bands = []
    for period in periods:
        k, d = stochastic(high, low, close, int(period), k_smooth, d_smooth)
        bands.append(StochasticBand(period=int(period), k=k, d=d))
    return bands


def is_oversold(value: float, threshold: float = OVERSOLD) -> bool:
    """정의된 값이고 threshold 미만인지 (0도 유효한 값)"""
    return bool(np.isfinite(value)) and value < threshold


def is_overbought(value: float, threshold: float = OVERBOUGHT) -> bool:
    """정의된 값이고 threshold 초과인지"""
    return bool(np.isfinite(value)) and value > threshold


def all_bands_oversold(bands: Sequence[StochasticBand], i: int, threshold: float = OVERSOLD) -> bool:
    """모든 밴드의 %K가 i에서 oversold"""
    return all(is_oversold(band.k[i], threshold) for band in bands)


def all_bands_overbought(bands: Sequence[StochasticBand], i: int, threshold: float = OVERBOUGHT) -> bool:
    """모든 밴드의 %K가 i에서 overbought"""
    return all(is_overbought(band.k[i], threshold) for band in bands)
