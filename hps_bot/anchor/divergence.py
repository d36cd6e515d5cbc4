"""
HPS Quad Divergence Detection
=============================

Two-stage pullback + Stochastic divergence 패턴 스캐너.

Long (Short는 high/low, 20/80 반전):
1. Stage-1: 모든 Stochastic 밴드 %K < 20 (동시 과매도)
2. Stage-2: stage2_lookahead 이내에서 가격 Equal/Lower Low
            + primary %K Higher Low (여전히 < 20) → Bullish Divergence
3. Entry:   max_entry_lookahead 이내 primary %K 20 상향 돌파
            + EMA 트렌드 필터 (선택)

스캐너는 순수 함수. 같은 입력이면 같은 Setup 리스트를 반환한다.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence

import numpy as np

from .indicators import ArrayLike
from .stochastic import (
    OVERBOUGHT,
    OVERSOLD,
    StochasticBand,
    all_bands_overbought,
    all_bands_oversold,
    is_overbought,
    is_oversold,
)


@dataclass(frozen=True)
class Setup:
    """후보 진입 신호 (스캔 결과, 저장되지 않음)"""
    side: Literal['long', 'short']
    stage1_bar: int
    stage2_bar: int
    entry_bar: int
    entry_price: float
    pattern_extreme: float  # Long: 패턴 저점 / Short: 패턴 고점
    divergence: float  # primary %K 다이버전스 크기 (양수)


def _crossed_up(prev: float, cur: float, level: float) -> bool:
    return bool(np.isfinite(prev) and np.isfinite(cur)) and prev <= level < cur


def _crossed_down(prev: float, cur: float, level: float) -> bool:
    return bool(np.isfinite(prev) and np.isfinite(cur)) and prev >= level > cur


def _trend_ok(side: str, close: float, trend: Optional[np.ndarray], k: int) -> bool:
    # 필터 비활성 또는 트렌드 값 미정의 → 통과
    if trend is None or not np.isfinite(trend[k]):
        return True
    if side == 'long':
        return close > trend[k]
    return close < trend[k]


def _scan_long(
    i: int,
    low: np.ndarray,
    close: np.ndarray,
    k_line: np.ndarray,
    trend: Optional[np.ndarray],
    stage2_lookahead: int,
    equal_tol: float,
    max_entry_lookahead: int,
    oversold: float,
) -> List[Setup]:
    n = len(close)
    setups = []
    stage1_low = low[i]
    stage1_k = k_line[i]

    for j in range(i + 1, min(i + stage2_lookahead, n - 1) + 1):
        stage2_k = k_line[j]

        # Equal/Lower Low + Stoch Higher Low (여전히 과매도)
        equal_or_lower = low[j] <= stage1_low * (1 + equal_tol)
        higher_stoch = bool(np.isfinite(stage2_k)) and stage2_k > stage1_k
        if not (equal_or_lower and higher_stoch and is_oversold(stage2_k, oversold)):
            continue

        # Entry: 첫 번째 20 상향 돌파만 확인
        for k in range(j + 1, min(j + max_entry_lookahead, n - 1) + 1):
            if not _crossed_up(k_line[k - 1], k_line[k], oversold):
                continue
            if _trend_ok('long', close[k], trend, k):
                setups.append(Setup(
                    side='long',
                    stage1_bar=i,
                    stage2_bar=j,
                    entry_bar=k,
                    entry_price=float(close[k]),
                    pattern_extreme=float(min(stage1_low, low[j])),
                    divergence=float(stage2_k - stage1_k),
                ))
            break

    return setups


def _scan_short(
    i: int,
    high: np.ndarray,
    close: np.ndarray,
    k_line: np.ndarray,
    trend: Optional[np.ndarray],
    stage2_lookahead: int,
    equal_tol: float,
    max_entry_lookahead: int,
    overbought: float,
) -> List[Setup]:
    n = len(close)
    setups = []
    stage1_high = high[i]
    stage1_k = k_line[i]

    for j in range(i + 1, min(i + stage2_lookahead, n - 1) + 1):
        stage2_k = k_line[j]

        # Equal/Higher High + Stoch Lower High (여전히 과매수)
        equal_or_higher = high[j] >= stage1_high * (1 - equal_tol)
        lower_stoch = bool(np.isfinite(stage2_k)) and stage2_k < stage1_k
        if not (equal_or_higher and lower_stoch and is_overbought(stage2_k, overbought)):
            continue

        # Entry: 첫 번째 80 하향 돌파만 확인
        for k in range(j + 1, min(j + max_entry_lookahead, n - 1) + 1):
            if not _crossed_down(k_line[k - 1], k_line[k], overbought):
                continue
            if _trend_ok('short', close[k], trend, k):
                setups.append(Setup(
                    side='short',
                    stage1_bar=i,
                    stage2_bar=j,
                    entry_bar=k,
                    entry_price=float(close[k]),
                    pattern_extreme=float(max(stage1_high, high[j])),
                    divergence=float(stage1_k - stage2_k),
                ))
            break

    return setups


def find_hps_setups(
    high: ArrayLike,
    low: ArrayLike,
    close: ArrayLike,
    bands: Sequence[StochasticBand],
    trend: Optional[ArrayLike] = None,
    *,
    stage_window: int = 30,
    stage2_lookahead: int = 20,
    equal_tol: float = 0.0007,
    max_entry_lookahead: int = 10,
    oversold: float = OVERSOLD,
    overbought: float = OVERBOUGHT,
) -> List[Setup]:
    """
    HPS Quad Divergence 셋업 스캔

    Args:
        high, low, close: 가격 배열 (오름차순)
        bands: Stochastic 밴드 리스트 (bands[0] = primary)
        trend: 트렌드 필터 시리즈 (EMA). None이면 필터 비활성
        stage_window: Stage-1 스캔 시작 인덱스
        stage2_lookahead: Stage-1 이후 Stage-2 탐색 봉 수
        equal_tol: Equal Low/High 허용 오차 (0.0007 = 0.07%)
        max_entry_lookahead: Stage-2 이후 진입 돌파 탐색 봉 수
        oversold: 과매도 임계치
        overbought: 과매수 임계치

    Returns:
        발견 순서(i 오름차순, j 오름차순)의 Setup 리스트
    """
    if not bands:
        raise ValueError("at least one stochastic band is required")

    high = np.asarray(high, dtype=np.float64)
    low = np.asarray(low, dtype=np.float64)
    close = np.asarray(close, dtype=np.float64)
    trend_arr = np.asarray(trend, dtype=np.float64) if trend is not None else None

    n = len(close)
    k_line = bands[0].k
    setups: List[Setup] = []

    for i in range(max(0, stage_window), n - stage2_lookahead):
        if all_bands_oversold(bands, i, oversold):
            setups.extend(_scan_long(
                i, low, close, k_line, trend_arr,
                stage2_lookahead, equal_tol, max_entry_lookahead, oversold,
            ))
        if all_bands_overbought(bands, i, overbought):
            setups.extend(_scan_short(
                i, high, close, k_line, trend_arr,
                stage2_lookahead, equal_tol, max_entry_lookahead, overbought,
            ))

    return setups


def select_actionable(setups: Sequence[Setup], last_bar: int) -> Optional[Setup]:
    """
    이번 틱에 진입 가능한 셋업 선택

    entry_bar가 가장 큰 셋업 (동률이면 나중에 발견된 것).
    그 셋업의 entry_bar가 마지막 봉이 아니면 stale → None.
    """
    best: Optional[Setup] = None
    for setup in setups:
        if best is None or setup.entry_bar >= best.entry_bar:
            best = setup

    if best is None or best.entry_bar != last_bar:
        return None
    return best
