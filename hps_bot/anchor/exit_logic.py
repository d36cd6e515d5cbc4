# -*- coding: utf-8 -*-
"""
Exit Logic - SL/TP/Trailing Stop
================================

진입 레벨 계산 + 청산 로직 모듈.

핵심 원칙:
1. Stop = 패턴 극값 vs ATR 버퍼 중 더 먼 쪽
2. Take Profit = Risk:Reward 배수
3. Trailing Stop = 수익 구간에서 ATR 거리로 단방향 조임 (절대 느슨해지지 않음)
4. 우선순위: Stop Loss → Take Profit → Trailing Stop (틱당 하나만)

사용법:
```python
from hps_bot.anchor.exit_logic import calc_exit_levels, check_exit_signal

levels = calc_exit_levels(
    entry_price=100.0,
    side='long',
    last_close=100.0,
    volatility=2.0,
    pattern_extreme=95.0,
    atr_mult_stop=0.6,
    rr=1.5,
)
print(f"SL: {levels.stop_loss:.2f}, TP: {levels.take_profit:.2f}")
```
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

import numpy as np


class ExitReason(Enum):
    """청산 사유"""
    STOP_LOSS = "Stop Loss"
    TAKE_PROFIT = "Take Profit"
    TRAILING_STOP = "Trailing Stop"


@dataclass(frozen=True)
class ExitLevels:
    """진입 시 고정되는 청산 레벨"""
    side: Literal['long', 'short']
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_per_unit: float  # |entry - stop|


@dataclass
class Position:
    """포지션 정보 (엔진이 단독 소유)"""
    side: Literal['long', 'short']
    entry_price: float
    size: float
    stop_price: float
    target_price: float
    trail_stop: Optional[float] = None
    entry_time: Optional[datetime] = None

    @property
    def is_long(self) -> bool:
        return self.side == 'long'

    def unrealized_pnl(self, price: float) -> float:
        return calc_pnl(self.side, self.entry_price, price, self.size)


@dataclass
class ExitSignal:
    """청산 신호"""
    reason: ExitReason
    price: float  # 신호 발생 시 현재가
    message: str = ""


# =============================================================================
# Entry Level Calculation
# =============================================================================

def calc_exit_levels(
    entry_price: float,
    side: Literal['long', 'short'],
    last_close: float,
    volatility: float,
    pattern_extreme: float,
    *,
    atr_mult_stop: float = 0.6,
    rr: float = 1.5,
) -> Optional[ExitLevels]:
    """
    SL/TP 레벨 계산

    Args:
        entry_price: 셋업 진입가
        side: 'long' or 'short'
        last_close: 마지막 봉 종가 (ATR 버퍼 기준)
        volatility: 마지막 봉 ATR
        pattern_extreme: 패턴 저점 (Long) / 고점 (Short)
        atr_mult_stop: SL ATR 버퍼 배수
        rr: Risk:Reward 배수

    Returns:
        ExitLevels, 계산 불가(degenerate)면 None
    """
    if not np.isfinite(volatility):
        return None

    buffer = volatility * atr_mult_stop
    if side == 'long':
        stop_loss = min(pattern_extreme, last_close - buffer)
        risk = entry_price - stop_loss
        take_profit = entry_price + risk * rr
    else:
        stop_loss = max(pattern_extreme, last_close + buffer)
        risk = stop_loss - entry_price
        take_profit = entry_price - risk * rr

    # 스탑이 진입가 반대편이거나 거리 0 → 진입 불가
    if not np.isfinite(risk) or risk <= 0:
        return None

    return ExitLevels(
        side=side,
        entry_price=entry_price,
        stop_loss=stop_loss,
        take_profit=take_profit,
        risk_per_unit=risk,
    )


def calc_position_size(
    equity: float,
    risk_pct: float,
    entry_price: float,
    stop_loss: float,
) -> float:
    """
    포지션 사이즈 계산 (리스크 기반)

    Args:
        equity: 총 자본
        risk_pct: 거래당 리스크 비율 (0.01 = 1%)
        entry_price: 진입가
        stop_loss: 손절가

    Returns:
        수량 (거리 0이면 0.0)
    """
    risk_amount = equity * risk_pct
    price_risk = abs(entry_price - stop_loss)

    if price_risk == 0:
        return 0.0

    return risk_amount / price_risk


def calc_pnl(side: str, entry_price: float, exit_price: float, size: float) -> float:
    """실현 손익 (Short은 부호 반전)"""
    if side == 'long':
        return (exit_price - entry_price) * size
    return (entry_price - exit_price) * size


# =============================================================================
# Exit Signal Check
# =============================================================================

def update_trailing_stop(
    position: Position,
    current_price: float,
    volatility: float,
    atr_mult_trail: float = 1.0,
) -> bool:
    """
    트레일링 스탑 업데이트

    수익 구간(진입가 돌파)에서만 후보 계산.
    후보가 기존보다 보호적일 때만 교체 (Long: 상향만 / Short: 하향만).

    Returns:
        갱신 여부
    """
    if not np.isfinite(volatility):
        return False

    distance = volatility * atr_mult_trail
    if position.is_long:
        if current_price <= position.entry_price:
            return False
        candidate = current_price - distance
        if position.trail_stop is None or candidate > position.trail_stop:
            position.trail_stop = candidate
            return True
    else:
        if current_price >= position.entry_price:
            return False
        candidate = current_price + distance
        if position.trail_stop is None or candidate < position.trail_stop:
            position.trail_stop = candidate
            return True

    return False


def check_exit_signal(
    position: Position,
    current_price: float,
    volatility: float,
    *,
    atr_mult_trail: float = 1.0,
) -> Optional[ExitSignal]:
    """
    청산 신호 체크 (Stop → Target → Trailing, 첫 매치만)

    Trailing 업데이트는 Stop/Target 미발동 시에만 수행된다.

    Args:
        position: 포지션 (trail_stop이 갱신될 수 있음)
        current_price: 현재가
        volatility: 현재 ATR
        atr_mult_trail: 트레일링 ATR 배수

    Returns:
        ExitSignal if should exit, else None
    """
    long = position.is_long

    # 1. Stop Loss
    if (long and current_price <= position.stop_price) or \
            (not long and current_price >= position.stop_price):
        return ExitSignal(
            reason=ExitReason.STOP_LOSS,
            price=current_price,
            message=f"Stop Loss triggered at {position.stop_price:,.4f}",
        )

    # 2. Take Profit
    if (long and current_price >= position.target_price) or \
            (not long and current_price <= position.target_price):
        return ExitSignal(
            reason=ExitReason.TAKE_PROFIT,
            price=current_price,
            message=f"Take Profit hit at {position.target_price:,.4f}",
        )

    # 3. Trailing Stop
    update_trailing_stop(position, current_price, volatility, atr_mult_trail)
    trail = position.trail_stop
    if trail is not None:
        if (long and current_price <= trail) or (not long and current_price >= trail):
            return ExitSignal(
                reason=ExitReason.TRAILING_STOP,
                price=current_price,
                message=f"Trailing stop triggered at {trail:,.4f}",
            )

    return None


def format_position(position: Position) -> str:
    """포지션 요약 포맷팅"""
    trail = f"{position.trail_stop:,.4f}" if position.trail_stop is not None else "-"
    return (
        f"{position.side.upper()} {position.size:.6f} @ {position.entry_price:,.4f} "
        f"| SL {position.stop_price:,.4f} | TP {position.target_price:,.4f} | Trail {trail}"
    )
