# -*- coding: utf-8 -*-
"""
Risk Manager - Position Sizing & Account State
==============================================

단일 종목 포지션/리스크 관리 모듈.

핵심 기능:
1. Position Sizing - equity x risk_pct 를 스탑 거리로 나눈 수량
2. Position Lifecycle - Flat → Entered → Flat (피라미딩 없음)
3. Account State - equity / trade_count / win_count
4. Circuit Breaker - 연속 손실 시 신규 진입 중단 (선택)
5. Daily Loss Limit - 일일 최대 손실 (선택)

사용법:
```python
from hps_bot.risk.manager import RiskManager, RiskConfig

manager = RiskManager(equity=10000, config=RiskConfig(risk_pct=0.01, rr=1.5))

plan = manager.plan_entry(setup, last_close=100.0, volatility=2.0)
if plan:
    manager.open_position(plan, fill.filled, fill.average, timestamp)

signal = manager.evaluate(current_price=101.0, volatility=2.0)
if signal:
    pnl = manager.close_position(fill.filled, fill.average)
```
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from ..anchor.divergence import Setup
from ..anchor.exit_logic import (
    ExitLevels,
    ExitSignal,
    Position,
    calc_exit_levels,
    calc_pnl,
    calc_position_size,
    check_exit_signal,
)


@dataclass(frozen=True)
class RiskConfig:
    """리스크 설정"""
    risk_pct: float = 0.01  # 거래당 리스크 (equity 대비 비율)
    rr: float = 1.5  # Risk:Reward
    atr_mult_stop: float = 0.6  # SL ATR 버퍼 배수
    atr_mult_trail: float = 1.0  # 트레일링 ATR 배수

    # Circuit Breaker (0 = off)
    consecutive_loss_limit: int = 0
    cooldown_minutes: int = 60

    # Loss Limits (0 = off)
    daily_loss_limit_pct: float = 0.0  # 초기 자본 대비 %


@dataclass
class AccountState:
    """계좌 상태 (엔진 인스턴스별)"""
    equity: float
    trade_count: int = 0
    win_count: int = 0

    @property
    def win_rate(self) -> float:
        """승률 % (거래 없으면 0)"""
        if self.trade_count == 0:
            return 0.0
        return self.win_count / self.trade_count * 100


@dataclass
class DailyStats:
    """일일 통계"""
    date: date
    trades: int = 0
    wins: int = 0
    losses: int = 0
    pnl: float = 0.0


@dataclass(frozen=True)
class EntryPlan:
    """진입 계획 (주문 전)"""
    setup: Setup
    size: float
    levels: ExitLevels

    @property
    def side(self) -> str:
        return self.setup.side

    @property
    def order_side(self) -> str:
        return 'buy' if self.setup.side == 'long' else 'sell'


class RiskManager:
    """리스크 관리자 (포지션 레코드 단독 소유)"""

    def __init__(
        self,
        equity: float,
        config: Optional[RiskConfig] = None,
    ):
        """
        Args:
            equity: 초기 자본
            config: 리스크 설정
        """
        self.initial_equity = equity
        self.config = config or RiskConfig()
        self.account = AccountState(equity=equity)

        # 상태
        self.position: Optional[Position] = None
        self.consecutive_losses: int = 0
        self.cooldown_until: Optional[datetime] = None

        # 일일 통계
        self.daily_stats = DailyStats(date=date.today())

    @property
    def equity(self) -> float:
        return self.account.equity

    @property
    def is_flat(self) -> bool:
        return self.position is None

    def reset_daily(self):
        """일일 통계 리셋"""
        today = date.today()
        if self.daily_stats.date != today:
            self.daily_stats = DailyStats(date=today)

    # =========================================================================
    # Entry
    # =========================================================================

    def can_open_position(self) -> Tuple[bool, str]:
        """
        신규 진입 가능 여부 체크

        Returns:
            (allowed, reason)
        """
        self.reset_daily()

        # 1. 단일 포지션
        if self.position is not None:
            return False, "Position already open"

        # 2. Circuit Breaker 체크
        if self.cooldown_until and datetime.now() < self.cooldown_until:
            remaining = (self.cooldown_until - datetime.now()).seconds // 60
            return False, f"Circuit breaker active ({remaining}m remaining)"

        # 3. 일일 손실 한도 체크
        if self.is_daily_limit_reached():
            return False, f"Daily loss limit ({self.config.daily_loss_limit_pct}%) reached"

        return True, ""

    def plan_entry(
        self,
        setup: Setup,
        last_close: float,
        volatility: float,
    ) -> Optional[EntryPlan]:
        """
        셋업 → 진입 계획 (SL/TP/수량)

        Args:
            setup: 진입 셋업
            last_close: 마지막 봉 종가
            volatility: 마지막 봉 ATR

        Returns:
            EntryPlan, degenerate(스탑 거리 0, ATR 미정의 등)면 None
        """
        cfg = self.config
        levels = calc_exit_levels(
            entry_price=setup.entry_price,
            side=setup.side,
            last_close=last_close,
            volatility=volatility,
            pattern_extreme=setup.pattern_extreme,
            atr_mult_stop=cfg.atr_mult_stop,
            rr=cfg.rr,
        )
        if levels is None:
            return None

        size = calc_position_size(
            equity=self.account.equity,
            risk_pct=cfg.risk_pct,
            entry_price=setup.entry_price,
            stop_loss=levels.stop_loss,
        )
        if not size > 0:
            return None

        return EntryPlan(setup=setup, size=size, levels=levels)

    def open_position(
        self,
        plan: EntryPlan,
        filled: float,
        average: float,
        timestamp: Optional[datetime] = None,
    ) -> Position:
        """
        진입 체결 기록 (Flat → Entered)

        체결 수량/평균가가 실제 포지션 기준이 된다.
        """
        if self.position is not None:
            raise RuntimeError("position already open")

        self.position = Position(
            side=plan.setup.side,
            entry_price=average,
            size=filled,
            stop_price=plan.levels.stop_loss,
            target_price=plan.levels.take_profit,
            trail_stop=None,
            entry_time=timestamp,
        )
        return self.position

    # =========================================================================
    # Exit
    # =========================================================================

    def evaluate(self, current_price: float, volatility: float) -> Optional[ExitSignal]:
        """포지션 청산 신호 체크 (포지션 없으면 None)"""
        if self.position is None:
            return None
        return check_exit_signal(
            self.position,
            current_price,
            volatility,
            atr_mult_trail=self.config.atr_mult_trail,
        )

    def close_position(self, filled: float, average: float) -> float:
        """
        청산 체결 기록 (Entered → Flat)

        Args:
            filled: 체결 수량
            average: 평균 체결가

        Returns:
            실현 손익
        """
        if self.position is None:
            raise RuntimeError("no open position")

        pos = self.position
        pnl = calc_pnl(pos.side, pos.entry_price, average, filled)
        self.record_trade(pnl)
        self.position = None
        return pnl

    def record_trade(self, pnl: float):
        """
        거래 기록

        Args:
            pnl: 실현 손익 (quote 통화)
        """
        self.reset_daily()

        # 자본 업데이트
        self.account.equity += pnl
        self.account.trade_count += 1

        # 일일 통계 업데이트
        self.daily_stats.trades += 1
        self.daily_stats.pnl += pnl

        if pnl > 0:
            self.account.win_count += 1
            self.daily_stats.wins += 1
            self.consecutive_losses = 0
        else:
            self.daily_stats.losses += 1
            self.consecutive_losses += 1

        # Circuit Breaker 체크
        limit = self.config.consecutive_loss_limit
        if limit > 0 and self.consecutive_losses >= limit:
            self._activate_circuit_breaker()

    def is_daily_limit_reached(self) -> bool:
        """일일 손실 한도 도달 여부"""
        self.reset_daily()

        if self.config.daily_loss_limit_pct <= 0 or self.daily_stats.pnl >= 0:
            return False

        loss_pct = abs(self.daily_stats.pnl) / self.initial_equity * 100
        return loss_pct >= self.config.daily_loss_limit_pct

    def _activate_circuit_breaker(self):
        """Circuit Breaker 활성화"""
        self.cooldown_until = datetime.now() + timedelta(minutes=self.config.cooldown_minutes)

    def reset_circuit_breaker(self):
        """Circuit Breaker 리셋"""
        self.cooldown_until = None
        self.consecutive_losses = 0

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self) -> dict:
        """현재 상태 반환"""
        self.reset_daily()

        return {
            'equity': self.account.equity,
            'initial_equity': self.initial_equity,
            'pnl_pct': (self.account.equity - self.initial_equity) / self.initial_equity * 100,
            'trade_count': self.account.trade_count,
            'win_count': self.account.win_count,
            'win_rate': self.account.win_rate,
            'in_position': self.position is not None,
            'consecutive_losses': self.consecutive_losses,
            'circuit_breaker_active': self.cooldown_until is not None and datetime.now() < self.cooldown_until,
            'daily_stats': {
                'date': str(self.daily_stats.date),
                'trades': self.daily_stats.trades,
                'wins': self.daily_stats.wins,
                'losses': self.daily_stats.losses,
                'pnl': self.daily_stats.pnl,
            },
        }

    def format_status(self) -> str:
        """상태 포맷팅"""
        status = self.get_status()
        daily = status['daily_stats']

        lines = [
            "=" * 50,
            "Risk Manager Status",
            "=" * 50,
            f"Equity: {status['equity']:,.2f} ({status['pnl_pct']:+.2f}%)",
            f"Trades: {status['trade_count']} (W:{status['win_count']}) Win Rate: {status['win_rate']:.1f}%",
            f"Position: {'OPEN' if status['in_position'] else 'FLAT'}",
            f"Consecutive Losses: {status['consecutive_losses']}",
            f"Circuit Breaker: {'ACTIVE' if status['circuit_breaker_active'] else 'OFF'}",
            "",
            f"--- Daily ({daily['date']}) ---",
            f"Trades: {daily['trades']} (W:{daily['wins']} L:{daily['losses']})",
            f"PnL: {daily['pnl']:+,.2f}",
            "=" * 50,
        ]

        return "\n".join(lines)
