# -*- coding: utf-8 -*-
"""
Trading Engine - HPS Quad Divergence
====================================

단일 종목 신호 + 실행 코어. step() 한 번 = 틱 한 번.

틱 순서:
1. 최신 min_bars 봉 조회 (실패/부족 → 스킵, 상태 변경 없음)
2. 전체 윈도우 지표 계산 (Stochastic 밴드, ATR, EMA)
3. Flat 이면 스캔 → 마지막 봉에서 발생한 셋업만 진입
4. 포지션 있으면 (같은 틱 진입 포함) Stop → Target → Trailing 체크

상태(포지션, 계좌)는 엔진 인스턴스가 소유한다. 종목마다 엔진을 따로 만들 것.

사용법:
```python
engine = TradingEngine(config, market=CcxtMarketData(exchange), gateway=PaperGateway(symbol))
engine.add_listener(lambda event: print(event.kind, event.data))
report = engine.step()
```
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from ..anchor.divergence import Setup, find_hps_setups, select_actionable
from ..anchor.exit_logic import ExitSignal, format_position
from ..anchor.indicators import atr, ema, last_value
from ..anchor.stochastic import StochasticBand, compute_bands
from ..config import BotConfig
from ..risk.manager import RiskConfig, RiskManager
from .gateway import OrderGateway
from .market import MarketDataError, MarketDataProvider, bars_to_frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    """외부 관찰용 이벤트 (entry / exit / *_failed / fetch_error / ...)"""
    kind: str
    timestamp: datetime
    data: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[EngineEvent], None]


@dataclass(frozen=True)
class IndicatorSet:
    """틱 단위 지표 묶음 (봉 윈도우와 index-aligned)"""
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    bands: List[StochasticBand]
    volatility: np.ndarray  # ATR
    trend: Optional[np.ndarray]  # EMA (필터 비활성 시 None)


@dataclass
class TickReport:
    """step() 결과 요약"""
    bars: int = 0
    skipped: bool = False
    setup: Optional[Setup] = None
    entered: bool = False
    exit_signal: Optional[ExitSignal] = None
    exited: bool = False
    pnl: Optional[float] = None


def risk_config_from(config: BotConfig) -> RiskConfig:
    """BotConfig.risk → RiskConfig"""
    rk = config.risk
    return RiskConfig(
        risk_pct=rk.risk_pct,
        rr=rk.rr,
        atr_mult_stop=rk.atr_mult_stop,
        atr_mult_trail=rk.atr_mult_trail,
        consecutive_loss_limit=rk.consecutive_loss_limit,
        cooldown_minutes=rk.cooldown_minutes,
        daily_loss_limit_pct=rk.daily_loss_limit_pct,
    )


def compute_indicators(frame: pd.DataFrame, config: BotConfig) -> IndicatorSet:
    """봉 DataFrame → IndicatorSet"""
    high = frame["high"].to_numpy(dtype=np.float64)
    low = frame["low"].to_numpy(dtype=np.float64)
    close = frame["close"].to_numpy(dtype=np.float64)

    st = config.stoch
    bands = compute_bands(high, low, close, st.periods, st.smooth_k, st.smooth_d)
    volatility = atr(high, low, close, config.risk.atr_period)
    trend = ema(close, config.trend.ema_period) if config.trend.enabled else None

    return IndicatorSet(
        high=high,
        low=low,
        close=close,
        bands=bands,
        volatility=volatility,
        trend=trend,
    )


class TradingEngine:
    """HPS Quad Divergence 실행 엔진"""

    def __init__(
        self,
        config: BotConfig,
        market: MarketDataProvider,
        gateway: OrderGateway,
        risk: Optional[RiskManager] = None,
    ):
        self.config = config
        self.market = market
        self.gateway = gateway
        self.risk = risk or RiskManager(
            equity=config.risk.initial_equity,
            config=risk_config_from(config),
        )
        self._listeners: List[Listener] = []

    # =========================================================================
    # Observer
    # =========================================================================

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, kind: str, **data) -> None:
        event = EngineEvent(kind=kind, timestamp=datetime.now(timezone.utc), data=data)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener failed for event '{kind}'")

    # =========================================================================
    # Tick
    # =========================================================================

    def scan(self, ind: IndicatorSet) -> List[Setup]:
        sc = self.config.scan
        return find_hps_setups(
            ind.high,
            ind.low,
            ind.close,
            ind.bands,
            ind.trend,
            stage_window=sc.stage_window,
            stage2_lookahead=sc.stage2_lookahead,
            equal_tol=sc.equal_tol,
            max_entry_lookahead=sc.max_entry_lookahead,
        )

    def step(self) -> TickReport:
        """틱 한 번 실행"""
        ex = self.config.exchange
        report = TickReport()

        try:
            bars = self.market.fetch_bars(ex.symbol, ex.timeframe, ex.min_bars)
        except MarketDataError as e:
            logger.error(f"Error fetching bars: {e}")
            self._emit("fetch_error", error=str(e))
            bars = []

        report.bars = len(bars)
        if len(bars) < ex.min_bars:
            logger.warning(f"Insufficient bars: {len(bars)}/{ex.min_bars}")
            self._emit("insufficient_bars", bars=len(bars), required=ex.min_bars)
            report.skipped = True
            return report

        frame = bars_to_frame(bars)
        ind = compute_indicators(frame, self.config)
        timestamp = bars[-1].timestamp

        if self.risk.is_flat:
            self._try_enter(ind, timestamp, report)

        if not self.risk.is_flat:
            self._manage(ind, report)

        return report

    def _try_enter(self, ind: IndicatorSet, timestamp: datetime, report: TickReport) -> None:
        allowed, reason = self.risk.can_open_position()
        if not allowed:
            logger.debug(f"Entry blocked: {reason}")
            return

        last_bar = len(ind.close) - 1
        setup = select_actionable(self.scan(ind), last_bar)
        if setup is None:
            return
        report.setup = setup

        last_close = float(ind.close[-1])
        volatility = last_value(ind.volatility)
        plan = self.risk.plan_entry(setup, last_close, volatility)
        if plan is None:
            logger.info(
                f"{setup.side.upper()} setup skipped: degenerate risk distance "
                f"(entry={setup.entry_price}, extreme={setup.pattern_extreme}, atr={volatility})"
            )
            self._emit("setup_skipped", side=setup.side, entry_price=setup.entry_price)
            return

        fill = self.gateway.submit(plan.order_side, plan.size, setup.entry_price)
        if fill is None:
            logger.warning(f"{setup.side.upper()} entry order failed, staying flat")
            self._emit("entry_failed", side=setup.side, size=plan.size)
            return

        pos = self.risk.open_position(plan, fill.filled, fill.average, timestamp)
        report.entered = True
        logger.info(
            f"{pos.side.upper()} ENTRY: {pos.size} @ {pos.entry_price}, "
            f"Stop: {pos.stop_price}, Target: {pos.target_price} "
            f"(stage1={setup.stage1_bar}, stage2={setup.stage2_bar}, div={setup.divergence:.2f})"
        )
        self._emit(
            "entry",
            side=pos.side,
            size=pos.size,
            entry_price=pos.entry_price,
            stop_price=pos.stop_price,
            target_price=pos.target_price,
            order_id=fill.order_id,
        )

    def _manage(self, ind: IndicatorSet, report: TickReport) -> None:
        pos = self.risk.position
        current_price = float(ind.close[-1])
        volatility = last_value(ind.volatility)

        signal = self.risk.evaluate(current_price, volatility)
        report.exit_signal = signal
        if signal is None:
            logger.debug(f"Holding {format_position(pos)} | uPnL {pos.unrealized_pnl(current_price):+.2f}")
            return

        side = 'sell' if pos.is_long else 'buy'
        fill = self.gateway.submit(side, pos.size, current_price)
        if fill is None:
            logger.warning(f"{pos.side.upper()} exit order failed ({signal.reason.value}), retrying next tick")
            self._emit("exit_failed", side=pos.side, reason=signal.reason.value)
            return

        closed_side = pos.side
        pnl = self.risk.close_position(fill.filled, fill.average)
        report.exited = True
        report.pnl = pnl

        account = self.risk.account
        quote = self.config.exchange.quote_ccy
        logger.info(f"{closed_side.upper()} EXIT ({signal.reason.value}): {fill.filled} @ {fill.average}")
        logger.info(
            f"PnL: {pnl:.2f} {quote}, Equity: {account.equity:.2f}, "
            f"Win Rate: {account.win_rate:.1f}%"
        )
        self._emit(
            "exit",
            side=closed_side,
            reason=signal.reason.value,
            exit_price=fill.average,
            size=fill.filled,
            pnl=pnl,
            equity=account.equity,
            win_rate=account.win_rate,
        )
