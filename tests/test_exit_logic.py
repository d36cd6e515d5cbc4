# -*- coding: utf-8 -*-
"""
Exit Logic Test
===============

청산 레벨 / 포지션 사이즈 / 청산 신호 단위 테스트.
"""
import math

import pytest

from hps_bot.anchor.exit_logic import (
    ExitReason,
    Position,
    calc_exit_levels,
    calc_pnl,
    calc_position_size,
    check_exit_signal,
    format_position,
    update_trailing_stop,
)


def long_position(**kwargs):
    params = dict(side='long', entry_price=100.0, size=2.0, stop_price=95.0, target_price=107.5)
    params.update(kwargs)
    return Position(**params)


def short_position(**kwargs):
    params = dict(side='short', entry_price=100.0, size=2.0, stop_price=105.0, target_price=92.5)
    params.update(kwargs)
    return Position(**params)


class TestCalcExitLevels:
    """calc_exit_levels() 테스트"""

    def test_long_pattern_extreme_is_farther(self):
        levels = calc_exit_levels(
            entry_price=100.0,
            side='long',
            last_close=100.0,
            volatility=2.0,
            pattern_extreme=95.0,
            atr_mult_stop=0.6,
            rr=1.5,
        )
        # ATR 버퍼 = 100 - 1.2 = 98.8 → 더 먼 95 사용
        assert levels.stop_loss == pytest.approx(95.0)
        assert levels.risk_per_unit == pytest.approx(5.0)
        assert levels.take_profit == pytest.approx(107.5)
        print(f"[PASS] Long: SL={levels.stop_loss:.2f}, TP={levels.take_profit:.2f}")

    def test_long_atr_buffer_is_farther(self):
        levels = calc_exit_levels(100.0, 'long', 100.0, 10.0, 99.0, atr_mult_stop=0.6, rr=2.0)
        # 100 - 6 = 94 < 99
        assert levels.stop_loss == pytest.approx(94.0)
        assert levels.take_profit == pytest.approx(112.0)

    def test_short_levels(self):
        levels = calc_exit_levels(100.0, 'short', 100.0, 2.0, 105.0, atr_mult_stop=0.6, rr=1.5)
        assert levels.stop_loss == pytest.approx(105.0)
        assert levels.take_profit == pytest.approx(92.5)
        print(f"[PASS] Short: SL={levels.stop_loss:.2f}, TP={levels.take_profit:.2f}")

    def test_undefined_volatility(self):
        assert calc_exit_levels(100.0, 'long', 100.0, float('nan'), 95.0) is None

    def test_stop_on_wrong_side(self):
        # 진입가가 이미 패턴 저점/버퍼 아래
        assert calc_exit_levels(90.0, 'long', 100.0, 1.0, 95.0) is None
        assert calc_exit_levels(100.0, 'long', 100.0, 0.0, 100.0) is None


class TestPositionSize:
    """calc_position_size() 테스트"""

    def test_basic(self):
        # 10000 * 1% / 5 = 20
        assert calc_position_size(10000, 0.01, 100.0, 95.0) == pytest.approx(20.0)

    def test_risk_amount_matches_equity_fraction(self):
        for entry, stop in [(100.0, 95.0), (250.0, 260.0), (0.5, 0.49)]:
            size = calc_position_size(5000, 0.02, entry, stop)
            assert size * abs(entry - stop) == pytest.approx(5000 * 0.02)

    def test_zero_distance(self):
        assert calc_position_size(10000, 0.01, 100.0, 100.0) == 0.0


class TestCheckExitSignal:
    """check_exit_signal() 테스트"""

    def test_stop_loss_first(self):
        """가격 경로 100 → 98 → 95 : 95 에서 Stop Loss"""
        pos = long_position()
        signal = None
        for price in [100.0, 98.0, 95.0, 110.0]:
            signal = check_exit_signal(pos, price, 1.0)
            if signal:
                break

        assert signal.reason == ExitReason.STOP_LOSS
        assert signal.price == 95.0
        assert calc_pnl(pos.side, pos.entry_price, signal.price, pos.size) < 0

    def test_take_profit(self):
        signal = check_exit_signal(long_position(), 108.0, 1.0)
        assert signal.reason == ExitReason.TAKE_PROFIT

    def test_trailing_stop(self):
        """103 에서 trail 101.5, 101 에서 Trailing Stop"""
        pos = long_position()
        assert check_exit_signal(pos, 103.0, 1.5, atr_mult_trail=1.0) is None
        assert pos.trail_stop == pytest.approx(101.5)

        signal = check_exit_signal(pos, 101.0, 1.5, atr_mult_trail=1.0)
        assert signal.reason == ExitReason.TRAILING_STOP
        assert calc_pnl(pos.side, pos.entry_price, 101.0, pos.size) > 0
        print(f"[PASS] Trailing: {signal.message}")

    def test_trailing_checked_below_entry(self):
        """trail 설정 이후에는 진입가 아래에서도 체크"""
        pos = long_position(trail_stop=99.0)
        signal = check_exit_signal(pos, 98.5, 1.0)
        assert signal.reason == ExitReason.TRAILING_STOP

    def test_no_trail_when_not_in_profit(self):
        pos = long_position()
        assert check_exit_signal(pos, 99.0, 1.0) is None
        assert pos.trail_stop is None

    def test_short_mirror(self):
        pos = short_position()
        assert check_exit_signal(pos, 97.0, 1.5) is None
        assert pos.trail_stop == pytest.approx(98.5)
        assert check_exit_signal(pos, 99.0, 1.5).reason == ExitReason.TRAILING_STOP
        assert check_exit_signal(short_position(), 105.0, 1.0).reason == ExitReason.STOP_LOSS
        assert check_exit_signal(short_position(), 92.0, 1.0).reason == ExitReason.TAKE_PROFIT

    def test_undefined_volatility_keeps_trail(self):
        pos = long_position(trail_stop=101.0)
        assert check_exit_signal(pos, 104.0, float('nan')) is None
        assert pos.trail_stop == 101.0


class TestTrailingMonotonic:
    """트레일링 스탑은 절대 느슨해지지 않는다"""

    def test_long_only_ratchets_up(self):
        pos = long_position(target_price=1e9)
        history = []
        for price in [101.0, 104.0, 102.5, 106.0, 103.0, 107.0]:
            update_trailing_stop(pos, price, 1.0)
            history.append(pos.trail_stop)
        assert history == sorted(history)
        assert history[-1] == pytest.approx(106.0)

    def test_short_only_ratchets_down(self):
        pos = short_position(target_price=-1e9)
        history = []
        for price in [99.0, 96.0, 97.5, 94.0, 98.0]:
            update_trailing_stop(pos, price, 1.0)
            history.append(pos.trail_stop)
        assert history == sorted(history, reverse=True)
        assert history[-1] == pytest.approx(95.0)

    def test_update_returns_flag(self):
        pos = long_position()
        assert update_trailing_stop(pos, 103.0, 1.0) is True
        assert update_trailing_stop(pos, 102.0, 1.0) is False
        assert not math.isnan(pos.trail_stop)


class TestHelpers:
    def test_pnl_sign(self):
        assert calc_pnl('long', 100.0, 110.0, 2.0) == pytest.approx(20.0)
        assert calc_pnl('short', 100.0, 110.0, 2.0) == pytest.approx(-20.0)

    def test_format_position(self):
        text = format_position(long_position())
        assert text.startswith("LONG")
        assert "Trail -" in text
