# -*- coding: utf-8 -*-
"""
Timeframe Module Tests
======================

Tests for hps_bot/utils/timeframe.py
"""
import pytest

from hps_bot.utils.timeframe import CCXT_TIMEFRAMES, TimeframeSpec


class TestTimeframeSpec:
    """TimeframeSpec 테스트"""

    def test_from_string_5m(self):
        tf = TimeframeSpec.from_string("5m")
        assert tf.name == "5m"
        assert tf.minutes == 5
        assert tf.seconds == 300

    @pytest.mark.parametrize("name,minutes", [("8h", 480), ("3d", 4320), ("1w", 10080)])
    def test_ccxt_timeframes(self, name, minutes):
        assert TimeframeSpec.from_string(name).minutes == minutes

    def test_month_is_case_sensitive(self):
        """'1M' = 월, '1m' = 분"""
        assert TimeframeSpec.from_string("1M").minutes == 30 * 1440
        assert TimeframeSpec.from_string("1m").minutes == 1

    def test_case_and_whitespace(self):
        assert TimeframeSpec.from_string(" 4H ").name == "4h"

    def test_invalid(self):
        with pytest.raises(ValueError, match="Unknown timeframe"):
            TimeframeSpec.from_string("7m")

    def test_all_mappings_consistent(self):
        for name, minutes in CCXT_TIMEFRAMES.items():
            assert TimeframeSpec.from_string(name).seconds == minutes * 60
