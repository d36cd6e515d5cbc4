"""
Bar Timeframe
=============

ccxt 타임프레임 문자열 ('5m', '8h', '3d', '1M' ...) 파싱.

- TimeframeSpec.from_string(): 지원 목록 밖이면 ValueError
- seconds: 봉 길이 (폴링 간격 검증용)

'M'(월)은 대문자만 월로 취급한다 ('1m' = 1분). 그 외 단위는 대소문자 무시.
월은 30일로 환산한다.

사용법:
    from hps_bot.utils.timeframe import TimeframeSpec

    tf = TimeframeSpec.from_string("5m")
    tf.seconds   # -> 300
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


# ccxt 통합 타임프레임 → 봉당 분
CCXT_TIMEFRAMES: Dict[str, int] = {
    '1m': 1,
    '3m': 3,
    '5m': 5,
    '15m': 15,
    '30m': 30,
    '1h': 60,
    '2h': 120,
    '4h': 240,
    '6h': 360,
    '8h': 480,
    '12h': 720,
    '1d': 1440,
    '3d': 4320,
    '1w': 10080,
    '1M': 43200,
}


@dataclass(frozen=True)
class TimeframeSpec:
    """봉 타임프레임"""
    name: str
    minutes: int

    @classmethod
    def from_string(cls, tf: str) -> TimeframeSpec:
        """
        Args:
            tf: ccxt 타임프레임 문자열

        Raises:
            ValueError: 지원하지 않는 타임프레임
        """
        key = str(tf).strip()
        if key not in CCXT_TIMEFRAMES:
            key = key.lower()
        if key not in CCXT_TIMEFRAMES:
            raise ValueError(f"Unknown timeframe: '{tf}'. Valid options: {list(CCXT_TIMEFRAMES)}")
        return cls(name=key, minutes=CCXT_TIMEFRAMES[key])

    @property
    def seconds(self) -> int:
        return self.minutes * 60
