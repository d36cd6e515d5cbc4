"""
Utils Package
=============

Utility modules for hps_bot.
"""
from .timeframe import (
    CCXT_TIMEFRAMES,
    TimeframeSpec,
)

__all__ = [
    'CCXT_TIMEFRAMES',
    'TimeframeSpec',
]
