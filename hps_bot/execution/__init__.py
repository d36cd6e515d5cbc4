"""Execution Layer - Market Data + Order Gateway + Engine + Runner"""
from .market import (
    Bar,
    CcxtMarketData,
    MarketDataError,
    MarketDataProvider,
    bars_to_frame,
    normalize_bars,
)
from .gateway import (
    CcxtGateway,
    OrderFill,
    OrderGateway,
    PaperGateway,
    create_exchange,
)
from .engine import (
    EngineEvent,
    IndicatorSet,
    TickReport,
    TradingEngine,
    compute_indicators,
    risk_config_from,
)
from .runner import BotRunner

__all__ = [
    'Bar',
    'CcxtMarketData',
    'MarketDataError',
    'MarketDataProvider',
    'bars_to_frame',
    'normalize_bars',
    'CcxtGateway',
    'OrderFill',
    'OrderGateway',
    'PaperGateway',
    'create_exchange',
    'EngineEvent',
    'IndicatorSet',
    'TickReport',
    'TradingEngine',
    'compute_indicators',
    'risk_config_from',
    'BotRunner',
]
