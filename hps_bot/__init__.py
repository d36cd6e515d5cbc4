"""
HPS Quad Divergence Bot
=======================

Core Components:
- anchor/: Indicators + Stochastic bands + HPS divergence scanner + exit logic
- risk/: Position sizing, position lifecycle, account state
- execution/: Market data, order gateway, trading engine, polling runner
- config/: YAML + env parameter loader
- utils/: Timeframe helpers
"""

__version__ = "0.1.0"
