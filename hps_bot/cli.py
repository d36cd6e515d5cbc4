"""
HPS Quad Divergence Bot CLI
===========================

RUN (paper mode):
    hps-bot --symbol BTC/USDT --timeframe 5m

RUN (live, at your own risk):
    API_KEY=xxx API_SECRET=yyy hps-bot --live
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

from .config import BotConfig, ConfigError, load_bot_config, validate_config
from .execution import (
    BotRunner,
    CcxtGateway,
    CcxtMarketData,
    PaperGateway,
    TradingEngine,
    create_exchange,
)

logger = logging.getLogger("hps_bot")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """hps_bot 로거 설정 (stdout + 선택적 파일)"""
    root = logging.getLogger("hps_bot")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not root.handlers:
        formatter = logging.Formatter(LOG_FORMAT)
        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if log_file:
            handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        for handler in handlers:
            handler.setFormatter(formatter)
            root.addHandler(handler)

    return root


def apply_cli_overrides(config: BotConfig, args: argparse.Namespace) -> BotConfig:
    """CLI 인자 → 설정 오버라이드 (재검증)"""
    exchange = config.exchange
    if args.symbol:
        exchange = dataclasses.replace(exchange, symbol=args.symbol)
    if args.timeframe:
        exchange = dataclasses.replace(exchange, timeframe=args.timeframe)
    if args.live:
        exchange = dataclasses.replace(exchange, dry_run=False)
    return validate_config(dataclasses.replace(config, exchange=exchange))


def build_runner(config: BotConfig) -> BotRunner:
    """설정 → 거래소/엔진/러너 조립"""
    exchange = create_exchange(config.exchange)
    market = CcxtMarketData(exchange)
    if config.exchange.dry_run:
        gateway = PaperGateway(config.exchange.symbol)
    else:
        gateway = CcxtGateway(exchange, config.exchange.symbol)
    engine = TradingEngine(config, market=market, gateway=gateway)
    return BotRunner(engine, config.loop)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="HPS Quad Divergence trading bot")
    p.add_argument("--config", type=str, default=None, help="Override YAML (merged over config/default.yaml).")
    p.add_argument("--symbol", type=str, default=None, help="Instrument symbol, e.g. BTC/USDT.")
    p.add_argument("--timeframe", type=str, default=None, help="Bar timeframe, e.g. 5m.")
    p.add_argument("--live", action="store_true", help="Live trading (requires API_KEY/API_SECRET).")
    p.add_argument("--once", action="store_true", help="Run a single iteration and exit.")
    p.add_argument("--log-level", type=str, default="INFO")
    p.add_argument("--log-file", type=str, default=None)
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        config = apply_cli_overrides(load_bot_config(args.config), args)
        runner = build_runner(config)
    except ConfigError as e:
        logger.critical(f"Fatal error: {e}")
        return 1

    try:
        runner.run(max_iterations=1 if args.once else None)
    except KeyboardInterrupt:
        runner.stop()
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
