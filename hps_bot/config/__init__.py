"""
Config Module
=============

봇 파라미터 관리.
YAML 파일에서 설정 로드 + 환경변수 오버라이드.
"""

from .loader import (
    BotConfig,
    ConfigError,
    ExchangeParams,
    LoopParams,
    RiskParams,
    ScanParams,
    StochParams,
    TrendParams,
    config_from_dict,
    load_bot_config,
    load_config,
    validate_config,
)

__all__ = [
    'BotConfig',
    'ConfigError',
    'ExchangeParams',
    'LoopParams',
    'RiskParams',
    'ScanParams',
    'StochParams',
    'TrendParams',
    'config_from_dict',
    'load_bot_config',
    'load_config',
    'validate_config',
]
