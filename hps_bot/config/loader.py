"""
Config Loader
=============

YAML 기반 봇 파라미터 로더.

사용법:
    from hps_bot.config import load_bot_config

    config = load_bot_config()                    # config/default.yaml + env
    config = load_bot_config("config/eth.yaml")   # 추가 YAML 오버라이드
    print(config.exchange.symbol)      # BTC/USDT
    print(config.stoch.periods)        # (9, 14, 21, 34)

우선순위: default.yaml < override YAML < 환경변수

환경변수 오버라이드:
    SYMBOL=ETH/USDT          # 심볼
    TIMEFRAME=15m            # 타임프레임
    DRY_RUN=false            # 라이브 모드 (API_KEY/API_SECRET 필요)
    STOCH_PERIODS=9,14,21,34 # Stochastic 밴드
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

from ..utils.timeframe import TimeframeSpec


CONFIG_DIR = Path(__file__).parent.parent.parent / "config"
DEFAULT_CONFIG = CONFIG_DIR / "default.yaml"


class ConfigError(ValueError):
    """시작 시 설정 오류 (치명적)"""


@dataclass(frozen=True)
class ExchangeParams:
    """거래소/종목 파라미터"""
    exchange_id: str = "binance"
    symbol: str = "BTC/USDT"
    timeframe: str = "5m"
    min_bars: int = 500
    dry_run: bool = True
    quote_ccy: str = "USDT"
    api_key: str = field(default="", repr=False)
    api_secret: str = field(default="", repr=False)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)


@dataclass(frozen=True)
class RiskParams:
    """리스크/청산 파라미터"""
    initial_equity: float = 10000.0
    risk_pct: float = 0.01
    rr: float = 1.5
    atr_period: int = 14
    atr_mult_stop: float = 0.6
    atr_mult_trail: float = 1.0
    consecutive_loss_limit: int = 0
    cooldown_minutes: int = 60
    daily_loss_limit_pct: float = 0.0


@dataclass(frozen=True)
class StochParams:
    """Stochastic 밴드 파라미터 (periods[0] = primary)"""
    periods: Tuple[int, ...] = (9, 14, 21, 34)
    smooth_k: int = 3
    smooth_d: int = 3


@dataclass(frozen=True)
class ScanParams:
    """HPS 스캔 파라미터"""
    stage_window: int = 30
    stage2_lookahead: int = 20
    equal_tol: float = 0.0007
    max_entry_lookahead: int = 10


@dataclass(frozen=True)
class TrendParams:
    """EMA 트렌드 필터"""
    ema_period: int = 20
    enabled: bool = True


@dataclass(frozen=True)
class LoopParams:
    """폴링 루프 간격 (초)"""
    poll_interval_sec: float = 30.0
    error_backoff_sec: float = 60.0


@dataclass(frozen=True)
class BotConfig:
    """통합 봇 설정 (시작 시 1회 확정, 이후 불변)"""
    exchange: ExchangeParams = field(default_factory=ExchangeParams)
    risk: RiskParams = field(default_factory=RiskParams)
    stoch: StochParams = field(default_factory=StochParams)
    scan: ScanParams = field(default_factory=ScanParams)
    trend: TrendParams = field(default_factory=TrendParams)
    loop: LoopParams = field(default_factory=LoopParams)

    def summary(self) -> str:
        ex = self.exchange
        return (
            f"{ex.exchange_id} {ex.symbol} {ex.timeframe} "
            f"({'PAPER' if ex.dry_run else 'LIVE'}) | "
            f"Risk: {self.risk.risk_pct * 100:.2f}%, RR: {self.risk.rr} | "
            f"Stoch Periods: {list(self.stoch.periods)}, "
            f"EMA Filter: {self.trend.enabled} ({self.trend.ema_period})"
        )


# =============================================================================
# YAML / Env
# =============================================================================

def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _deep_merge(base: Dict, override: Dict) -> Dict:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def _parse_int_list(value: Any) -> Tuple[int, ...]:
    if isinstance(value, str):
        value = [v for v in value.split(",") if v.strip()]
    return tuple(int(str(v).strip()) for v in value)


# 환경변수 → (섹션, 키, 파서)
ENV_OVERRIDES: Dict[str, Tuple[str, str, Callable[[Any], Any]]] = {
    "EXCHANGE": ("exchange", "id", str),
    "SYMBOL": ("exchange", "symbol", str),
    "TIMEFRAME": ("exchange", "timeframe", str),
    "MIN_BARS": ("exchange", "min_bars", int),
    "DRY_RUN": ("exchange", "dry_run", _parse_bool),
    "QUOTE_CCY": ("exchange", "quote_ccy", str),
    "API_KEY": ("exchange", "api_key", str),
    "API_SECRET": ("exchange", "api_secret", str),
    "INITIAL_EQUITY": ("risk", "initial_equity", float),
    "RISK_PER_TRADE": ("risk", "risk_pct", float),
    "RR_RATIO": ("risk", "rr", float),
    "ATR_PERIOD": ("risk", "atr_period", int),
    "ATR_MULT_STOP": ("risk", "atr_mult_stop", float),
    "ATR_MULT_TRAIL": ("risk", "atr_mult_trail", float),
    "STOCH_PERIODS": ("stoch", "periods", _parse_int_list),
    "STOCH_SMOOTH_K": ("stoch", "smooth_k", int),
    "STOCH_SMOOTH_D": ("stoch", "smooth_d", int),
    "STAGE_WINDOW": ("scan", "stage_window", int),
    "STAGE2_LOOKAHEAD": ("scan", "stage2_lookahead", int),
    "TOL_EQUAL_LOW": ("scan", "equal_tol", float),
    "EMA_PERIOD": ("trend", "ema_period", int),
    "EMA_FILTER": ("trend", "enabled", _parse_bool),
    "POLL_INTERVAL": ("loop", "poll_interval_sec", float),
    "ERROR_BACKOFF": ("loop", "error_backoff_sec", float),
}


def _apply_env_overrides(config: Dict, env: Optional[Dict[str, str]] = None) -> Dict:
    env = os.environ if env is None else env
    for name, (section, key, parse) in ENV_OVERRIDES.items():
        raw = env.get(name)
        if raw is None or raw == "":
            continue
        try:
            value = parse(raw)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {name}={raw!r}: {e}") from e
        if not isinstance(config.get(section), dict):
            config[section] = {}
        config[section][key] = value
    return config


# =============================================================================
# Build / Validate
# =============================================================================

def _build(merged: Dict[str, Any]) -> BotConfig:
    ex = merged.get("exchange", {}) or {}
    rk = merged.get("risk", {}) or {}
    st = merged.get("stoch", {}) or {}
    sc = merged.get("scan", {}) or {}
    tr = merged.get("trend", {}) or {}
    lp = merged.get("loop", {}) or {}

    try:
        return BotConfig(
            exchange=ExchangeParams(
                exchange_id=str(ex.get("id", "binance")),
                symbol=str(ex.get("symbol", "BTC/USDT")),
                timeframe=str(ex.get("timeframe", "5m")),
                min_bars=int(ex.get("min_bars", 500)),
                dry_run=_parse_bool(ex.get("dry_run", True)),
                quote_ccy=str(ex.get("quote_ccy", "USDT")),
                api_key=str(ex.get("api_key", "") or ""),
                api_secret=str(ex.get("api_secret", "") or ""),
            ),
            risk=RiskParams(
                initial_equity=float(rk.get("initial_equity", 10000.0)),
                risk_pct=float(rk.get("risk_pct", 0.01)),
                rr=float(rk.get("rr", 1.5)),
                atr_period=int(rk.get("atr_period", 14)),
                atr_mult_stop=float(rk.get("atr_mult_stop", 0.6)),
                atr_mult_trail=float(rk.get("atr_mult_trail", 1.0)),
                consecutive_loss_limit=int(rk.get("consecutive_loss_limit", 0)),
                cooldown_minutes=int(rk.get("cooldown_minutes", 60)),
                daily_loss_limit_pct=float(rk.get("daily_loss_limit_pct", 0.0)),
            ),
            stoch=StochParams(
                periods=_parse_int_list(st.get("periods", (9, 14, 21, 34))),
                smooth_k=int(st.get("smooth_k", 3)),
                smooth_d=int(st.get("smooth_d", 3)),
            ),
            scan=ScanParams(
                stage_window=int(sc.get("stage_window", 30)),
                stage2_lookahead=int(sc.get("stage2_lookahead", 20)),
                equal_tol=float(sc.get("equal_tol", 0.0007)),
                max_entry_lookahead=int(sc.get("max_entry_lookahead", 10)),
            ),
            trend=TrendParams(
                ema_period=int(tr.get("ema_period", 20)),
                enabled=_parse_bool(tr.get("enabled", True)),
            ),
            loop=LoopParams(
                poll_interval_sec=float(lp.get("poll_interval_sec", 30.0)),
                error_backoff_sec=float(lp.get("error_backoff_sec", 60.0)),
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config value: {e}") from e


def validate_config(config: BotConfig) -> BotConfig:
    """설정 값 검증 (오류 시 ConfigError)"""
    ex, rk, st, sc = config.exchange, config.risk, config.stoch, config.scan

    try:
        tf = TimeframeSpec.from_string(ex.timeframe)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    if tf.name != ex.timeframe:
        ex = replace(ex, timeframe=tf.name)
        config = replace(config, exchange=ex)

    checks = [
        (ex.min_bars > 0, "exchange.min_bars must be positive"),
        (rk.initial_equity > 0, "risk.initial_equity must be positive"),
        (0 < rk.risk_pct < 1, "risk.risk_pct must be in (0, 1)"),
        (rk.rr > 0, "risk.rr must be positive"),
        (rk.atr_period > 0, "risk.atr_period must be positive"),
        (rk.atr_mult_stop >= 0, "risk.atr_mult_stop must be >= 0"),
        (rk.atr_mult_trail >= 0, "risk.atr_mult_trail must be >= 0"),
        (len(st.periods) > 0, "stoch.periods must not be empty"),
        (all(p > 0 for p in st.periods), "stoch.periods must be positive"),
        (st.smooth_k > 0 and st.smooth_d > 0, "stoch smoothing must be positive"),
        (sc.stage_window >= 0, "scan.stage_window must be >= 0"),
        (sc.stage2_lookahead > 0, "scan.stage2_lookahead must be positive"),
        (sc.equal_tol >= 0, "scan.equal_tol must be >= 0"),
        (sc.max_entry_lookahead > 0, "scan.max_entry_lookahead must be positive"),
        (config.trend.ema_period > 0, "trend.ema_period must be positive"),
        (config.loop.poll_interval_sec >= 0, "loop.poll_interval_sec must be >= 0"),
        # 셋업은 마지막 봉에서만 진입 가능 → 봉 하나 안에 최소 1회 폴링
        (
            config.loop.poll_interval_sec < tf.seconds,
            f"loop.poll_interval_sec must be shorter than one {tf.name} bar ({tf.seconds}s)",
        ),
        (config.loop.error_backoff_sec >= 0, "loop.error_backoff_sec must be >= 0"),
    ]
    for ok, message in checks:
        if not ok:
            raise ConfigError(message)

    if not ex.dry_run and not ex.has_credentials:
        raise ConfigError("API_KEY and API_SECRET required for live trading")

    return config


def load_config(override_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """기본 설정 + 오버라이드 YAML + 환경변수 (dict)"""
    base = _load_yaml(DEFAULT_CONFIG)
    if override_path is not None:
        path = Path(override_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        base = _deep_merge(base, _load_yaml(path))
    return _apply_env_overrides(base)


def load_bot_config(
    override_path: Optional[Union[str, Path]] = None,
    *,
    use_dotenv: bool = True,
) -> BotConfig:
    """봇 설정 로드 + 검증"""
    if use_dotenv:
        load_dotenv()
    return validate_config(_build(load_config(override_path)))


def config_from_dict(data: Dict[str, Any]) -> BotConfig:
    """dict에서 직접 설정 생성 (테스트/임베딩용, 환경변수 미적용)"""
    return validate_config(_build(data))
