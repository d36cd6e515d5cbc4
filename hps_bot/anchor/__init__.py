"""
Anchor Layer - Indicators + Stochastic Bands + HPS Divergence + Exit Logic
==========================================================================

- indicators.py: EMA / SMA / ATR (NaN warm-up)
- stochastic.py: 다중 Stochastic 밴드 (flat market = 50)
- divergence.py: HPS Quad Divergence 스캐너 (Stage-1 → Stage-2 → Entry)
- exit_logic.py: SL/TP/Trailing 레벨 및 청산 신호
"""
from .indicators import (
    ema,
    sma,
    true_range,
    atr,
    last_value,
)
from .stochastic import (
    OVERSOLD,
    OVERBOUGHT,
    StochasticBand,
    raw_stochastic_k,
    stochastic,
    compute_bands,
    is_oversold,
    is_overbought,
    all_bands_oversold,
    all_bands_overbought,
)
from .divergence import (
    Setup,
    find_hps_setups,
    select_actionable,
)
from .exit_logic import (
    ExitLevels,
    ExitSignal,
    ExitReason,
    Position,
    calc_exit_levels,
    calc_position_size,
    calc_pnl,
    update_trailing_stop,
    check_exit_signal,
    format_position,
)

__all__ = [
    # Indicators
    'ema',
    'sma',
    'true_range',
    'atr',
    'last_value',

    # Stochastic
    'OVERSOLD',
    'OVERBOUGHT',
    'StochasticBand',
    'raw_stochastic_k',
    'stochastic',
    'compute_bands',
    'is_oversold',
    'is_overbought',
    'all_bands_oversold',
    'all_bands_overbought',

    # Divergence
    'Setup',
    'find_hps_setups',
    'select_actionable',

    # Exit Logic
    'ExitLevels',
    'ExitSignal',
    'ExitReason',
    'Position',
    'calc_exit_levels',
    'calc_position_size',
    'calc_pnl',
    'update_trailing_stop',
    'check_exit_signal',
    'format_position',
]
