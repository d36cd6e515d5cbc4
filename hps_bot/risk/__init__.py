"""
Risk Layer - Position Sizing & Account State
"""
from .manager import (
    AccountState,
    DailyStats,
    EntryPlan,
    RiskConfig,
    RiskManager,
)

__all__ = [
    'AccountState',
    'DailyStats',
    'EntryPlan',
    'RiskConfig',
    'RiskManager',
]
