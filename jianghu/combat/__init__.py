"""
combat 包初始化文件
"""

from .arena import CombatArena
from .calculator import CombatCalculator
from .resolver import StrikeResolver, StrikeResult
from .status import STATUS_RULES, StatusEffectProcessor
from .events import BattleEvent, EventKind
from .statistics import BattleStatistics, StatisticsCollector
from .engine import (
    ActionOrderCalculator,
    BattleConfigurationError,
    BattleResult,
    BattleScheduler,
    TargetSelector,
    run_battle,
)

__all__ = [
    'CombatArena',
    'CombatCalculator',
    'StrikeResolver',
    'StrikeResult',
    'STATUS_RULES',
    'StatusEffectProcessor',
    'BattleEvent',
    'EventKind',
    'BattleStatistics',
    'StatisticsCollector',
    'ActionOrderCalculator',
    'BattleConfigurationError',
    'BattleResult',
    'BattleScheduler',
    'TargetSelector',
    'run_battle',
]
