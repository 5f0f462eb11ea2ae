"""
jianghu 包初始化文件
"""

from .config import Config
from .models import Unit, Skill, Talent, SectDefinition, UnitTemplate, AttackStrategy, BuffType, DebuffType
from .loader import Catalog, DataLoader
from .talents import TalentAndSectResolver
from .factory import UnitFactory
from .trial import AttributeTrial, TrialStage
from .combat import BattleScheduler, BattleResult, BattleConfigurationError, run_battle

__all__ = [
    'Config',
    'Unit',
    'Skill',
    'Talent',
    'SectDefinition',
    'UnitTemplate',
    'AttackStrategy',
    'BuffType',
    'DebuffType',
    'Catalog',
    'DataLoader',
    'TalentAndSectResolver',
    'UnitFactory',
    'AttributeTrial',
    'TrialStage',
    'BattleScheduler',
    'BattleResult',
    'BattleConfigurationError',
    'run_battle',
]
