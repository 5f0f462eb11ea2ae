"""
技能结算系统
技能按 executor 名称注册, 结算函数只决定段数与附带状态, 伤害由战斗引擎统一计算
"""

import random
from typing import Callable, Dict, Optional

from .config import Config
from .models import Skill, SkillOutcome, Unit

SkillExecutor = Callable[[Unit, Skill, random.Random], SkillOutcome]


class SkillRegistry:
    """技能结算函数注册中心"""

    _executors: Dict[str, SkillExecutor] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[SkillExecutor], SkillExecutor]:
        """装饰器: 注册技能结算函数"""
        def decorator(func: SkillExecutor) -> SkillExecutor:
            cls._executors[name] = func
            return func
        return decorator

    @classmethod
    def get(cls, name: str) -> Optional[SkillExecutor]:
        return cls._executors.get(name)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._executors

    @classmethod
    def is_well_formed(cls, skill: Skill) -> bool:
        """技能配置是否完整 (有真气消耗且结算函数存在)"""
        return skill.energy_cost is not None and cls.is_registered(skill.executor)


def _mastery_for(skill: Skill) -> Optional[str]:
    if not skill.mastery_bonus or skill.skill_type is None:
        return None
    return Config.SKILL_TYPE_MASTERY.get(skill.skill_type)


# ============================================================================
# 结算函数
# ============================================================================

@SkillRegistry.register("strike")
def execute_strike(unit: Unit, skill: Skill, rng: random.Random) -> SkillOutcome:
    """单段攻击"""
    return SkillOutcome(hits=1, mastery_bonus=_mastery_for(skill), statuses=list(skill.statuses))


@SkillRegistry.register("barrage")
def execute_barrage(unit: Unit, skill: Skill, rng: random.Random) -> SkillOutcome:
    """多段攻击: 段数在 [min_hits, max_hits] 中随机"""
    low = max(1, skill.min_hits)
    high = max(low, skill.max_hits)
    hits = low if low == high else rng.randint(low, high)
    return SkillOutcome(hits=hits, mastery_bonus=_mastery_for(skill), statuses=list(skill.statuses))


BASIC_ATTACK = Skill(
    id=Config.BASIC_ATTACK_ID,
    name=Config.BASIC_ATTACK_NAME,
    executor="strike",
    energy_cost=0,
)
