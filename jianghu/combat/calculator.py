"""
战斗计算器
纯函数形式的伤害与行动速度公式
"""

import math
from typing import Optional

from ..config import Config
from ..models import Skill, Unit
from ..talents import talent_rider_total
from .status import MARKER_DOUBLE_DAMAGE_TAKEN, StatusEffectProcessor

# 技能类型 -> 对应的天赋伤害加成键
SKILL_TYPE_DAMAGE_KEYS = {
    "sword": "剑法伤害加成",
    "blade": "刀法伤害加成",
    "fist": "拳掌伤害加成",
}


class CombatCalculator:
    """战斗计算器 (静态方法集合)"""

    @staticmethod
    def talent_damage_bonus(unit: Unit, skill: Skill, hits: int) -> int:
        """天赋提供的固定伤害加成

        - 伤害加成: 无条件生效
        - 剑法/刀法/拳掌伤害加成: 技能类型匹配时生效
        - 多段攻击加成: 段数大于 1 时生效
        - 传说/史诗品质加成: 只统计对应品质的天赋
        """
        bonus = talent_rider_total(unit, "伤害加成")
        type_key = SKILL_TYPE_DAMAGE_KEYS.get(skill.skill_type or "")
        if type_key:
            bonus += talent_rider_total(unit, type_key)
        if hits > 1:
            bonus += talent_rider_total(unit, "多段攻击加成")
        bonus += talent_rider_total(unit, "传说品质加成", quality="传说")
        bonus += talent_rider_total(unit, "史诗品质加成", quality="史诗")
        return int(bonus)

    @staticmethod
    def base_damage(unit: Unit, skill: Skill, mastery: Optional[str], hits: int) -> int:
        """基础伤害 = 攻击 + 精通 * 0.5 (技能带精通加成时) + 天赋固定加成"""
        base = unit.attack
        if mastery:
            base += math.floor(unit.mastery(mastery) * Config.MASTERY_DAMAGE_RATIO)
        return base + CombatCalculator.talent_damage_bonus(unit, skill, hits)

    @staticmethod
    def first_strike_damage(base: int, attacker: Unit, defender: Unit) -> int:
        """首段伤害 = max(1, floor((基础伤害 - 防御) * (1 + 无视防御率)))"""
        raw = (base - defender.defense) * (1 + attacker.ignore_defense_rate)
        return max(Config.MIN_DAMAGE, math.floor(raw))

    @staticmethod
    def follow_up_damage(base: int) -> int:
        """第 2 段起的伤害, 不受防御与暴击影响"""
        return math.floor(base * Config.FOLLOW_UP_HIT_RATIO)

    @staticmethod
    def crit_damage(damage: int, attacker: Unit) -> int:
        return math.floor(damage * attacker.crit_damage)

    @staticmethod
    def crit_chance(attacker: Unit) -> float:
        return attacker.crit_rate + talent_rider_total(attacker, "额外暴击率") / 100.0

    @staticmethod
    def dodge_chance(defender: Unit) -> float:
        return defender.dodge_rate + talent_rider_total(defender, "额外闪避率") / 100.0

    @staticmethod
    def incoming_damage(damage: int, defender: Unit) -> int:
        """进阶破甲的目标承受双倍伤害"""
        if StatusEffectProcessor.has_marker(defender, MARKER_DOUBLE_DAMAGE_TAKEN):
            return damage * Config.ARMOR_BREAK_DAMAGE_MULTIPLIER
        return damage

    @staticmethod
    def life_steal(total_dealt: int, attacker: Unit) -> int:
        return math.floor(total_dealt * attacker.vampire_rate)

    @staticmethod
    def effective_speed(unit: Unit) -> float:
        """行动速度 = 速度 * (1 - min(0.3 * 减速实例数, 0.8))"""
        slow_instances = 1 if StatusEffectProcessor.has_debuff(unit, "slow") else 0
        reduction = min(Config.SLOW_SPEED_REDUCTION * slow_instances, Config.SLOW_SPEED_REDUCTION_CAP)
        return unit.speed * (1 - reduction)
