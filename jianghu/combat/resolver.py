"""
单段攻击判定
命中 -> 闪避 -> 伤害 (首段可暴击)
"""

import random
from dataclasses import dataclass

from ..models import StrikeOutcome, Unit
from .calculator import CombatCalculator


@dataclass
class StrikeResult:
    """单段攻击结果"""
    outcome: StrikeOutcome
    damage: int = 0

    @property
    def landed(self) -> bool:
        return self.outcome in (StrikeOutcome.HIT, StrikeOutcome.CRIT)


class StrikeResolver:
    """单段攻击判定器"""

    @staticmethod
    def resolve(attacker: Unit, defender: Unit, base: int, is_first: bool, rng: random.Random) -> StrikeResult:
        """判定一段攻击

        Args:
            attacker: 攻击方
            defender: 防御方
            base: 本次出手的基础伤害
            is_first: 是否为首段 (首段受防御影响且可暴击)
            rng: 战斗随机数生成器

        Returns:
            StrikeResult: 判定结果与最终伤害 (未扣除生命)
        """
        if rng.random() > attacker.hit_rate:
            return StrikeResult(StrikeOutcome.MISS)

        if rng.random() < CombatCalculator.dodge_chance(defender):
            return StrikeResult(StrikeOutcome.DODGE)

        if not is_first:
            damage = CombatCalculator.follow_up_damage(base)
            return StrikeResult(StrikeOutcome.HIT, CombatCalculator.incoming_damage(damage, defender))

        damage = CombatCalculator.first_strike_damage(base, attacker, defender)
        outcome = StrikeOutcome.HIT
        if rng.random() < CombatCalculator.crit_chance(attacker):
            damage = CombatCalculator.crit_damage(damage, attacker)
            outcome = StrikeOutcome.CRIT
        return StrikeResult(outcome, CombatCalculator.incoming_damage(damage, defender))
