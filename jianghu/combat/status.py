"""
状态效果处理器
增益/减益的叠加、每回合结算、进阶效果与持续时间
"""

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from ..config import Config
from ..models import StatusEffect

if TYPE_CHECKING:
    from ..models import Unit

logger = logging.getLogger(__name__)


# ============================================================================
# 规则表
# ============================================================================

@dataclass(frozen=True)
class StatusComponent:
    """按层数生效的一项效果

    mode:
        hold  - 持续期间保持的属性修正 (层数 * per_stack)
        tick  - 每次结算对生命/真气池的增减
        scale - 持续期间保持的比例削减, 幅度 min(层数 * per_stack, cap)
    """
    mode: str
    stat: str
    per_stack: float
    cap: Optional[float] = None


@dataclass(frozen=True)
class StatusRule:
    """一种状态的完整定义"""
    label: str
    kind: str                                   # buff / debuff
    components: Tuple[StatusComponent, ...]
    advanced_label: str = ""
    advanced_factors: Dict[str, float] = field(default_factory=dict)
    advanced_bonus: Dict[str, float] = field(default_factory=dict)
    advanced_overrides: Dict[str, float] = field(default_factory=dict)
    advanced_marker: Optional[str] = None      # 战斗中读取的进阶标记
    resistance: Optional[str] = None


# 进阶标记
MARKER_SKIP_TURN = "skip_turn"
MARKER_SEAL_SKILLS = "seal_skills"
MARKER_DOUBLE_DAMAGE_TAKEN = "double_damage_taken"
MARKER_ENERGY_COST = "energy_cost"

STATUS_RULES: Dict[str, StatusRule] = {
    # ---------- 增益 ----------
    "strong": StatusRule(
        label="强壮", kind="buff",
        components=(StatusComponent("hold", "attack", 50),),
        advanced_label="力量爆发: 攻击、速度、真气恢复提升50%",
        advanced_factors={"attack": 1.5, "speed": 1.5, "energy_recovery_rate": 1.5},
    ),
    "tough": StatusRule(
        label="坚韧", kind="buff",
        components=(StatusComponent("hold", "defense", 2),),
        advanced_label="金刚不坏: 防御翻倍",
        advanced_factors={"defense": 2.0},
    ),
    "agile": StatusRule(
        label="轻盈", kind="buff",
        components=(StatusComponent("hold", "speed", 2),),
        advanced_label="身轻如燕: 闪避率提升50%",
        advanced_bonus={"dodge_rate": 0.5},
    ),
    "heal": StatusRule(
        label="疗伤", kind="buff",
        components=(StatusComponent("tick", "hp", 20),),
        advanced_label="生生不息: 吸血率提升100%",
        advanced_bonus={"vampire_rate": 1.0},
    ),
    "meditate": StatusRule(
        label="调息", kind="buff",
        components=(StatusComponent("tick", "energy", 20),),
        advanced_label="气贯周天: 必定连击",
        advanced_overrides={"combo_rate": 1.0},
    ),
    # ---------- 减益 ----------
    "poison": StatusRule(
        label="中毒", kind="debuff",
        components=(StatusComponent("tick", "hp", -30), StatusComponent("tick", "energy", -10)),
        advanced_label="毒入骨髓: 攻击降低90%",
        advanced_factors={"attack": 0.1},
        resistance="poison_resistance",
    ),
    "internal_injury": StatusRule(
        label="内伤", kind="debuff",
        components=(
            StatusComponent("scale", "energy_recovery_rate", 0.01, cap=0.8),
            StatusComponent("scale", "vampire_rate", 0.01, cap=0.8),
        ),
        advanced_label="经脉错乱: 技能真气消耗+400%",
        advanced_marker=MARKER_ENERGY_COST,
        resistance="internal_injury_resistance",
    ),
    "bleed": StatusRule(
        label="流血", kind="debuff",
        components=(StatusComponent("tick", "hp", -50),),
        advanced_label="血流不止: 无法施展外功",
        advanced_marker=MARKER_SEAL_SKILLS,
        resistance="bleed_resistance",
    ),
    "slow": StatusRule(
        label="减速", kind="debuff",
        components=(StatusComponent("hold", "speed", -2),),
        advanced_label="寸步难行: 跳过行动",
        advanced_marker=MARKER_SKIP_TURN,
        resistance="slow_resistance",
    ),
    "armor_break": StatusRule(
        label="破甲", kind="debuff",
        components=(StatusComponent("hold", "defense", -2),),
        advanced_label="破绽百出: 受到伤害+100%",
        advanced_marker=MARKER_DOUBLE_DAMAGE_TAKEN,
        resistance="armor_penetration_resistance",
    ),
    "disable": StatusRule(
        label="残废", kind="debuff",
        components=(StatusComponent("hold", "attack", -50),),
        advanced_label="筋断骨折: 攻击、速度、真气恢复降低50%",
        advanced_factors={"attack": 0.5, "speed": 0.5, "energy_recovery_rate": 0.5},
        resistance="disable_resistance",
    ),
}


def status_label(status_type: str) -> str:
    rule = STATUS_RULES.get(status_type)
    return rule.label if rule else status_type


# ============================================================================
# 处理器
# ============================================================================

class StatusEffectProcessor:
    """状态效果处理器 (无状态, 全部为静态方法)"""

    @staticmethod
    def _container(unit: "Unit", kind: str) -> Dict[str, StatusEffect]:
        return unit.buffs if kind == "buff" else unit.debuffs

    @staticmethod
    def _resistance_factor(unit: "Unit", rule: StatusRule) -> float:
        if rule.resistance is None:
            return 1.0
        return 1.0 - getattr(unit, rule.resistance)

    @staticmethod
    def apply(unit: "Unit", status_type: str, stacks: int,
              duration: int = Config.DEFAULT_STATUS_DURATION, kind: Optional[str] = None) -> Optional[StatusEffect]:
        """施加状态。层数累加 (上限 200), 持续时间取较大值。

        Args:
            unit: 目标单位
            status_type: 状态类型
            stacks: 新增层数
            duration: 持续回合
            kind: buff / debuff, 为 None 时按规则表判断

        Returns:
            StatusEffect | None: 合并后的状态, 未知类型返回 None
        """
        rule = STATUS_RULES.get(status_type)
        if rule is None or (kind is not None and rule.kind != kind):
            logger.warning("未知状态类型 %s (%s), 已忽略", status_type, kind)
            return None
        if stacks <= 0:
            return None

        container = StatusEffectProcessor._container(unit, rule.kind)
        existing = container.get(status_type)
        if existing is None:
            existing = StatusEffect(
                type=status_type,
                stacks=min(stacks, Config.MAX_STACKS),
                duration=duration,
            )
            container[status_type] = existing
        else:
            existing.stacks = min(existing.stacks + stacks, Config.MAX_STACKS)
            existing.duration = max(existing.duration, duration)

        StatusEffectProcessor._retarget(unit, existing, rule)
        unit.refresh_stats()
        return existing

    @staticmethod
    def _retarget(unit: "Unit", effect: StatusEffect, rule: StatusRule) -> None:
        """按当前层数重新计算该状态持有的属性贡献"""
        resist = StatusEffectProcessor._resistance_factor(unit, rule)
        applied: Dict[str, float] = {}
        factors: Dict[str, float] = {}
        overrides: Dict[str, float] = {}

        for component in rule.components:
            if component.mode == "hold":
                applied[component.stat] = applied.get(component.stat, 0.0) + int(
                    effect.stacks * component.per_stack * resist
                )
            elif component.mode == "scale":
                reduction = min(effect.stacks * component.per_stack, component.cap or 1.0) * resist
                factors[component.stat] = factors.get(component.stat, 1.0) * (1.0 - reduction)

        if effect.advanced_triggered:
            for stat, value in rule.advanced_bonus.items():
                applied[stat] = applied.get(stat, 0.0) + value
            for stat, value in rule.advanced_factors.items():
                factors[stat] = factors.get(stat, 1.0) * value
            overrides.update(rule.advanced_overrides)

        effect.applied = applied
        effect.factors = factors
        effect.overrides = overrides

    @staticmethod
    def resolve(unit: "Unit") -> List[str]:
        """回合开始结算自身所有状态, 返回叙述文本"""
        lines: List[str] = []
        for kind in ("buff", "debuff"):
            container = StatusEffectProcessor._container(unit, kind)
            for status_type, effect in list(container.items()):
                rule = STATUS_RULES[status_type]
                lines.extend(StatusEffectProcessor._resolve_one(unit, effect, rule))
                if not unit.is_alive:
                    unit.refresh_stats()
                    return lines
        unit.refresh_stats()
        return lines

    @staticmethod
    def _resolve_one(unit: "Unit", effect: StatusEffect, rule: StatusRule) -> List[str]:
        lines: List[str] = []
        resist = StatusEffectProcessor._resistance_factor(unit, rule)

        if effect.stacks >= Config.ADVANCED_THRESHOLD and not effect.advanced_triggered:
            effect.advanced_triggered = True
            lines.append(f"{unit.name}的{rule.label}达到{effect.stacks}层, 触发【{rule.advanced_label}】")

        StatusEffectProcessor._retarget(unit, effect, rule)

        for component in rule.components:
            if component.mode != "tick":
                continue
            amount = math.floor(effect.stacks * abs(component.per_stack) * resist)
            if amount <= 0:
                continue
            if component.stat == "hp":
                if component.per_stack > 0:
                    healed = unit.heal(amount)
                    if healed:
                        lines.append(f"{unit.name}因{rule.label}恢复了{healed}点生命")
                else:
                    lost = unit.take_damage(amount)
                    lines.append(f"{unit.name}因{rule.label}损失了{lost}点生命")
                    if not unit.is_alive:
                        lines.append(f"{unit.name}因{rule.label}倒下了")
                        return lines
            elif component.stat == "energy":
                if component.per_stack > 0:
                    gained = unit.restore_energy(amount)
                    if gained:
                        lines.append(f"{unit.name}因{rule.label}恢复了{gained}点真气")
                else:
                    lost = unit.drain_energy(amount)
                    if lost:
                        lines.append(f"{unit.name}因{rule.label}损失了{lost}点真气")
        return lines

    @staticmethod
    def tick(unit: "Unit") -> List[str]:
        """持续时间减一, 移除到期状态并撤销其属性贡献。返回到期的状态类型。"""
        expired: List[str] = []
        for kind in ("buff", "debuff"):
            container = StatusEffectProcessor._container(unit, kind)
            for status_type in list(container):
                effect = container[status_type]
                effect.duration -= 1
                if effect.duration <= 0:
                    del container[status_type]
                    expired.append(status_type)
        if expired:
            unit.refresh_stats()
        return expired

    # ------------------------------------------------------------------
    # 查询与移除
    # ------------------------------------------------------------------

    @staticmethod
    def get_stacks(unit: "Unit", status_type: str) -> int:
        effect = unit.buffs.get(status_type) or unit.debuffs.get(status_type)
        return effect.stacks if effect else 0

    @staticmethod
    def has_status(unit: "Unit", status_type: str) -> bool:
        return status_type in unit.buffs or status_type in unit.debuffs

    @staticmethod
    def has_advanced(unit: "Unit", status_type: str) -> bool:
        effect = unit.buffs.get(status_type) or unit.debuffs.get(status_type)
        return bool(effect and effect.advanced_triggered)

    @staticmethod
    def has_marker(unit: "Unit", marker: str) -> bool:
        """是否存在已触发且带有该标记的进阶减益"""
        for status_type, effect in unit.debuffs.items():
            if effect.advanced_triggered and STATUS_RULES[status_type].advanced_marker == marker:
                return True
        return False

    @staticmethod
    def remove(unit: "Unit", status_type: str) -> bool:
        for kind in ("buff", "debuff"):
            container = StatusEffectProcessor._container(unit, kind)
            if status_type in container:
                del container[status_type]
                unit.refresh_stats()
                return True
        return False

    @staticmethod
    def clear(unit: "Unit", kind: str) -> int:
        container = StatusEffectProcessor._container(unit, kind)
        count = len(container)
        container.clear()
        if count:
            unit.refresh_stats()
        return count

    # 增益/减益两组同名接口
    @staticmethod
    def apply_buff(unit: "Unit", buff_type: str, stacks: int, duration: int = Config.DEFAULT_STATUS_DURATION) -> Optional[StatusEffect]:
        return StatusEffectProcessor.apply(unit, buff_type, stacks, duration, kind="buff")

    @staticmethod
    def apply_debuff(unit: "Unit", debuff_type: str, stacks: int, duration: int = Config.DEFAULT_STATUS_DURATION) -> Optional[StatusEffect]:
        return StatusEffectProcessor.apply(unit, debuff_type, stacks, duration, kind="debuff")

    @staticmethod
    def remove_buff(unit: "Unit", buff_type: str) -> bool:
        if buff_type not in unit.buffs:
            return False
        return StatusEffectProcessor.remove(unit, buff_type)

    @staticmethod
    def remove_debuff(unit: "Unit", debuff_type: str) -> bool:
        if debuff_type not in unit.debuffs:
            return False
        return StatusEffectProcessor.remove(unit, debuff_type)

    @staticmethod
    def clear_buffs(unit: "Unit") -> int:
        return StatusEffectProcessor.clear(unit, "buff")

    @staticmethod
    def clear_debuffs(unit: "Unit") -> int:
        return StatusEffectProcessor.clear(unit, "debuff")

    @staticmethod
    def has_buff(unit: "Unit", buff_type: str) -> bool:
        return buff_type in unit.buffs

    @staticmethod
    def has_debuff(unit: "Unit", debuff_type: str) -> bool:
        return debuff_type in unit.debuffs

    @staticmethod
    def get_buff_stacks(unit: "Unit", buff_type: str) -> int:
        effect = unit.buffs.get(buff_type)
        return effect.stacks if effect else 0

    @staticmethod
    def get_debuff_stacks(unit: "Unit", debuff_type: str) -> int:
        effect = unit.debuffs.get(debuff_type)
        return effect.stacks if effect else 0

    @staticmethod
    def has_advanced_buff(unit: "Unit", buff_type: str) -> bool:
        effect = unit.buffs.get(buff_type)
        return bool(effect and effect.advanced_triggered)

    @staticmethod
    def has_advanced_debuff(unit: "Unit", debuff_type: str) -> bool:
        effect = unit.debuffs.get(debuff_type)
        return bool(effect and effect.advanced_triggered)
