"""
数据模型定义
包含所有枚举类型、配置模型 (Pydantic) 和战斗单位模型 (Unit)
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
    model_validator,
)

from .config import Config

# ============================================================================
# 枚举类型 (Enums)
# ============================================================================

class Team(str, Enum):
    """阵营"""
    A = "A"
    B = "B"


class AttackStrategy(str, Enum):
    """选敌策略"""
    NEAREST = "nearest"
    FARTHEST = "farthest"
    HIGHEST_HP = "highest_hp"
    LOWEST_HP = "lowest_hp"
    FASTEST = "fastest"
    SLOWEST = "slowest"
    HIGHEST_THREAT = "highest_threat"   # 攻击力最高
    HEALER = "healer"                   # 医术精通最高
    DAMAGE_DEALER = "damage_dealer"     # 期望单段伤害最高 (计入暴击)


class BuffType(str, Enum):
    """增益类型"""
    STRONG = "strong"       # 强壮
    TOUGH = "tough"         # 坚韧
    AGILE = "agile"         # 轻盈
    HEAL = "heal"           # 疗伤
    MEDITATE = "meditate"   # 调息


class DebuffType(str, Enum):
    """减益类型"""
    POISON = "poison"                       # 中毒
    INTERNAL_INJURY = "internal_injury"     # 内伤
    BLEED = "bleed"                         # 流血
    SLOW = "slow"                           # 减速
    ARMOR_BREAK = "armor_break"             # 破甲
    DISABLE = "disable"                     # 残废


class BattlePhase(str, Enum):
    """战斗调度阶段"""
    NOT_STARTED = "NOT_STARTED"
    ROUND_START = "ROUND_START"
    ACTION_RESOLUTION = "ACTION_RESOLUTION"
    ROUND_END = "ROUND_END"
    FINISHED = "FINISHED"


class StrikeOutcome(str, Enum):
    """单段攻击判定结果"""
    MISS = "未命中"
    DODGE = "闪避"
    HIT = "命中"
    CRIT = "暴击"


# ============================================================================
# 工具函数
# ============================================================================

def parse_effect_value(value: Union[int, float, str]) -> float:
    """解析天赋/门派数值, 兼容 "10%"、"+5" 这样的文本写法"""
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().rstrip("%").strip()
    return float(text) if text else 0.0


def clamp_stat(stat: str, value: float) -> Union[int, float]:
    """按 Config.STAT_LIMITS 约束单个属性"""
    low, high = Config.STAT_LIMITS[stat]
    if stat in Config.INT_STATS:
        value = math.floor(value + 1e-9)
    if low is not None and value < low:
        value = low
    if high is not None and value > high:
        value = high
    return int(value) if stat in Config.INT_STATS else float(value)


# ============================================================================
# 源数据模型 (Source Data Definitions) - Pydantic
# ============================================================================

class Position(BaseModel):
    """棋盘坐标"""
    model_config = ConfigDict(frozen=True)

    x: int
    y: int


class StatusPayload(BaseModel):
    """技能命中后附带的状态"""
    type: str
    stacks: int = Field(default=1, gt=0)
    duration: int = Config.DEFAULT_STATUS_DURATION


class Talent(BaseModel):
    """天赋定义

    effects 为加法修正 (键可以是中文或英文别名, 比率类以百分数书写),
    multipliers 为百分比修正 ({"attack": 1.1} 表示攻击 +10%)。
    """
    id: str
    name: str
    quality: str = "白"
    description: str = ""
    effects: Dict[str, float] = {}
    multipliers: Dict[str, float] = {}

    @field_validator("effects", mode="before")
    @classmethod
    def _normalize_effects(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: parse_effect_value(v) for k, v in value.items()}
        return value


class SectDefinition(BaseModel):
    """门派定义"""
    id: str
    name: str
    description: str = ""
    attributes: Dict[str, float] = {}
    talents: List[str] = []     # 门派专属天赋 (id 或名称)

    @field_validator("attributes", mode="before")
    @classmethod
    def _normalize_attributes(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: parse_effect_value(v) for k, v in value.items()}
        return value


class Skill(BaseModel):
    """技能配置"""
    id: str
    name: str
    skill_type: Optional[str] = None    # sword / blade / fist ...
    executor: str = "strike"            # 技能结算函数名, 见 skills.py
    energy_cost: Optional[int] = None   # 缺失视为配置错误, 回退普通攻击
    range: int = 1
    min_hits: int = 1
    max_hits: int = 1
    mastery_bonus: bool = False         # 是否叠加对应精通 * 0.5 的伤害
    statuses: List[StatusPayload] = []
    description: str = ""


class UnitTemplate(BaseModel):
    """角色模板 (对手 / 玩家初始配置)"""
    id: str
    name: str
    unit_type: str = ""
    stats: Dict[str, Any] = {}      # 扁平属性包, 字段名同 Unit
    skills: List[str] = []
    talents: List[str] = []
    sect: Optional[str] = None
    attack_strategy: str = AttackStrategy.NEAREST.value


class StatusEffect(BaseModel):
    """单位身上的一个增益/减益实例

    applied/factors/overrides 是该状态当前对属性的贡献,
    每次结算时按层数重新计算, 过期时随状态一起移除。
    """
    type: str
    stacks: int
    duration: int
    advanced_triggered: bool = False
    applied: Dict[str, float] = {}
    factors: Dict[str, float] = {}
    overrides: Dict[str, float] = {}


@dataclass
class SkillOutcome:
    """技能结算结果"""
    hits: int = 1
    mastery_bonus: Optional[str] = None     # 叠加伤害的精通字段名
    statuses: List[StatusPayload] = field(default_factory=list)


# ============================================================================
# 战斗单位 (Unit)
# ============================================================================

class Unit(BaseModel):
    """战斗单位

    构造时统一走一条路径: 记录基础属性 -> 结算天赋门派 -> 结算精通 -> 约束。
    属性字段保存的是生效值, 基础值保存在私有层中, 所以重复结算是幂等的。
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    # 身份
    id: str
    name: str
    team: str = Team.A.value
    unit_type: str = ""

    # 生命与真气
    hp: Optional[int] = None
    max_hp: int = Field(gt=0)
    energy: Optional[int] = None
    max_energy: int = Field(default=Config.DEFAULT_MAX_ENERGY, gt=0)
    energy_recovery_rate: float = Config.DEFAULT_ENERGY_RECOVERY_RATE

    # 战斗属性
    attack: int = 0
    defense: int = 0
    speed: int = 0
    crit_rate: float = 0.0
    crit_damage: float = 2.0
    hit_rate: float = 1.0
    dodge_rate: float = 0.0
    combo_rate: float = 0.0
    sequence_rate: float = 0.0
    ignore_defense_rate: float = 0.0
    coop_rate: float = 0.0
    crit_resistance: float = 0.0
    anti_combo_rate: float = 0.0
    counter_rate: float = 0.0
    parry_rate: float = 0.0
    reflect_rate: float = 0.0
    vampire_rate: float = 0.0
    reflect_multiplier: float = 1.0

    # 抗性
    poison_resistance: float = 0.0
    bleed_resistance: float = 0.0
    armor_penetration_resistance: float = 0.0
    slow_resistance: float = 0.0
    internal_injury_resistance: float = 0.0
    disable_resistance: float = 0.0

    # 精通
    sword_mastery: int = 0
    blade_mastery: int = 0
    fist_mastery: int = 0
    leg_mastery: int = 0
    hidden_weapon_mastery: int = 0
    qimen_mastery: int = 0
    medical_mastery: int = 0
    internal_mastery: int = 0

    # 天赋与门派
    talents: List[Talent] = []
    sect: Optional[SectDefinition] = None

    # 状态
    buffs: Dict[str, StatusEffect] = {}
    debuffs: Dict[str, StatusEffect] = {}

    # 技能与行为
    skills: List[Skill] = []
    active_skill_index: int = 0
    attack_strategy: str = AttackStrategy.NEAREST.value

    # 运行时
    position: Optional[Position] = None
    is_alive: bool = True
    action_bar: float = 0.0

    # 加成层
    _base: Dict[str, float] = PrivateAttr(default_factory=dict)
    _mastery_layer: Dict[str, float] = PrivateAttr(default_factory=dict)
    _talent_layer: Dict[str, float] = PrivateAttr(default_factory=dict)
    _talent_scale: Dict[str, float] = PrivateAttr(default_factory=dict)
    _talent_mastery: Dict[str, float] = PrivateAttr(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _default_max_hp(cls, data: Any) -> Any:
        """未给出生命上限时以当前生命为上限"""
        if isinstance(data, dict) and data.get("max_hp") is None and data.get("hp") is not None:
            data = dict(data)
            data["max_hp"] = data["hp"]
        return data

    def model_post_init(self, __context: Any) -> None:
        self._base = {stat: float(getattr(self, stat)) for stat in Config.STAT_LIMITS}
        fill_hp = self.hp is None
        fill_energy = self.energy is None
        self.hp = 0 if fill_hp else self.hp
        self.energy = 0 if fill_energy else self.energy

        self.recompute_talent_and_sect_bonuses()

        if fill_hp:
            self.hp = self.max_hp
        if fill_energy:
            self.energy = self.max_energy
        self._clamp_pools()
        if self.hp <= 0:
            self.is_alive = False

    @model_serializer(mode="wrap")
    def _dump_base_stats(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        """导出基础属性而非生效值, 用导出结果重建单位时加成只结算一次

        状态效果原样导出, 其属性贡献在重建时由 refresh_stats 重新叠加。
        """
        data = handler(self)
        for stat, value in self._base.items():
            if stat in data:
                data[stat] = int(value) if stat in Config.INT_STATS else value
        return data

    # ------------------------------------------------------------------
    # 属性结算
    # ------------------------------------------------------------------

    def mastery(self, name: str) -> int:
        """生效精通 = 自身精通 + 天赋/门派赋予的精通"""
        return int(getattr(self, name) + self._talent_mastery.get(name, 0))

    def base_stat(self, stat: str) -> float:
        return self._base[stat]

    def set_base_stat(self, stat: str, value: float) -> None:
        """修改基础属性并重新结算"""
        if stat not in Config.STAT_LIMITS:
            raise KeyError(f"未知属性: {stat}")
        self._base[stat] = float(value)
        self.refresh_stats()

    def recompute_mastery_bonuses(self) -> None:
        """按当前精通重新计算精通加成层 (幂等)"""
        layer: Dict[str, float] = {}
        for mastery_name, coefficients in Config.MASTERY_TABLE.items():
            level = self.mastery(mastery_name)
            for stat, coefficient in coefficients.items():
                gain = level * coefficient
                if stat in Config.INT_STATS:
                    gain = math.floor(gain + 1e-9)
                layer[stat] = layer.get(stat, 0.0) + gain
        self._mastery_layer = layer
        self.refresh_stats()

    def recompute_talent_and_sect_bonuses(self) -> None:
        """清空天赋/门派加成后按天赋顺序和门派属性重新结算"""
        from .talents import collect_talent_modifiers

        modifiers = collect_talent_modifiers(self.talents, self.sect)
        self._talent_layer = modifiers.stats
        self._talent_scale = modifiers.scales
        self._talent_mastery = modifiers.masteries
        self.recompute_mastery_bonuses()

    def _status_modifiers(self) -> Tuple[Dict[str, float], Dict[str, float], Dict[str, float]]:
        additions: Dict[str, float] = {}
        factors: Dict[str, float] = {}
        overrides: Dict[str, float] = {}
        for effect in list(self.buffs.values()) + list(self.debuffs.values()):
            for stat, value in effect.applied.items():
                additions[stat] = additions.get(stat, 0.0) + value
            for stat, value in effect.factors.items():
                factors[stat] = factors.get(stat, 1.0) * value
            overrides.update(effect.overrides)
        return additions, factors, overrides

    def refresh_stats(self) -> None:
        additions, factors, overrides = self._status_modifiers()
        for stat in Config.STAT_LIMITS:
            value = (
                self._base.get(stat, 0.0)
                + self._mastery_layer.get(stat, 0.0)
                + self._talent_layer.get(stat, 0.0)
                + additions.get(stat, 0.0)
            )
            value *= 1.0 + self._talent_scale.get(stat, 0.0)
            value *= factors.get(stat, 1.0)
            if stat in overrides:
                value = overrides[stat]
            setattr(self, stat, clamp_stat(stat, value))
        self._clamp_pools()

    def _clamp_pools(self) -> None:
        self.hp = max(0, min(self.hp or 0, self.max_hp))
        self.energy = max(0, min(self.energy or 0, self.max_energy))

    # ------------------------------------------------------------------
    # 生命与真气
    # ------------------------------------------------------------------

    def take_damage(self, amount: int) -> int:
        """扣除生命, 返回实际扣除量。归零时阵亡。"""
        if amount <= 0 or not self.is_alive:
            return 0
        dealt = min(amount, self.hp)
        self.hp -= dealt
        if self.hp <= 0:
            self.is_alive = False
        return dealt

    def heal(self, amount: int) -> int:
        """回复生命 (不超过上限), 返回实际回复量"""
        if amount <= 0 or not self.is_alive:
            return 0
        healed = min(amount, self.max_hp - self.hp)
        self.hp += healed
        return healed

    def restore_energy(self, amount: int) -> int:
        if amount <= 0:
            return 0
        gained = min(amount, self.max_energy - self.energy)
        self.energy += gained
        return gained

    def drain_energy(self, amount: int) -> int:
        lost = min(max(amount, 0), self.energy)
        self.energy -= lost
        return lost

    def regenerate_energy(self) -> int:
        """回合结束回复固定真气"""
        return self.restore_energy(Config.ENERGY_REGEN_PER_ROUND)

    def spend_energy(self, amount: int) -> bool:
        """真气不足时返回 False 且不扣除"""
        if self.energy < amount:
            return False
        self.energy -= amount
        return True

    # ------------------------------------------------------------------
    # 状态效果 (委托给 StatusEffectProcessor)
    # ------------------------------------------------------------------

    def apply_buff(self, buff_type: str, stacks: int, duration: int = Config.DEFAULT_STATUS_DURATION) -> Optional[StatusEffect]:
        from .combat.status import StatusEffectProcessor
        return StatusEffectProcessor.apply(self, buff_type, stacks, duration, kind="buff")

    def apply_debuff(self, debuff_type: str, stacks: int, duration: int = Config.DEFAULT_STATUS_DURATION) -> Optional[StatusEffect]:
        from .combat.status import StatusEffectProcessor
        return StatusEffectProcessor.apply(self, debuff_type, stacks, duration, kind="debuff")

    def resolve_status_effects_for_round(self) -> List[str]:
        from .combat.status import StatusEffectProcessor
        return StatusEffectProcessor.resolve(self)

    def tick_durations(self) -> List[str]:
        from .combat.status import StatusEffectProcessor
        return StatusEffectProcessor.tick(self)

    def __repr__(self) -> str:
        return f"Unit({self.name}, team={self.team}, hp={self.hp}/{self.max_hp})"
