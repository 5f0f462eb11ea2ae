"""
天赋与门派系统
负责天赋效果键的解释、门派加入/退出以及天赋增删
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from .config import Config
from .models import SectDefinition, Talent, Unit

if TYPE_CHECKING:
    from .loader import Catalog

logger = logging.getLogger(__name__)

# ============================================================================
# 效果键表
# ============================================================================
# (种类, 目标)
#   mastery - 精通点数
#   flat    - 属性加法修正
#   rate    - 百分数写法的比率 (10 表示 +0.10)
#   all     - 全属性统一加法修正
#   rider   - 战斗中按需读取的加成, 不修改属性
#   ignored - 已知但不影响战斗的键

_MASTERY_KEYS = {
    "拳掌精通": "fist_mastery", "fistMastery": "fist_mastery",
    "剑法精通": "sword_mastery", "swordMastery": "sword_mastery",
    "刀法精通": "blade_mastery", "bladeMastery": "blade_mastery",
    "腿法精通": "leg_mastery", "legMastery": "leg_mastery",
    "奇门精通": "qimen_mastery", "qimenMastery": "qimen_mastery",
    "暗器精通": "hidden_weapon_mastery", "hiddenWeaponMastery": "hidden_weapon_mastery",
    "医术精通": "medical_mastery", "medicalMastery": "medical_mastery",
    "内功精通": "internal_mastery", "internalMastery": "internal_mastery",
}

_FLAT_KEYS = {
    "力道": "attack", "attack": "attack", "strength": "attack",
    "体质": "max_hp", "health": "max_hp", "maxHp": "max_hp", "constitution": "max_hp",
    "精力": "max_energy", "energy": "max_energy", "maxEnergy": "max_energy",
    "灵巧": "speed", "speed": "speed", "agility": "speed",
    "防御": "defense", "defense": "defense",
}

_RATE_KEYS = {
    "暴击率": "crit_rate", "critRate": "crit_rate",
    "闪避率": "dodge_rate", "dodgeRate": "dodge_rate",
    "吸血率": "vampire_rate", "lifeStealRate": "vampire_rate", "vampireRate": "vampire_rate",
    "反击率": "counter_rate", "counterRate": "counter_rate",
    "连击率": "combo_rate", "comboRate": "combo_rate",
    "命中率": "hit_rate", "hitRate": "hit_rate",
}

_ALL_ATTRIBUTE_KEYS = ("全属性", "allAttributes")
ALL_ATTRIBUTE_STATS = ("attack", "defense", "speed", "max_hp", "max_energy")

# 战斗结算时读取的加成
RIDER_KEYS = (
    "伤害加成", "剑法伤害加成", "刀法伤害加成", "拳掌伤害加成",
    "多段攻击加成", "传说品质加成", "史诗品质加成",
    "额外暴击率", "额外闪避率",
)

_IGNORED_KEYS = ("悟性", "内劲", "intelligence", "spirit", "morality")

TALENT_EFFECT_KEYS: Dict[str, Tuple[str, Optional[str]]] = {}
TALENT_EFFECT_KEYS.update({k: ("mastery", v) for k, v in _MASTERY_KEYS.items()})
TALENT_EFFECT_KEYS.update({k: ("flat", v) for k, v in _FLAT_KEYS.items()})
TALENT_EFFECT_KEYS.update({k: ("rate", v) for k, v in _RATE_KEYS.items()})
TALENT_EFFECT_KEYS.update({k: ("all", None) for k in _ALL_ATTRIBUTE_KEYS})
TALENT_EFFECT_KEYS.update({k: ("rider", None) for k in RIDER_KEYS})
TALENT_EFFECT_KEYS.update({k: ("ignored", None) for k in _IGNORED_KEYS})

# 门派属性与天赋的区别: 内劲对门派意味着真气上限
SECT_ATTRIBUTE_KEYS: Dict[str, Tuple[str, Optional[str]]] = {
    **TALENT_EFFECT_KEYS,
    "内劲": ("flat", "max_energy"),
}


@dataclass
class TalentModifiers:
    """天赋与门派汇总后的加成"""
    stats: Dict[str, float] = field(default_factory=dict)
    masteries: Dict[str, float] = field(default_factory=dict)
    scales: Dict[str, float] = field(default_factory=dict)   # 百分比修正之和

    def add(self, bucket: Dict[str, float], key: str, value: float) -> None:
        bucket[key] = bucket.get(key, 0.0) + value


def _apply_effect(modifiers: TalentModifiers, table: Dict[str, Tuple[str, Optional[str]]],
                  key: str, value: float, source: str) -> None:
    entry = table.get(key)
    if entry is None:
        logger.warning("未知效果键 %s (来自 %s), 已忽略", key, source)
        return

    kind, target = entry
    if kind == "mastery":
        modifiers.add(modifiers.masteries, target, value)
    elif kind == "flat":
        modifiers.add(modifiers.stats, target, value)
    elif kind == "rate":
        modifiers.add(modifiers.stats, target, value / 100.0)
    elif kind == "all":
        for stat in ALL_ATTRIBUTE_STATS:
            modifiers.add(modifiers.stats, stat, value)
    # rider / ignored 不修改属性


def _resolve_stat_name(key: str) -> Optional[str]:
    if key in Config.STAT_LIMITS:
        return key
    entry = TALENT_EFFECT_KEYS.get(key)
    if entry and entry[0] in ("flat", "rate"):
        return entry[1]
    return None


def collect_talent_modifiers(talents: Iterable[Talent], sect: Optional[SectDefinition]) -> TalentModifiers:
    """按天赋列表顺序累加效果, 最后叠加门派属性。同一属性的多个来源求和。"""
    modifiers = TalentModifiers()

    for talent in talents:
        for key, value in talent.effects.items():
            _apply_effect(modifiers, TALENT_EFFECT_KEYS, key, value, talent.name)
        for key, multiplier in talent.multipliers.items():
            stat = _resolve_stat_name(key)
            if stat is None:
                logger.warning("未知倍率属性 %s (来自 %s), 已忽略", key, talent.name)
                continue
            modifiers.add(modifiers.scales, stat, multiplier - 1.0)

    if sect is not None:
        for key, value in sect.attributes.items():
            _apply_effect(modifiers, SECT_ATTRIBUTE_KEYS, key, value, sect.name)

    return modifiers


def talent_rider_total(unit: Unit, key: str, quality: Optional[str] = None) -> float:
    """汇总单位身上某个战斗加成键的数值

    Args:
        unit: 单位
        key: 加成键, 如 "伤害加成"
        quality: 只统计该品质的天赋

    Returns:
        float: 各天赋数值之和
    """
    total = 0.0
    for talent in unit.talents:
        if quality is not None and talent.quality != quality:
            continue
        total += talent.effects.get(key, 0.0)
    return total


# ============================================================================
# 天赋与门派管理
# ============================================================================

class TalentAndSectResolver:
    """天赋与门派管理器 (目录通过构造函数注入)"""

    def __init__(self, catalog: "Catalog") -> None:
        self.catalog = catalog

    def has_talent(self, unit: Unit, talent_key: str) -> bool:
        return any(t.id == talent_key or t.name == talent_key for t in unit.talents)

    def add_talent(self, unit: Unit, talent_key: str) -> bool:
        """添加天赋。未知、已拥有或达到上限时返回 False。"""
        talent = self.catalog.find_talent(talent_key)
        if talent is None:
            logger.info("天赋不存在: %s", talent_key)
            return False
        if self.has_talent(unit, talent.id):
            return False
        if len(unit.talents) >= Config.MAX_TALENTS:
            logger.info("%s 的天赋已达上限 %d", unit.name, Config.MAX_TALENTS)
            return False

        unit.talents.append(talent.model_copy(deep=True))
        unit.recompute_talent_and_sect_bonuses()
        return True

    def remove_talent(self, unit: Unit, talent_key: str) -> bool:
        """移除天赋。未拥有时返回 False。"""
        for index, talent in enumerate(unit.talents):
            if talent.id == talent_key or talent.name == talent_key:
                del unit.talents[index]
                unit.recompute_talent_and_sect_bonuses()
                return True
        return False

    def join_sect(self, unit: Unit, sect_name: str) -> bool:
        """加入门派并获得门派专属天赋。已有门派或门派不存在时返回 False。"""
        if unit.sect is not None:
            logger.info("%s 已加入 %s, 无法再加入 %s", unit.name, unit.sect.name, sect_name)
            return False
        sect = self.catalog.find_sect(sect_name)
        if sect is None:
            logger.info("门派不存在: %s", sect_name)
            return False

        unit.sect = sect.model_copy(deep=True)
        for talent_key in sect.talents:
            talent = self.catalog.find_talent(talent_key)
            if talent is None:
                logger.warning("门派 %s 的专属天赋 %s 不存在", sect.name, talent_key)
                continue
            if self.has_talent(unit, talent.id):
                continue
            if len(unit.talents) >= Config.MAX_TALENTS:
                logger.info("%s 的天赋已达上限, 跳过门派天赋 %s", unit.name, talent.name)
                continue
            unit.talents.append(talent.model_copy(deep=True))

        unit.recompute_talent_and_sect_bonuses()
        return True

    def leave_sect(self, unit: Unit) -> bool:
        """退出门派。已获得的门派天赋保留。"""
        if unit.sect is None:
            return False
        unit.sect = None
        unit.recompute_talent_and_sect_bonuses()
        return True

    def list_talents(self, unit: Unit) -> List[str]:
        return [t.name for t in unit.talents]
