"""
江湖战斗全局配置常量
存放所有硬编码的数值参数，便于后续调整平衡性
"""

from pathlib import Path


class Config:
    """全局战斗配置"""

    # ========== 数据目录 ==========
    DATA_DIR = Path(__file__).resolve().parent / "data"

    # ========== 回合与棋盘 ==========
    MAX_ROUNDS = 50             # 最大回合数, 到达后判平局
    ARENA_WIDTH = 8             # 棋盘宽度 (列)
    ARENA_HEIGHT = 8            # 棋盘高度 (行)

    # ========== 真气系统 ==========
    DEFAULT_MAX_ENERGY = 2000           # 默认真气上限
    DEFAULT_ENERGY_RECOVERY_RATE = 0.1  # 默认真气恢复率
    ENERGY_REGEN_PER_ROUND = 100        # 每回合结束固定回复真气

    # ========== 状态效果 ==========
    MAX_STACKS = 200                # 单个状态层数上限
    ADVANCED_THRESHOLD = 100        # 触发进阶效果的层数
    DEFAULT_STATUS_DURATION = 2     # 默认持续回合

    # 进阶减益的战斗标记
    INTERNAL_INJURY_COST_MULTIPLIER = 5     # 进阶内伤: 技能真气消耗 +400%
    ARMOR_BREAK_DAMAGE_MULTIPLIER = 2       # 进阶破甲: 受到伤害 +100%

    # ========== 行动顺序 ==========
    SLOW_SPEED_REDUCTION = 0.3          # 每个减速实例降低 30% 行动速度
    SLOW_SPEED_REDUCTION_CAP = 0.8      # 行动速度最多降低 80%

    # ========== 伤害公式 ==========
    MASTERY_DAMAGE_RATIO = 0.5      # 技能精通加成 = 精通 * 0.5
    FOLLOW_UP_HIT_RATIO = 0.3       # 多段攻击第 2 段起按基础伤害 30% 结算
    MIN_DAMAGE = 1                  # 首段最低伤害

    # ========== 天赋 ==========
    MAX_TALENTS = 20                # 天赋上限

    # ========== 普通攻击 ==========
    BASIC_ATTACK_ID = "basic_attack"
    BASIC_ATTACK_NAME = "普通攻击"

    # ========== 助战增益 ==========
    # 队伍中存在该类型角色时, 全队获得对应增益: (增益类型, 层数, 持续回合)
    SUPPORT_BUFFS = {
        "assassin": ("agile", 10, 999),
        "swordsman": ("strong", 10, 999),
    }

    # ========== 属性上下限 ==========
    # None 表示该侧不限制
    STAT_LIMITS = {
        "attack": (1, None),
        "defense": (0, None),
        "speed": (1, None),
        "max_hp": (1, None),
        "max_energy": (1, None),
        "energy_recovery_rate": (0.0, None),
        "crit_rate": (0.0, 1.0),
        "crit_damage": (1.0, 5.0),
        "hit_rate": (0.5, 1.0),
        "dodge_rate": (0.0, 0.5),
        "combo_rate": (0.0, 0.5),
        "sequence_rate": (0.0, 0.3),
        "ignore_defense_rate": (0.0, 0.9),
        "coop_rate": (0.0, 0.2),
        "crit_resistance": (0.0, 0.8),
        "anti_combo_rate": (0.0, 0.8),
        "counter_rate": (0.0, 0.3),
        "parry_rate": (0.0, 0.2),
        "reflect_rate": (0.0, 0.3),
        "vampire_rate": (0.0, 0.5),
        "reflect_multiplier": (1.0, 2.0),
        "poison_resistance": (0.0, 0.8),
        "bleed_resistance": (0.0, 0.8),
        "armor_penetration_resistance": (0.0, 0.8),
        "slow_resistance": (0.0, 0.8),
        "internal_injury_resistance": (0.0, 0.8),
        "disable_resistance": (0.0, 0.8),
    }

    # 整数属性 (加成向下取整)
    INT_STATS = ("attack", "defense", "speed", "max_hp", "max_energy")

    # ========== 精通系数表 ==========
    # 每点精通对各属性的加成, 整数属性对总加成向下取整
    MASTERY_TABLE = {
        "fist_mastery": {
            "attack": 0.5,
            "ignore_defense_rate": 0.001,
            "counter_rate": 0.001,
            "sequence_rate": 0.001,
        },
        "blade_mastery": {
            "attack": 0.5,
            "vampire_rate": 0.001,
            "reflect_multiplier": 0.005,
            "ignore_defense_rate": 0.001,
        },
        "leg_mastery": {
            "attack": 0.5,
            "dodge_rate": 0.001,
            "speed": 0.2,
            "combo_rate": 0.001,
        },
        "sword_mastery": {
            "attack": 0.5,
            "crit_rate": 0.001,
            "coop_rate": 0.001,
            "parry_rate": 0.001,
        },
        "internal_mastery": {
            "attack": 0.5,
            "crit_resistance": 0.001,
            "anti_combo_rate": 0.001,
            "max_energy": 0.5,
        },
        "medical_mastery": {
            "attack": 0.5,
            "energy_recovery_rate": 0.0005,
            "max_hp": 0.5,
        },
        "qimen_mastery": {
            "attack": 0.5,
            "reflect_rate": 0.001,
            "hit_rate": 0.001,
            "sequence_rate": 0.001,
        },
        "hidden_weapon_mastery": {
            "attack": 0.5,
            "combo_rate": 0.001,
            "crit_damage": 0.005,
            "dodge_rate": 0.001,
        },
    }

    # 技能类型 -> 对应精通
    SKILL_TYPE_MASTERY = {
        "sword": "sword_mastery",
        "blade": "blade_mastery",
        "fist": "fist_mastery",
        "leg": "leg_mastery",
        "hidden_weapon": "hidden_weapon_mastery",
        "qimen": "qimen_mastery",
        "medical": "medical_mastery",
        "internal": "internal_mastery",
    }

    # ========== 红尘劫 ==========
    TRIAL_TALENT_COUNT = 3          # 生成属性时随机天赋数量
    TRIAL_DEFAULT_RANGE = (1, 100)  # 未配置范围时的默认随机区间
