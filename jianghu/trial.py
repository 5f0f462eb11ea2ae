"""
红尘劫 (周目答题) 属性生成状态机
INITIAL -> CONFIRM_START -> ANSWERING -> REVIEW_ATTRIBUTES -> CONFIRM_FINAL -> COMPLETED
"""

import logging
import random
import re
from enum import IntEnum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from .config import Config

logger = logging.getLogger(__name__)

LEVEL_PATTERN = re.compile(r"^[#＃/]?渡红尘劫(一重|二重|三重|四重|五重|六重)$")
ANSWER_PATTERN = re.compile(r"^[#＃/]?答题\s*(\d+)$")
LEVEL_NUMBERS = {"一重": 1, "二重": 2, "三重": 3, "四重": 4, "五重": 5, "六重": 6}

MASTERY_KEYS = (
    "fistMastery", "swordMastery", "bladeMastery", "legMastery",
    "qimenMastery", "hiddenWeaponMastery", "medicalMastery", "internalMastery",
)
BASIC_KEYS = ("attack", "health", "energy", "defense")

MASTERY_LABELS = {
    "fistMastery": "拳掌精通",
    "swordMastery": "剑法精通",
    "bladeMastery": "刀法精通",
    "legMastery": "腿法精通",
    "qimenMastery": "奇门精通",
    "hiddenWeaponMastery": "暗器精通",
    "medicalMastery": "医术精通",
    "internalMastery": "内功精通",
}
BASIC_LABELS = {"attack": "攻击", "health": "生命", "energy": "真气", "defense": "防御"}

# 选项奖励中的别名
BONUS_ALIASES = {
    "martialAttack": "attack",
    "evasion": "dodge",
    "energyRegen": "energyRecovery",
}

REVIEW_MENU = (
    "\n\n请选择后续操作：\n"
    "1、确认属性 - 确认并创建角色\n"
    "2、重铸属性 - 重新生成属性\n"
    "3、重新答题 - 重新开始答题\n"
    "\n回复对应操作名称。"
)
START_PROMPT = '是否开始答题？\n回复"开始答题"开始，或"取消"退出。'


class TrialStage(IntEnum):
    """答题阶段"""
    INITIAL = 0
    CONFIRM_START = 1
    ANSWERING = 2
    REVIEW_ATTRIBUTES = 3
    CONFIRM_FINAL = 4
    COMPLETED = 5


# ============================================================================
# 配置模型
# ============================================================================

class ValueRange(BaseModel):
    min: int
    max: int


class TrialOption(BaseModel):
    id: int
    text: str
    bonus: Dict[str, int] = {}


class TrialQuestion(BaseModel):
    id: int
    title: str
    options: List[TrialOption]


class TrialConfig(BaseModel):
    """红尘劫配置 (题目、随机区间、天赋池)"""
    questions: List[TrialQuestion] = []
    mastery_ranges: Dict[str, ValueRange] = {}
    base_ranges: Dict[str, ValueRange] = {}
    talent_pool: List[str] = []
    talent_count: int = Config.TRIAL_TALENT_COUNT


class TrialAnswer(BaseModel):
    question_id: int
    option_id: int


class GeneratedAttributes(BaseModel):
    """生成的角色属性"""
    masteries: Dict[str, int] = {}
    basics: Dict[str, int] = {}
    extras: Dict[str, int] = {}     # 闪避、真气恢复等其他答题奖励
    talents: List[str] = []


class TrialSession(BaseModel):
    """单个玩家的答题进度 (可 model_dump 后持久化)"""
    player_id: str
    stage: TrialStage = TrialStage.INITIAL
    level: int = 1
    answers: List[TrialAnswer] = []
    attributes: Optional[GeneratedAttributes] = None


class TrialReply(BaseModel):
    """一次交互的回复"""
    stage: TrialStage
    text: str
    result: Optional[GeneratedAttributes] = None
    level: Optional[int] = None


# ============================================================================
# 状态机
# ============================================================================

class AttributeTrial:
    """红尘劫状态机

    Args:
        config: 题目与随机区间配置
        session: 已有进度, 为 None 时新建
        rng: 随机数生成器
    """

    def __init__(self, config: TrialConfig, session: Optional[TrialSession] = None,
                 player_id: str = "player", rng: Optional[random.Random] = None) -> None:
        self.config = config
        self.session = session or TrialSession(player_id=player_id)
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # 属性生成
    # ------------------------------------------------------------------

    def _roll(self, value_range: Optional[ValueRange]) -> int:
        if value_range is None:
            low, high = Config.TRIAL_DEFAULT_RANGE
        else:
            low, high = value_range.min, value_range.max
        return self.rng.randint(low, high)

    def _answer_bonuses(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for answer in self.session.answers:
            option = self._find_option(answer.question_id, answer.option_id)
            if option is None:
                continue
            for key, value in option.bonus.items():
                key = BONUS_ALIASES.get(key, key)
                totals[key] = totals.get(key, 0) + value
        return totals

    def _find_option(self, question_id: int, option_id: int) -> Optional[TrialOption]:
        for question in self.config.questions:
            if question.id == question_id:
                return next((o for o in question.options if o.id == option_id), None)
        return None

    def generate_attributes(self) -> GeneratedAttributes:
        """随机生成属性并叠加答题奖励"""
        bonuses = self._answer_bonuses()
        masteries = {
            key: self._roll(self.config.mastery_ranges.get(key)) + bonuses.pop(key, 0)
            for key in MASTERY_KEYS
        }
        basics = {
            key: self._roll(self.config.base_ranges.get(key)) + bonuses.pop(key, 0)
            for key in BASIC_KEYS
        }
        pool = list(self.config.talent_pool)
        count = min(self.config.talent_count, len(pool))
        talents = self.rng.sample(pool, count) if count else []
        return GeneratedAttributes(masteries=masteries, basics=basics, extras=bonuses, talents=talents)

    # ------------------------------------------------------------------
    # 文本
    # ------------------------------------------------------------------

    def _format_question(self, index: int) -> str:
        question = self.config.questions[index]
        lines = [f"第{index + 1}题：{question.title}", ""]
        lines.extend(f"{option.id}、{option.text}" for option in question.options)
        return "\n".join(lines) + "\n\n请选择你的答案（输入数字）："

    @staticmethod
    def format_attributes(attributes: GeneratedAttributes) -> str:
        lines = ["精通属性："]
        lines.extend(f"{MASTERY_LABELS[k]}: {v}" for k, v in attributes.masteries.items())
        lines.append("")
        lines.append("基础属性：")
        lines.extend(f"{BASIC_LABELS[k]}: {v}" for k, v in attributes.basics.items())
        if attributes.talents:
            lines.append("")
            lines.append("天赋：")
            lines.extend(attributes.talents)
        return "\n".join(lines)

    def _reply(self, text: str, result: Optional[GeneratedAttributes] = None) -> TrialReply:
        return TrialReply(stage=self.session.stage, text=text, result=result, level=self.session.level)

    def _reset(self) -> None:
        self.session.stage = TrialStage.INITIAL
        self.session.answers = []
        self.session.attributes = None
        self.session.level = 1

    # ------------------------------------------------------------------
    # 指令处理
    # ------------------------------------------------------------------

    def handle(self, message: str) -> TrialReply:
        """处理一条玩家消息并推进状态"""
        message = message.strip()
        stage = self.session.stage

        if stage == TrialStage.COMPLETED:
            return self._reply("您已经完成过周目答题，无法再次进行！")
        if stage == TrialStage.INITIAL:
            return self._handle_initial(message)
        if stage == TrialStage.CONFIRM_START:
            return self._handle_confirm_start(message)
        if stage == TrialStage.ANSWERING:
            return self._handle_answering(message)
        if stage == TrialStage.REVIEW_ATTRIBUTES:
            return self._handle_review(message)
        if stage == TrialStage.CONFIRM_FINAL:
            return self._handle_confirm_final(message)

        logger.error("红尘劫状态异常: %s", stage)
        self._reset()
        return self._reply("系统状态异常，请重新开始。")

    def _handle_initial(self, message: str) -> TrialReply:
        match = LEVEL_PATTERN.match(message)
        if not match:
            return self._reply('请发送"渡红尘劫一重"至"渡红尘劫六重"开始。')
        self.session.level = LEVEL_NUMBERS[match.group(1)]
        self.session.stage = TrialStage.CONFIRM_START
        text = (
            f"=== 红尘劫第{self.session.level}重 ===\n"
            "欢迎来到红尘劫，通过答题来塑造你的角色属性。\n"
            "答题将影响你的精通属性、基础属性和天赋。\n\n" + START_PROMPT
        )
        return self._reply(text)

    def _handle_confirm_start(self, message: str) -> TrialReply:
        if "开始答题" in message:
            if not self.config.questions:
                return self._reply("周目答题系统暂未开放，请稍后再试！")
            self.session.answers = []
            self.session.stage = TrialStage.ANSWERING
            return self._reply("答题开始！\n\n" + self._format_question(0))
        if "取消" in message:
            self._reset()
            return self._reply("已取消周目答题。")
        return self._reply('请回复"开始答题"开始，或"取消"退出。')

    def _handle_answering(self, message: str) -> TrialReply:
        match = ANSWER_PATTERN.match(message)
        if not match:
            return self._reply('请使用"答题 选项编号"格式继续答题。')

        index = len(self.session.answers)
        question = self.config.questions[index]
        option_id = int(match.group(1))
        valid = [option.id for option in question.options]
        if option_id not in valid:
            return self._reply(f"无效选项，请选择 {'、'.join(str(v) for v in valid)} 中的一个。")

        self.session.answers.append(TrialAnswer(question_id=question.id, option_id=option_id))
        if len(self.session.answers) < len(self.config.questions):
            return self._reply("答案已记录！\n\n" + self._format_question(len(self.session.answers)))

        self.session.attributes = self.generate_attributes()
        self.session.stage = TrialStage.REVIEW_ATTRIBUTES
        text = "恭喜！所有问题已回答完成。\n\n角色属性生成完成！\n\n" + self.format_attributes(self.session.attributes) + REVIEW_MENU
        return self._reply(text)

    def _handle_review(self, message: str) -> TrialReply:
        if "确认属性" in message:
            self.session.stage = TrialStage.CONFIRM_FINAL
            return self._reply('=== 最终确认 ===\n确认使用当前属性创建角色？\n回复"确认创建"完成角色创建，或"返回"重新选择。')
        if "重铸属性" in message:
            self.session.attributes = self.generate_attributes()
            return self._reply("属性已重铸！\n\n" + self.format_attributes(self.session.attributes) + REVIEW_MENU)
        if "重新答题" in message:
            self.session.answers = []
            self.session.attributes = None
            self.session.stage = TrialStage.CONFIRM_START
            return self._reply("已重置答题状态。\n\n" + START_PROMPT)
        if self.session.attributes is None:
            self._reset()
            return self._reply("属性信息丢失，请重新开始答题。")
        return self._reply("当前属性预览：\n\n" + self.format_attributes(self.session.attributes) + REVIEW_MENU)

    def _handle_confirm_final(self, message: str) -> TrialReply:
        if self.session.attributes is None:
            self._reset()
            return self._reply("属性信息丢失，请重新开始答题。")
        if "确认创建" in message:
            self.session.stage = TrialStage.COMPLETED
            text = f"恭喜！你已成功进入第{self.session.level}周目！\n\n角色创建完成，可以开始你的江湖之旅了！"
            return self._reply(text, result=self.session.attributes)
        if "返回" in message:
            self.session.stage = TrialStage.REVIEW_ATTRIBUTES
            return self._reply("已返回属性预览。\n\n" + self.format_attributes(self.session.attributes) + REVIEW_MENU)
        return self._reply('回复"确认创建"完成角色创建，或"返回"重新选择。')


def trial_stats(attributes: GeneratedAttributes) -> Tuple[Dict[str, float], Dict[str, int]]:
    """把生成属性转换为 Unit 字段 (属性包, 精通)"""
    mastery_fields = {
        "fistMastery": "fist_mastery",
        "swordMastery": "sword_mastery",
        "bladeMastery": "blade_mastery",
        "legMastery": "leg_mastery",
        "qimenMastery": "qimen_mastery",
        "hiddenWeaponMastery": "hidden_weapon_mastery",
        "medicalMastery": "medical_mastery",
        "internalMastery": "internal_mastery",
    }
    masteries = {mastery_fields[k]: v for k, v in attributes.masteries.items() if k in mastery_fields}
    basics = attributes.basics
    stats: Dict[str, float] = {
        "attack": basics.get("attack", 0),
        "max_hp": max(1, basics.get("health", 1)),
        "max_energy": max(1, basics.get("energy", Config.DEFAULT_MAX_ENERGY)),
        "defense": basics.get("defense", 0),
    }
    # 闪避与真气恢复以百分数计
    if "dodge" in attributes.extras:
        stats["dodge_rate"] = attributes.extras["dodge"] / 100.0
    if "energyRecovery" in attributes.extras:
        stats["energy_recovery_rate"] = Config.DEFAULT_ENERGY_RECOVERY_RATE + attributes.extras["energyRecovery"] / 100.0
    return stats, masteries
