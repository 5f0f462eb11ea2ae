"""
战斗引擎
包含行动顺序、选敌策略和战斗调度主循环
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from ..config import Config
from ..models import AttackStrategy, BattlePhase, Position, Skill, SkillOutcome, StrikeOutcome, Team, Unit
from ..skills import BASIC_ATTACK, SkillRegistry
from .arena import CombatArena
from .calculator import CombatCalculator
from .events import BattleEvent, BattleEventBus, EventCallback, EventKind
from .resolver import StrikeResolver, StrikeResult
from .status import (
    MARKER_ENERGY_COST,
    MARKER_SEAL_SKILLS,
    MARKER_SKIP_TURN,
    STATUS_RULES,
    StatusEffectProcessor,
    status_label,
)

logger = logging.getLogger(__name__)


class BattleConfigurationError(ValueError):
    """战斗配置错误 (空阵容、无存活单位、重复单位、棋盘放不下)"""


# ============================================================================
# 行动顺序与选敌
# ============================================================================

class ActionOrderCalculator:
    """行动顺序计算"""

    @staticmethod
    def order(units: Sequence[Unit]) -> List[Unit]:
        """存活单位按行动速度降序, 速度相同时保持传入顺序"""
        living = [u for u in units if u.is_alive]
        return sorted(living, key=CombatCalculator.effective_speed, reverse=True)


class TargetSelector:
    """选敌策略 (AI)"""

    @staticmethod
    def _distance(attacker: Unit, enemy: Unit) -> int:
        if attacker.position is None or enemy.position is None:
            return 0
        return CombatArena.distance(attacker.position, enemy.position)

    @staticmethod
    def select(attacker: Unit, enemies: Sequence[Unit]) -> Optional[Unit]:
        """按攻击者的策略选出目标。并列时取敌人列表中靠前者。

        Args:
            attacker: 攻击者
            enemies: 存活敌人 (按放置顺序)

        Returns:
            Unit | None: 目标, 没有敌人时返回 None
        """
        if not enemies:
            return None

        strategy = attacker.attack_strategy
        if strategy == AttackStrategy.NEAREST.value:
            return min(enemies, key=lambda e: TargetSelector._distance(attacker, e))
        if strategy == AttackStrategy.FARTHEST.value:
            return max(enemies, key=lambda e: TargetSelector._distance(attacker, e))
        if strategy == AttackStrategy.HIGHEST_HP.value:
            return max(enemies, key=lambda e: e.hp)
        if strategy == AttackStrategy.LOWEST_HP.value:
            return min(enemies, key=lambda e: e.hp)
        if strategy == AttackStrategy.FASTEST.value:
            return max(enemies, key=lambda e: e.speed)
        if strategy == AttackStrategy.SLOWEST.value:
            return min(enemies, key=lambda e: e.speed)
        if strategy == AttackStrategy.HIGHEST_THREAT.value:
            return max(enemies, key=lambda e: e.attack)
        if strategy == AttackStrategy.HEALER.value:
            return max(enemies, key=lambda e: e.mastery("medical_mastery"))
        if strategy == AttackStrategy.DAMAGE_DEALER.value:
            return max(enemies, key=lambda e: e.attack * (1 + e.crit_rate * (e.crit_damage - 1)))

        # 未知策略
        return enemies[0]


# ============================================================================
# 战斗结果
# ============================================================================

@dataclass
class BattleResult:
    """战斗结果"""
    winner: str                 # "A" / "B" / "draw"
    rounds: int
    log: List[str] = field(default_factory=list)
    events: List[BattleEvent] = field(default_factory=list)
    team_a_alive: int = 0
    team_b_alive: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winner": self.winner,
            "rounds": self.rounds,
            "team_a_alive": self.team_a_alive,
            "team_b_alive": self.team_b_alive,
            "log": list(self.log),
            "events": [e.to_dict() for e in self.events],
        }


# ============================================================================
# 战斗调度
# ============================================================================

class BattleScheduler:
    """战斗调度器

    NOT_STARTED -> ROUND_START -> ACTION_RESOLUTION -> ROUND_END -> (循环 | FINISHED)
    """

    def __init__(
        self,
        team_a: Sequence[Unit],
        team_b: Sequence[Unit],
        *,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        max_rounds: Optional[int] = None,
        arena_width: Optional[int] = None,
        arena_height: Optional[int] = None,
    ) -> None:
        self.team_a: List[Unit] = list(team_a)
        self.team_b: List[Unit] = list(team_b)
        self.max_rounds: int = max_rounds if max_rounds is not None else Config.MAX_ROUNDS
        self.arena = CombatArena(arena_width or Config.ARENA_WIDTH, arena_height or Config.ARENA_HEIGHT)
        self._validate()

        for unit in self.team_a:
            unit.team = Team.A.value
        for unit in self.team_b:
            unit.team = Team.B.value

        self.rng: random.Random = rng if rng is not None else random.Random(seed)
        self.phase: BattlePhase = BattlePhase.NOT_STARTED
        self.round_number: int = 0
        self.winner: Optional[str] = None
        self.log: List[str] = []
        self.events: List[BattleEvent] = []
        self.event_bus = BattleEventBus()
        self._fallen: Set[int] = set()

    # ------------------------------------------------------------------
    # 配置校验
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        if self.max_rounds <= 0:
            raise BattleConfigurationError(f"最大回合数必须为正数: {self.max_rounds}")
        if self.arena.width < 2:
            raise BattleConfigurationError("棋盘宽度至少为 2")

        capacity = (self.arena.width // 2) * self.arena.height
        seen_objects: Set[int] = set()
        seen_ids: Set[str] = set()
        for label, roster in (("A", self.team_a), ("B", self.team_b)):
            if not roster:
                raise BattleConfigurationError(f"{label}方阵容为空")
            if not any(u.is_alive for u in roster):
                raise BattleConfigurationError(f"{label}方没有存活单位")
            if sum(1 for u in roster if u.is_alive) > capacity:
                raise BattleConfigurationError(f"{label}方人数超过棋盘容量 {capacity}")
            for unit in roster:
                if id(unit) in seen_objects or unit.id in seen_ids:
                    raise BattleConfigurationError(f"单位重复出现: {unit.id}")
                seen_objects.add(id(unit))
                seen_ids.add(unit.id)

    # ------------------------------------------------------------------
    # 事件与日志
    # ------------------------------------------------------------------

    def subscribe(self, callback: EventCallback) -> None:
        self.event_bus.subscribe(callback)

    def _record(
        self,
        kind: EventKind,
        message: str,
        actor: Optional[Unit] = None,
        target: Optional[Unit] = None,
        amount: int = 0,
        skill_name: Optional[str] = None,
    ) -> None:
        event = BattleEvent(
            round_number=self.round_number,
            kind=kind,
            message=message,
            actor_id=actor.id if actor else None,
            target_id=target.id if target else None,
            amount=amount,
            skill_name=skill_name,
        )
        self.log.append(message)
        self.events.append(event)
        logger.debug(message)
        self.event_bus.publish(event)

    # ------------------------------------------------------------------
    # 主循环
    # ------------------------------------------------------------------

    def run(self) -> BattleResult:
        """执行完整战斗"""
        if self.phase != BattlePhase.NOT_STARTED:
            raise RuntimeError("同一个调度器只能运行一场战斗")

        self._setup()
        while self.winner is None:
            if self.round_number >= self.max_rounds:
                self.winner = "draw"
                break
            self.round_number += 1
            self._execute_round()

        self._conclude()
        return self.result()

    def _all_units(self) -> List[Unit]:
        return self.team_a + self.team_b

    def _placement_cells(self, team: str) -> Iterator[Position]:
        """A 方从第 0 列开始, B 方从最后一列开始; 每列先偶数行后奇数行"""
        half = self.arena.width // 2
        if team == Team.A.value:
            columns = range(0, half)
        else:
            columns = range(self.arena.width - 1, self.arena.width - 1 - half, -1)
        rows = list(range(0, self.arena.height, 2)) + list(range(1, self.arena.height, 2))
        for x in columns:
            for y in rows:
                yield Position(x=x, y=y)

    def _setup(self) -> None:
        for team, roster in ((Team.A.value, self.team_a), (Team.B.value, self.team_b)):
            cells = self._placement_cells(team)
            for unit in roster:
                if unit.is_alive:
                    self.arena.place(unit, next(cells))

        self._record(
            EventKind.BATTLE_START,
            "战斗开始: " + "、".join(u.name for u in self.team_a) + " VS " + "、".join(u.name for u in self.team_b),
        )
        self._apply_support_buffs(self.team_a)
        self._apply_support_buffs(self.team_b)

    def _apply_support_buffs(self, roster: List[Unit]) -> None:
        """队伍中存在特定类型角色时全队获得增益"""
        present = {u.unit_type for u in roster if u.is_alive}
        for unit_type, (buff_type, stacks, duration) in Config.SUPPORT_BUFFS.items():
            if unit_type not in present:
                continue
            for member in roster:
                if member.is_alive:
                    member.apply_buff(buff_type, stacks, duration)
            self._record(
                EventKind.STATUS,
                f"{roster[0].team}方助战: 全队获得{status_label(buff_type)}×{stacks} ({duration}回合)",
            )

    def _execute_round(self) -> None:
        self.phase = BattlePhase.ROUND_START
        self._record(EventKind.ROUND_START, f"===== 第{self.round_number}回合 =====")
        order = ActionOrderCalculator.order(self._all_units())

        self.phase = BattlePhase.ACTION_RESOLUTION
        for unit in order:
            if not unit.is_alive:
                continue
            self._take_turn(unit)
            self.winner = self._check_battle_end()
            if self.winner is not None:
                return

        self.phase = BattlePhase.ROUND_END
        self._end_of_round()
        self.winner = self._check_battle_end()

    def _end_of_round(self) -> None:
        for unit in self._all_units():
            if not unit.is_alive:
                continue
            for status_type in unit.tick_durations():
                self._record(EventKind.STATUS, f"{unit.name}的{status_label(status_type)}效果结束", actor=unit)
            unit.regenerate_energy()

        alive_a = sum(1 for u in self.team_a if u.is_alive)
        alive_b = sum(1 for u in self.team_b if u.is_alive)
        self._record(
            EventKind.ROUND_END,
            f"第{self.round_number}回合结束: A方存活{alive_a}人, B方存活{alive_b}人",
        )

    def _check_battle_end(self) -> Optional[str]:
        alive_a = any(u.is_alive for u in self.team_a)
        alive_b = any(u.is_alive for u in self.team_b)
        if not alive_a and not alive_b:
            return "draw"
        if not alive_b:
            return Team.A.value
        if not alive_a:
            return Team.B.value
        return None

    def _conclude(self) -> None:
        self.phase = BattlePhase.FINISHED
        if self.winner == "draw":
            text = "平局"
        else:
            text = f"{self.winner}方胜利"
        self._record(EventKind.BATTLE_END, f"战斗结束: {text}, 共{self.round_number}回合")

    def result(self) -> BattleResult:
        return BattleResult(
            winner=self.winner or "draw",
            rounds=self.round_number,
            log=list(self.log),
            events=list(self.events),
            team_a_alive=sum(1 for u in self.team_a if u.is_alive),
            team_b_alive=sum(1 for u in self.team_b if u.is_alive),
        )

    # ------------------------------------------------------------------
    # 单位回合
    # ------------------------------------------------------------------

    def _select_target(self, unit: Unit) -> Optional[Unit]:
        return TargetSelector.select(unit, self.arena.alive_enemies_of(unit.team))

    def _take_turn(self, unit: Unit) -> None:
        self._record(EventKind.TURN_START, f"【{unit.name}】开始行动", actor=unit)

        for line in unit.resolve_status_effects_for_round():
            self._record(EventKind.STATUS, line, actor=unit)
        if not unit.is_alive:
            self._handle_death(unit, killer=None)
            return

        if StatusEffectProcessor.has_marker(unit, MARKER_SKIP_TURN):
            self._record(EventKind.SKIP, f"{unit.name}寸步难行, 跳过本次行动", actor=unit)
            unit.action_bar = 0.0
            return

        target = self._select_target(unit)
        if target is None:
            self._record(EventKind.NO_TARGET, f"{unit.name}没有找到可攻击的目标", actor=unit)
            return

        skill, outcome = self._prepare_skill(unit)
        self._record(
            EventKind.SKILL,
            f"{unit.name}对{target.name}使用了【{skill.name}】",
            actor=unit, target=target, skill_name=skill.name,
        )

        # 多段攻击加成只看技能本身的段数, 追击段不计入
        hits = max(1, outcome.hits)
        base = CombatCalculator.base_damage(unit, skill, outcome.mastery_bonus, hits)
        if unit.sequence_rate > 0 and self.rng.random() < unit.sequence_rate:
            hits += 1
            self._record(EventKind.SEQUENCE, f"{unit.name}触发追击, 额外攻击一段", actor=unit)
        total_dealt = 0
        first_landed: Optional[Unit] = None
        current = target

        for index in range(hits):
            if not current.is_alive:
                retarget = self._select_target(unit)
                if retarget is None:
                    self._record(
                        EventKind.NO_TARGET,
                        f"{unit.name}没有可攻击的目标, 剩余{hits - index}段攻击落空",
                        actor=unit,
                    )
                    break
                current = retarget
            result = StrikeResolver.resolve(unit, current, base, index == 0, self.rng)
            segment = f"第{index + 1}段" if hits > 1 else ""
            total_dealt += self._apply_strike(unit, current, result, segment)
            if result.landed and first_landed is None:
                first_landed = current

        self._apply_payload(unit, first_landed, outcome)
        self._apply_riders(unit, current, first_landed, base, total_dealt)
        unit.action_bar = 0.0

    def _basic_attack(self, unit: Unit) -> Tuple[Skill, SkillOutcome]:
        executor = SkillRegistry.get(BASIC_ATTACK.executor)
        return BASIC_ATTACK, executor(unit, BASIC_ATTACK, self.rng)

    def _prepare_skill(self, unit: Unit) -> Tuple[Skill, SkillOutcome]:
        """选择本次出手使用的技能, 不可用时回退普通攻击"""
        index = unit.active_skill_index
        if not (0 <= index < len(unit.skills)):
            return self._basic_attack(unit)
        skill = unit.skills[index]

        if StatusEffectProcessor.has_marker(unit, MARKER_SEAL_SKILLS):
            self._record(EventKind.FALLBACK, f"{unit.name}血流不止, 无法施展【{skill.name}】, 改用普通攻击", actor=unit)
            return self._basic_attack(unit)

        if not SkillRegistry.is_well_formed(skill):
            logger.warning("技能配置异常: %s (executor=%s, energy_cost=%s)", skill.id, skill.executor, skill.energy_cost)
            self._record(EventKind.FALLBACK, f"【{skill.name}】配置异常, {unit.name}改用普通攻击", actor=unit)
            return self._basic_attack(unit)

        cost = skill.energy_cost
        if StatusEffectProcessor.has_marker(unit, MARKER_ENERGY_COST):
            cost *= Config.INTERNAL_INJURY_COST_MULTIPLIER
        if unit.energy < cost:
            self._record(
                EventKind.FALLBACK,
                f"{unit.name}真气不足 ({unit.energy}/{cost}), 无法施展【{skill.name}】, 改用普通攻击",
                actor=unit,
            )
            return self._basic_attack(unit)

        executor = SkillRegistry.get(skill.executor)
        try:
            outcome = executor(unit, skill, self.rng)
        except Exception as exc:
            logger.warning("技能 %s 结算失败: %s", skill.id, exc)
            self._record(EventKind.FALLBACK, f"【{skill.name}】施展失败, {unit.name}改用普通攻击", actor=unit)
            return self._basic_attack(unit)

        unit.spend_energy(cost)
        return skill, outcome

    def _apply_strike(self, attacker: Unit, defender: Unit, result: StrikeResult, segment: str = "") -> int:
        """记录一段攻击并扣除生命, 返回实际伤害"""
        if result.outcome == StrikeOutcome.MISS:
            self._record(EventKind.MISS, f"{attacker.name}的{segment}攻击未命中{defender.name}", actor=attacker, target=defender)
            return 0
        if result.outcome == StrikeOutcome.DODGE:
            self._record(EventKind.DODGE, f"{defender.name}闪避了{attacker.name}的{segment}攻击", actor=attacker, target=defender)
            return 0

        dealt = defender.take_damage(result.damage)
        if result.outcome == StrikeOutcome.CRIT:
            kind, verb = EventKind.CRIT, "暴击"
        else:
            kind, verb = EventKind.HIT, "命中"
        self._record(
            kind,
            f"{attacker.name}{segment}{verb}{defender.name}, 造成{dealt}点伤害 (剩余生命{defender.hp})",
            actor=attacker, target=defender, amount=dealt,
        )
        if not defender.is_alive:
            self._handle_death(defender, killer=attacker)
        return dealt

    def _apply_payload(self, unit: Unit, first_landed: Optional[Unit], outcome: SkillOutcome) -> None:
        """附带状态: 减益作用于首个被命中的目标, 增益作用于自身, 每次出手只结算一次"""
        for payload in outcome.statuses:
            rule = STATUS_RULES.get(payload.type)
            if rule is None:
                logger.warning("技能附带了未知状态: %s", payload.type)
                continue
            receiver = unit if rule.kind == "buff" else first_landed
            if receiver is None or not receiver.is_alive:
                continue
            effect = StatusEffectProcessor.apply(receiver, payload.type, payload.stacks, payload.duration)
            if effect is not None:
                self._record(
                    EventKind.STATUS,
                    f"{receiver.name}获得{rule.label}×{payload.stacks} (当前{effect.stacks}层, {effect.duration}回合)",
                    actor=unit, target=receiver, amount=payload.stacks,
                )

    def _apply_riders(self, unit: Unit, last_target: Unit, first_landed: Optional[Unit], base: int, total_dealt: int) -> None:
        """连击、吸血、反击。吸血按包含连击在内的总伤害结算。"""
        if unit.combo_rate > 0 and self.rng.random() < unit.combo_rate:
            if last_target.is_alive and unit.is_alive:
                self._record(EventKind.COMBO, f"{unit.name}触发连击!", actor=unit, target=last_target)
                result = StrikeResolver.resolve(unit, last_target, base, True, self.rng)
                total_dealt += self._apply_strike(unit, last_target, result, "连击")

        if total_dealt > 0 and unit.vampire_rate > 0 and unit.is_alive:
            healed = unit.heal(CombatCalculator.life_steal(total_dealt, unit))
            if healed > 0:
                self._record(EventKind.LIFE_STEAL, f"{unit.name}吸血恢复{healed}点生命", actor=unit, amount=healed)

        counter = first_landed
        if counter is not None and counter.is_alive and unit.is_alive and counter.counter_rate > 0:
            if self.rng.random() < counter.counter_rate:
                self._record(EventKind.COUNTER, f"{counter.name}发起反击!", actor=counter, target=unit)
                counter_base = CombatCalculator.base_damage(counter, BASIC_ATTACK, None, 1)
                result = StrikeResolver.resolve(counter, unit, counter_base, True, self.rng)
                self._apply_strike(counter, unit, result, "反击")

    def _handle_death(self, unit: Unit, killer: Optional[Unit]) -> None:
        if id(unit) in self._fallen:
            return
        self._fallen.add(id(unit))
        self.arena.remove_unit(unit)
        if killer is not None:
            message = f"{unit.name}被{killer.name}击败!"
        else:
            message = f"{unit.name}倒下了!"
        self._record(EventKind.DEATH, message, actor=killer, target=unit)


def run_battle(
    team_a: Sequence[Unit],
    team_b: Sequence[Unit],
    *,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    max_rounds: Optional[int] = None,
    arena_width: Optional[int] = None,
    arena_height: Optional[int] = None,
) -> BattleResult:
    """运行一场战斗并返回结果"""
    scheduler = BattleScheduler(
        team_a, team_b,
        rng=rng, seed=seed, max_rounds=max_rounds,
        arena_width=arena_width, arena_height=arena_height,
    )
    return scheduler.run()
