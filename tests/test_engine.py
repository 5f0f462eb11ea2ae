"""
测试战斗引擎 (combat/engine.py)
覆盖行动顺序、选敌策略、单位回合结算与整场战斗流程
"""

import random

import pytest

from jianghu.combat.engine import (
    ActionOrderCalculator,
    BattleConfigurationError,
    BattleScheduler,
    TargetSelector,
    run_battle,
)
from jianghu.combat.events import EventKind
from jianghu.combat.statistics import StatisticsCollector
from jianghu.models import BattlePhase, Position, StatusPayload, Talent
from jianghu.skills import SkillRegistry
from conftest import ScriptedRandom, make_skill, make_unit


def events_of(source, kind):
    return [e for e in source.events if e.kind == kind]


def prepared(team_a, team_b, rng=None, **kwargs) -> BattleScheduler:
    """完成布阵但尚未开始回合的调度器"""
    scheduler = BattleScheduler(team_a, team_b, rng=rng or ScriptedRandom(), **kwargs)
    scheduler._setup()
    scheduler.round_number = 1
    return scheduler


# ============================================================================
# 行动顺序
# ============================================================================

class TestActionOrder:
    """行动顺序计算"""

    def test_descending_speed(self):
        fast, slow = make_unit("fast", speed=150), make_unit("slow", speed=50)
        assert ActionOrderCalculator.order([slow, fast]) == [fast, slow]

    def test_stable_on_ties(self):
        x, y = make_unit("x"), make_unit("y")
        assert [u.id for u in ActionOrderCalculator.order([x, y])] == ["x", "y"]
        assert [u.id for u in ActionOrderCalculator.order([y, x])] == ["y", "x"]

    def test_slow_reduces_effective_speed(self):
        """减速: 98 * 0.7 = 68.6 < 80"""
        slowed, other = make_unit("slowed", speed=100), make_unit("other", speed=80)
        slowed.apply_debuff("slow", 1)
        assert [u.id for u in ActionOrderCalculator.order([slowed, other])] == ["other", "slowed"]

    def test_dead_units_excluded(self):
        alive, dead = make_unit("alive"), make_unit("dead", hp=0)
        assert [u.id for u in ActionOrderCalculator.order([dead, alive])] == ["alive"]


# ============================================================================
# 选敌策略
# ============================================================================

class TestTargetSelector:
    """选敌策略"""

    @pytest.fixture
    def field(self):
        attacker = make_unit("attacker")
        attacker.position = Position(x=0, y=0)
        e1 = make_unit("e1", hp=500, speed=50, attack=10)
        e1.position = Position(x=3, y=0)
        e2 = make_unit("e2", hp=900, speed=150, attack=300)
        e2.position = Position(x=1, y=0)
        e3 = make_unit("e3", hp=100, speed=100, attack=100)
        e3.position = Position(x=5, y=5)
        return attacker, [e1, e2, e3]

    @pytest.mark.parametrize("strategy, expected", [
        ("nearest", "e2"),
        ("farthest", "e3"),
        ("highest_hp", "e2"),
        ("lowest_hp", "e3"),
        ("fastest", "e2"),
        ("slowest", "e1"),
        ("highest_threat", "e2"),
        ("something_else", "e1"),
    ])
    def test_strategies(self, field, strategy, expected):
        attacker, enemies = field
        attacker.attack_strategy = strategy
        assert TargetSelector.select(attacker, enemies).id == expected

    def test_healer_targets_medical_mastery(self, field):
        """医术精通最高的敌人 (全为 0 时取第一个)"""
        attacker, enemies = field
        attacker.attack_strategy = "healer"
        assert TargetSelector.select(attacker, enemies).id == "e1"
        medic = make_unit("medic", medical_mastery=50)
        assert TargetSelector.select(attacker, enemies + [medic]).id == "medic"

    def test_damage_dealer_counts_crit(self):
        """期望伤害 200 * (1 + 0.5 * 2) = 400 高于无暴击的 300 攻击"""
        attacker = make_unit("attacker", attack_strategy="damage_dealer")
        bruiser = make_unit("bruiser", attack=300)
        critter = make_unit("critter", attack=200, crit_rate=0.5, crit_damage=3.0)
        assert TargetSelector.select(attacker, [bruiser, critter]).id == "critter"
        attacker.attack_strategy = "highest_threat"
        assert TargetSelector.select(attacker, [bruiser, critter]).id == "bruiser"

    def test_no_enemies(self, field):
        attacker, _ = field
        assert TargetSelector.select(attacker, []) is None

    def test_tie_takes_first(self):
        attacker = make_unit("attacker")
        attacker.position = Position(x=0, y=2)
        up, down = make_unit("up"), make_unit("down")
        up.position = Position(x=2, y=0)
        down.position = Position(x=2, y=4)
        assert TargetSelector.select(attacker, [up, down]).id == "up"
        assert TargetSelector.select(attacker, [down, up]).id == "down"


# ============================================================================
# 配置校验
# ============================================================================

class TestConfiguration:
    """战斗配置错误在第一回合之前抛出"""

    def test_empty_roster(self, hero):
        with pytest.raises(BattleConfigurationError):
            BattleScheduler([hero], [])
        with pytest.raises(BattleConfigurationError):
            BattleScheduler([], [hero])

    def test_no_living_unit(self, hero):
        with pytest.raises(BattleConfigurationError):
            BattleScheduler([hero], [make_unit("ghost", hp=0)])

    def test_duplicate_unit(self, hero):
        with pytest.raises(BattleConfigurationError):
            BattleScheduler([hero], [hero])

    def test_duplicate_id(self):
        with pytest.raises(BattleConfigurationError):
            BattleScheduler([make_unit("same")], [make_unit("same")])

    def test_roster_exceeds_capacity(self):
        team_a = [make_unit("a1"), make_unit("a2")]
        with pytest.raises(BattleConfigurationError):
            BattleScheduler(team_a, [make_unit("b1")], arena_width=2, arena_height=1)

    def test_invalid_round_cap(self, hero, dummy):
        with pytest.raises(BattleConfigurationError):
            BattleScheduler([hero], [dummy], max_rounds=0)

    def test_arena_too_narrow(self, hero, dummy):
        with pytest.raises(BattleConfigurationError):
            BattleScheduler([hero], [dummy], arena_width=1)

    def test_is_value_error(self):
        assert issubclass(BattleConfigurationError, ValueError)

    def test_team_tags_assigned(self):
        a, b = make_unit("a", team="B"), make_unit("b", team="A")
        BattleScheduler([a], [b])
        assert a.team == "A"
        assert b.team == "B"


# ============================================================================
# 布阵与助战
# ============================================================================

class TestSetup:

    def test_placement(self):
        a1, a2, b1 = make_unit("a1"), make_unit("a2"), make_unit("b1")
        scheduler = prepared([a1, a2], [b1])
        assert a1.position == Position(x=0, y=0)
        assert a2.position == Position(x=0, y=2)
        assert b1.position == Position(x=7, y=0)

    def test_placement_wraps_to_odd_rows(self):
        team = [make_unit(f"a{i}") for i in range(5)]
        prepared(team, [make_unit("b")])
        assert [u.position.y for u in team] == [0, 2, 4, 6, 1]

    def test_support_buff_assassin(self):
        assassin = make_unit("assassin", unit_type="assassin")
        ally = make_unit("ally")
        prepared([assassin, ally], [make_unit("b")])
        for unit in (assassin, ally):
            assert unit.buffs["agile"].stacks == 10
            assert unit.buffs["agile"].duration == 999
            assert unit.speed == 120

    def test_support_buff_swordsman(self):
        swordsman = make_unit("swordsman", unit_type="swordsman")
        enemy = make_unit("enemy")
        prepared([enemy], [swordsman])
        assert swordsman.attack == 600
        assert enemy.buffs == {}


# ============================================================================
# 单位回合
# ============================================================================

class TestStrikeResolution:
    """攻击判定"""

    def test_basic_hit(self, hero):
        target = make_unit("target", defense=20)
        scheduler = prepared([hero], [target])
        scheduler._take_turn(hero)
        hits = events_of(scheduler, EventKind.HIT)
        assert [e.amount for e in hits] == [80]
        assert target.hp == 920

    def test_minimum_damage(self):
        weak = make_unit("weak", attack=10)
        wall = make_unit("wall", defense=500)
        scheduler = prepared([weak], [wall])
        scheduler._take_turn(weak)
        assert wall.hp == 999

    def test_ignore_defense(self):
        piercer = make_unit("piercer", ignore_defense_rate=0.5)
        target = make_unit("target", defense=20)
        scheduler = prepared([piercer], [target])
        scheduler._take_turn(piercer)
        assert target.hp == 1000 - 120

    def test_miss(self):
        blind = make_unit("blind", hit_rate=0.5)
        target = make_unit("target")
        scheduler = prepared([blind], [target], rng=ScriptedRandom([0.9]))
        scheduler._take_turn(blind)
        assert len(events_of(scheduler, EventKind.MISS)) == 1
        assert target.hp == 1000

    def test_dodge(self, hero):
        target = make_unit("target", dodge_rate=0.3)
        scheduler = prepared([hero], [target], rng=ScriptedRandom([0.1, 0.1]))
        scheduler._take_turn(hero)
        assert len(events_of(scheduler, EventKind.DODGE)) == 1
        assert target.hp == 1000

    def test_crit(self):
        critter = make_unit("critter", crit_rate=0.5)
        target = make_unit("target")
        scheduler = prepared([critter], [target], rng=ScriptedRandom([0.5, 0.5, 0.1]))
        scheduler._take_turn(critter)
        crits = events_of(scheduler, EventKind.CRIT)
        assert [e.amount for e in crits] == [200]

    def test_armor_break_doubles_damage(self, hero):
        target = make_unit("target", max_hp=100000)
        target.apply_debuff("armor_break", 100)
        target.resolve_status_effects_for_round()
        scheduler = prepared([hero], [target])
        scheduler._take_turn(hero)
        assert [e.amount for e in events_of(scheduler, EventKind.HIT)] == [200]


class TestMultiHit:
    """多段攻击"""

    def test_follow_up_hits_discounted(self):
        """首段 100-20=80, 后续每段 floor(100*0.3)=30"""
        attacker = make_unit("attacker", skills=[make_skill(executor="barrage", min_hits=4, max_hits=4)])
        target = make_unit("target", max_hp=10000, defense=20)
        scheduler = prepared([attacker], [target])
        scheduler._take_turn(attacker)
        assert [e.amount for e in events_of(scheduler, EventKind.HIT)] == [80, 30, 30, 30]
        assert attacker.energy == 1990

    def test_mastery_bonus(self):
        """剑法精通 100: 攻击 150, 基础伤害 150 + 50 = 200"""
        skill = make_skill(skill_type="sword", executor="barrage", min_hits=3, max_hits=3, mastery_bonus=True)
        attacker = make_unit("attacker", sword_mastery=100, skills=[skill])
        target = make_unit("target", max_hp=10000)
        scheduler = prepared([attacker], [target])
        scheduler._take_turn(attacker)
        assert [e.amount for e in events_of(scheduler, EventKind.HIT)] == [200, 60, 60]

    def test_retarget_after_kill(self):
        attacker = make_unit("attacker", skills=[make_skill(executor="barrage", min_hits=3, max_hits=3)])
        fragile = make_unit("fragile", hp=50)
        sturdy = make_unit("sturdy")
        scheduler = prepared([attacker], [fragile, sturdy])
        scheduler._take_turn(attacker)
        assert not fragile.is_alive
        assert fragile.position is None
        assert sturdy.hp == 940
        assert len(events_of(scheduler, EventKind.DEATH)) == 1

    def test_remaining_hits_dropped(self):
        attacker = make_unit("attacker", skills=[make_skill(executor="barrage", min_hits=3, max_hits=3)])
        fragile = make_unit("fragile", hp=50)
        scheduler = prepared([attacker], [fragile])
        scheduler._take_turn(attacker)
        assert len(events_of(scheduler, EventKind.HIT)) == 1
        assert any("剩余2段" in e.message for e in events_of(scheduler, EventKind.NO_TARGET))

    def test_payload_applied_once(self):
        skill = make_skill(executor="barrage", min_hits=3, max_hits=3,
                           statuses=[StatusPayload(type="poison", stacks=20, duration=3)])
        attacker = make_unit("attacker", skills=[skill])
        target = make_unit("target", max_hp=100000)
        scheduler = prepared([attacker], [target])
        scheduler._take_turn(attacker)
        assert target.debuffs["poison"].stacks == 20
        assert target.debuffs["poison"].duration == 3

    def test_payload_skipped_when_nothing_lands(self):
        skill = make_skill(statuses=[StatusPayload(type="poison", stacks=20)])
        attacker = make_unit("attacker", hit_rate=0.5, skills=[skill])
        target = make_unit("target")
        scheduler = prepared([attacker], [target], rng=ScriptedRandom(default=0.9))
        scheduler._take_turn(attacker)
        assert target.debuffs == {}

    def test_buff_payload_goes_to_self(self):
        skill = make_skill(statuses=[StatusPayload(type="strong", stacks=1)])
        attacker = make_unit("attacker", skills=[skill])
        target = make_unit("target")
        scheduler = prepared([attacker], [target])
        scheduler._take_turn(attacker)
        assert attacker.buffs["strong"].stacks == 1
        assert target.buffs == {}

    def test_sequence_adds_hit(self):
        attacker = make_unit("attacker", sequence_rate=0.3)
        target = make_unit("target")
        scheduler = prepared([attacker], [target], rng=ScriptedRandom([0.1]))
        scheduler._take_turn(attacker)
        assert [e.amount for e in events_of(scheduler, EventKind.HIT)] == [100, 30]
        assert len(events_of(scheduler, EventKind.SEQUENCE)) == 1

    def test_sequence_does_not_trigger_multi_hit_bonus(self):
        """追击段不计入段数, 单段技能拿不到多段攻击加成"""
        talent = Talent(id="multi", name="连环", effects={"多段攻击加成": 20})
        attacker = make_unit("attacker", sequence_rate=0.3, talents=[talent])
        target = make_unit("target")
        scheduler = prepared([attacker], [target], rng=ScriptedRandom([0.1]))
        scheduler._take_turn(attacker)
        assert [e.amount for e in events_of(scheduler, EventKind.HIT)] == [100, 30]
        assert target.hp == 870


class TestSkillFallback:
    """技能不可用时回退普通攻击"""

    @pytest.fixture
    def exploding_executor(self):
        @SkillRegistry.register("explode")
        def explode(unit, skill, rng):
            raise RuntimeError("boom")
        yield "explode"
        SkillRegistry._executors.pop("explode", None)

    def _used_skill(self, scheduler):
        return events_of(scheduler, EventKind.SKILL)[0].skill_name

    def test_insufficient_energy(self):
        attacker = make_unit("attacker", energy=50, skills=[make_skill(energy_cost=100)])
        scheduler = prepared([attacker], [make_unit("target")])
        scheduler._take_turn(attacker)
        assert any("真气不足" in line for line in scheduler.log)
        assert self._used_skill(scheduler) == "普通攻击"
        assert attacker.energy == 50

    def test_missing_energy_cost(self):
        attacker = make_unit("attacker", skills=[make_skill(energy_cost=None)])
        scheduler = prepared([attacker], [make_unit("target")])
        scheduler._take_turn(attacker)
        assert len(events_of(scheduler, EventKind.FALLBACK)) == 1
        assert self._used_skill(scheduler) == "普通攻击"

    def test_unknown_executor(self):
        attacker = make_unit("attacker", skills=[make_skill(executor="nope")])
        scheduler = prepared([attacker], [make_unit("target")])
        scheduler._take_turn(attacker)
        assert self._used_skill(scheduler) == "普通攻击"

    def test_executor_raises(self, exploding_executor):
        attacker = make_unit("attacker", skills=[make_skill(executor=exploding_executor)])
        target = make_unit("target")
        scheduler = prepared([attacker], [target])
        scheduler._take_turn(attacker)
        assert self._used_skill(scheduler) == "普通攻击"
        assert attacker.energy == 2000
        assert target.hp == 900

    def test_out_of_range_index(self):
        attacker = make_unit("attacker", skills=[make_skill()], active_skill_index=3)
        scheduler = prepared([attacker], [make_unit("target")])
        scheduler._take_turn(attacker)
        assert self._used_skill(scheduler) == "普通攻击"

    def test_advanced_bleed_seals_skills(self):
        attacker = make_unit("attacker", max_hp=100000, skills=[make_skill()])
        attacker.apply_debuff("bleed", 100)
        scheduler = prepared([attacker], [make_unit("target")])
        scheduler._take_turn(attacker)
        assert any("血流不止" in line for line in scheduler.log)
        assert self._used_skill(scheduler) == "普通攻击"

    def test_advanced_internal_injury_cost(self):
        attacker = make_unit("attacker", energy=100, skills=[make_skill(energy_cost=30)])
        attacker.apply_debuff("internal_injury", 100)
        scheduler = prepared([attacker], [make_unit("target")])
        scheduler._take_turn(attacker)
        assert any("100/150" in line for line in scheduler.log)

    def test_skill_spends_energy(self):
        attacker = make_unit("attacker", skills=[make_skill(energy_cost=40, name="剑法")])
        scheduler = prepared([attacker], [make_unit("target")])
        scheduler._take_turn(attacker)
        assert self._used_skill(scheduler) == "剑法"
        assert attacker.energy == 1960


class TestRiders:
    """吸血、连击、反击"""

    def test_life_steal(self):
        attacker = make_unit("attacker", hp=500, vampire_rate=0.5)
        scheduler = prepared([attacker], [make_unit("target")])
        scheduler._take_turn(attacker)
        assert attacker.hp == 550
        assert [e.amount for e in events_of(scheduler, EventKind.LIFE_STEAL)] == [50]

    def test_life_steal_includes_combo(self):
        """两次各 100 伤害, 按 200 吸血"""
        attacker = make_unit("attacker", hp=500, vampire_rate=0.5, combo_rate=0.5)
        target = make_unit("target")
        scheduler = prepared([attacker], [target], rng=ScriptedRandom([0.5, 0.5, 0.5, 0.1]))
        scheduler._take_turn(attacker)
        assert target.hp == 800
        assert attacker.hp == 600
        assert [e.amount for e in events_of(scheduler, EventKind.LIFE_STEAL)] == [100]

    def test_combo(self):
        attacker = make_unit("attacker", combo_rate=0.5)
        target = make_unit("target")
        scheduler = prepared([attacker], [target], rng=ScriptedRandom([0.5, 0.5, 0.5, 0.1]))
        scheduler._take_turn(attacker)
        assert target.hp == 800
        assert len(events_of(scheduler, EventKind.COMBO)) == 1

    def test_combo_not_triggered(self):
        attacker = make_unit("attacker", combo_rate=0.5)
        target = make_unit("target")
        scheduler = prepared([attacker], [target], rng=ScriptedRandom(default=0.9))
        scheduler._take_turn(attacker)
        assert target.hp == 900
        assert events_of(scheduler, EventKind.COMBO) == []

    def test_counter(self):
        attacker = make_unit("attacker")
        defender = make_unit("defender", attack=50, counter_rate=0.3)
        scheduler = prepared([attacker], [defender], rng=ScriptedRandom([0.5, 0.5, 0.5, 0.1]))
        scheduler._take_turn(attacker)
        assert attacker.hp == 950
        counters = events_of(scheduler, EventKind.COUNTER)
        assert len(counters) == 1
        assert counters[0].actor_id == "defender"

    def test_no_roll_without_rate(self, hero):
        """比率为 0 时不消耗随机数: 命中、闪避、暴击各一次"""
        rng = ScriptedRandom()
        scheduler = prepared([hero], [make_unit("target")], rng=rng)
        scheduler._take_turn(hero)
        assert rng.calls == 3


class TestTurnFlow:
    """回合流程"""

    def test_dot_death_ends_turn(self):
        victim = make_unit("victim", hp=30)
        victim.apply_debuff("bleed", 1)
        target = make_unit("target")
        scheduler = prepared([victim], [target])
        scheduler._take_turn(victim)
        assert not victim.is_alive
        assert target.hp == 1000
        assert len(events_of(scheduler, EventKind.DEATH)) == 1

    def test_advanced_slow_skips_turn(self):
        slowed = make_unit("slowed")
        slowed.apply_debuff("slow", 100)
        target = make_unit("target")
        scheduler = prepared([slowed], [target])
        scheduler._take_turn(slowed)
        assert len(events_of(scheduler, EventKind.SKIP)) == 1
        assert target.hp == 1000

    def test_check_battle_end(self, hero, dummy):
        scheduler = prepared([hero], [dummy])
        assert scheduler._check_battle_end() is None
        dummy.take_damage(dummy.hp)
        assert scheduler._check_battle_end() == "A"
        hero.take_damage(hero.hp)
        assert scheduler._check_battle_end() == "draw"


# ============================================================================
# 整场战斗
# ============================================================================

class TestFullBattle:
    """整场战斗"""

    def test_reference_scenario(self):
        """A 方 1000/100/0/120 对 B 方 100/10/0/50: A 方胜, B 方恰好一次阵亡"""
        a = make_unit("a", hp=1000, attack=100, defense=0, speed=120)
        b = make_unit("b", hp=100, attack=10, defense=0, speed=50)
        result = run_battle([a], [b], seed=42)
        assert result.winner == "A"
        assert 1 <= result.rounds <= 2
        assert not b.is_alive
        assert len(events_of(result, EventKind.DEATH)) == 1
        assert result.team_a_alive == 1
        assert result.team_b_alive == 0
        assert result.log[-1].startswith("战斗结束")

    def test_draw_at_round_cap(self):
        """双方只能造成 1 点伤害, 打满 50 回合平局"""
        a = make_unit("a", max_hp=1_000_000, attack=1, defense=100)
        b = make_unit("b", max_hp=1_000_000, attack=1, defense=100)
        result = run_battle([a], [b], seed=1)
        assert result.winner == "draw"
        assert result.rounds == 50
        assert a.hp == 1_000_000 - 50
        assert b.hp == 1_000_000 - 50

    def test_custom_round_cap(self, hero, dummy):
        result = run_battle([hero], [dummy], max_rounds=3)
        assert result.winner == "draw"
        assert result.rounds == 3

    def test_round_end_regenerates_and_ticks(self, dummy):
        unit = make_unit("unit", energy=100)
        unit.apply_buff("tough", 1, duration=1)
        scheduler = BattleScheduler([unit], [dummy], seed=0, max_rounds=1)
        scheduler.run()
        assert unit.energy == 200
        assert unit.buffs == {}
        assert any("效果结束" in line for line in scheduler.log)

    def test_phase_and_single_run(self, hero, dummy):
        scheduler = BattleScheduler([hero], [dummy], seed=0, max_rounds=1)
        assert scheduler.phase == BattlePhase.NOT_STARTED
        scheduler.run()
        assert scheduler.phase == BattlePhase.FINISHED
        with pytest.raises(RuntimeError):
            scheduler.run()

    def test_deterministic_with_seed(self, factory):
        def battle(seed):
            a = factory.create_unit(factory.catalog.get_template("elite_jinshulei"), team="A", unit_id="a")
            b = factory.create_unit(factory.catalog.get_template("elite_fengchong"), team="B", unit_id="b")
            return run_battle([a], [b], seed=seed)

        first, second = battle(7), battle(7)
        assert first.log == second.log
        assert first.winner == second.winner

    def test_injected_rng(self, factory):
        a = factory.create_opponent("风冲", team="A")
        b = factory.create_opponent("张三丰")
        result = run_battle([a], [b], rng=random.Random(3))
        assert result.winner in ("A", "B", "draw")
        assert result.rounds <= 50

    def test_team_battle_terminates(self, factory):
        team_a = [factory.create_opponent(name, team="A") for name in ("风冲", "金书蕾")]
        team_b = [factory.create_opponent(name) for name in ("张三丰", "金书蕾·追魂")]
        result = run_battle(team_a, team_b, seed=11)
        assert result.winner in ("A", "B", "draw")
        for unit in team_a + team_b:
            assert 0 <= unit.hp <= unit.max_hp

    def test_hp_never_rises_without_healing(self, hero, dummy):
        """没有治疗来源时生命只降不升"""
        history = {hero.id: [hero.hp], dummy.id: [dummy.hp]}
        scheduler = BattleScheduler([hero], [dummy], seed=5, max_rounds=5)

        def record(event):
            history[hero.id].append(hero.hp)
            history[dummy.id].append(dummy.hp)

        scheduler.subscribe(record)
        scheduler.run()
        for values in history.values():
            assert values == sorted(values, reverse=True)

    def test_to_dict(self, hero, dummy):
        result = run_battle([hero], [dummy], seed=0, max_rounds=1)
        data = result.to_dict()
        assert data["winner"] == "draw"
        assert data["events"][0]["kind"] == "battle_start"


class TestStatisticsCollector:
    """战斗统计"""

    def test_collects_damage_and_kills(self):
        a = make_unit("a", hp=1000, attack=100, speed=120)
        b = make_unit("b", hp=100, attack=10, speed=50)
        scheduler = BattleScheduler([a], [b], seed=42)
        collector = StatisticsCollector().attach(scheduler)
        scheduler.run()
        summary = collector.stats.summary("a")
        assert summary["damage_dealt"] == 100
        assert summary["kills"] == 1
        assert summary["max_single_hit"] == 100
        assert collector.stats.damage_taken["b"] == 100
        assert collector.stats.rounds == 1

    def test_misses_and_dodges(self):
        """A 方先出手未命中, B 方反手被 A 方闪避"""
        a = make_unit("a", hit_rate=0.5, dodge_rate=0.5, speed=200)
        b = make_unit("b", attack=1, speed=1)
        scheduler = BattleScheduler([a], [b], rng=ScriptedRandom([0.9, 0.1, 0.1]), max_rounds=1)
        collector = StatisticsCollector().attach(scheduler)
        scheduler.run()
        assert collector.stats.misses["a"] == 1
        assert collector.stats.dodges["a"] == 1
