"""
测试红尘劫属性生成状态机 (trial.py)
"""

import random

import pytest

from jianghu.trial import (
    MASTERY_KEYS,
    AttributeTrial,
    GeneratedAttributes,
    TrialConfig,
    TrialSession,
    TrialStage,
    trial_stats,
)


@pytest.fixture
def config() -> TrialConfig:
    """区间上下限相同, 生成结果只取决于答题奖励"""
    return TrialConfig.model_validate({
        "mastery_ranges": {key: {"min": 10, "max": 10} for key in MASTERY_KEYS},
        "base_ranges": {
            "attack": {"min": 100, "max": 100},
            "health": {"min": 1000, "max": 1000},
            "energy": {"min": 2000, "max": 2000},
            "defense": {"min": 30, "max": 30},
        },
        "talent_pool": ["a", "b", "c", "d"],
        "talent_count": 2,
        "questions": [
            {"id": 1, "title": "问一", "options": [
                {"id": 1, "text": "剑", "bonus": {"swordMastery": 15, "attack": 10}},
                {"id": 2, "text": "闪", "bonus": {"evasion": 3}},
                {"id": 3, "text": "无", "bonus": {}},
            ]},
            {"id": 2, "title": "问二", "options": [
                {"id": 1, "text": "气", "bonus": {"energyRegen": 5}},
                {"id": 2, "text": "力", "bonus": {"martialAttack": 7}},
                {"id": 3, "text": "无", "bonus": {}},
            ]},
        ],
    })


@pytest.fixture
def trial(config) -> AttributeTrial:
    return AttributeTrial(config, player_id="p1", rng=random.Random(1))


def answer_all(trial, *options):
    trial.handle("渡红尘劫三重")
    trial.handle("开始答题")
    reply = None
    for option in options:
        reply = trial.handle(f"答题 {option}")
    return reply


class TestFlow:
    """完整流程"""

    def test_full_flow(self, trial):
        reply = trial.handle("渡红尘劫三重")
        assert reply.stage == TrialStage.CONFIRM_START
        assert reply.level == 3

        reply = trial.handle("开始答题")
        assert reply.stage == TrialStage.ANSWERING
        assert "第1题" in reply.text

        reply = trial.handle("答题 1")
        assert reply.stage == TrialStage.ANSWERING
        assert "第2题" in reply.text

        reply = trial.handle("答题 2")
        assert reply.stage == TrialStage.REVIEW_ATTRIBUTES
        attributes = trial.session.attributes
        assert attributes.masteries["swordMastery"] == 25
        assert attributes.masteries["fistMastery"] == 10
        assert attributes.basics["attack"] == 117
        assert attributes.extras == {}

        reply = trial.handle("确认属性")
        assert reply.stage == TrialStage.CONFIRM_FINAL

        reply = trial.handle("确认创建")
        assert reply.stage == TrialStage.COMPLETED
        assert reply.result == attributes
        assert "第3周目" in reply.text

    def test_completed_rejects_everything(self, trial):
        answer_all(trial, 1, 1)
        trial.handle("确认属性")
        trial.handle("确认创建")
        reply = trial.handle("渡红尘劫一重")
        assert reply.stage == TrialStage.COMPLETED
        assert reply.text == "您已经完成过周目答题，无法再次进行！"

    def test_extras_and_aliases(self, trial):
        answer_all(trial, 2, 1)
        assert trial.session.attributes.extras == {"dodge": 3, "energyRecovery": 5}

    def test_talents_drawn_from_pool(self, trial):
        answer_all(trial, 3, 3)
        talents = trial.session.attributes.talents
        assert len(talents) == 2
        assert len(set(talents)) == 2
        assert set(talents) <= {"a", "b", "c", "d"}

    def test_prefixed_command(self, trial):
        reply = trial.handle("#渡红尘劫六重")
        assert reply.level == 6


class TestInvalidInput:
    """无效输入不改变阶段"""

    def test_initial_ignores_other_messages(self, trial):
        reply = trial.handle("你好")
        assert reply.stage == TrialStage.INITIAL

    def test_invalid_option(self, trial):
        trial.handle("渡红尘劫一重")
        trial.handle("开始答题")
        reply = trial.handle("答题 4")
        assert reply.text == "无效选项，请选择 1、2、3 中的一个。"
        assert reply.stage == TrialStage.ANSWERING
        assert trial.session.answers == []

    def test_wrong_answer_format(self, trial):
        trial.handle("渡红尘劫一重")
        trial.handle("开始答题")
        reply = trial.handle("选第一个")
        assert reply.stage == TrialStage.ANSWERING

    def test_confirm_start_reprompts(self, trial):
        trial.handle("渡红尘劫一重")
        reply = trial.handle("嗯")
        assert reply.stage == TrialStage.CONFIRM_START

    def test_confirm_final_reprompts(self, trial):
        answer_all(trial, 1, 1)
        trial.handle("确认属性")
        reply = trial.handle("再想想")
        assert reply.stage == TrialStage.CONFIRM_FINAL


class TestNavigation:
    """取消、重新答题、重铸、返回"""

    def test_cancel(self, trial):
        trial.handle("渡红尘劫二重")
        reply = trial.handle("取消")
        assert reply.stage == TrialStage.INITIAL
        assert reply.text == "已取消周目答题。"
        assert trial.session.level == 1

    def test_restart_answers(self, trial):
        answer_all(trial, 1, 1)
        reply = trial.handle("重新答题")
        assert reply.stage == TrialStage.CONFIRM_START
        assert trial.session.answers == []
        assert trial.session.attributes is None

    def test_reroll(self, trial):
        trial.config.mastery_ranges["swordMastery"].max = 1000
        answer_all(trial, 1, 1)
        first = trial.session.attributes
        reply = trial.handle("重铸属性")
        assert reply.stage == TrialStage.REVIEW_ATTRIBUTES
        assert trial.session.attributes is not first
        assert trial.session.attributes.basics["attack"] == 110

    def test_back_from_final(self, trial):
        answer_all(trial, 1, 1)
        trial.handle("确认属性")
        reply = trial.handle("返回")
        assert reply.stage == TrialStage.REVIEW_ATTRIBUTES

    def test_review_shows_preview(self, trial):
        answer_all(trial, 1, 1)
        reply = trial.handle("看看")
        assert reply.stage == TrialStage.REVIEW_ATTRIBUTES
        assert "剑法精通: 25" in reply.text

    def test_no_questions(self):
        trial = AttributeTrial(TrialConfig())
        trial.handle("渡红尘劫一重")
        reply = trial.handle("开始答题")
        assert reply.text == "周目答题系统暂未开放，请稍后再试！"
        assert reply.stage == TrialStage.CONFIRM_START


class TestSession:

    def test_resume_from_dump(self, config, trial):
        trial.handle("渡红尘劫一重")
        trial.handle("开始答题")
        trial.handle("答题 1")
        restored = TrialSession.model_validate(trial.session.model_dump())
        resumed = AttributeTrial(config, session=restored, rng=random.Random(2))
        reply = resumed.handle("答题 1")
        assert reply.stage == TrialStage.REVIEW_ATTRIBUTES
        assert resumed.session.player_id == "p1"

    def test_bundled_config(self, catalog):
        trial = AttributeTrial(catalog.trial, rng=random.Random(5))
        answer_all(trial, 1, 1, 1)
        attributes = trial.session.attributes
        assert trial.session.stage == TrialStage.REVIEW_ATTRIBUTES
        assert len(attributes.talents) == catalog.trial.talent_count
        assert 90 <= attributes.basics["attack"] <= 160


class TestTrialStats:

    def test_conversion(self):
        attributes = GeneratedAttributes(
            masteries={"legMastery": 12, "internalMastery": 30},
            basics={"attack": 90, "health": 1200, "energy": 1600, "defense": 25},
            extras={"dodge": 4},
        )
        stats, masteries = trial_stats(attributes)
        assert masteries == {"leg_mastery": 12, "internal_mastery": 30}
        assert stats["max_hp"] == 1200
        assert stats["max_energy"] == 1600
        assert stats["dodge_rate"] == pytest.approx(0.04)
        assert "energy_recovery_rate" not in stats
