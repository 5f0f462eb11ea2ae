"""
战斗统计收集器
====================
功能：从战斗事件流中收集每个单位的统计数据
设计原则：
  - 事件驱动：只订阅事件，不干预战斗流程
  - 解耦设计：只依赖 BattleEvent 的字段
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict

from .events import BattleEvent, EventKind

_DAMAGE_KINDS = (EventKind.HIT, EventKind.CRIT)


@dataclass
class BattleStatistics:
    """整场战斗的统计"""
    damage_dealt: Counter = field(default_factory=Counter)
    damage_taken: Counter = field(default_factory=Counter)
    hits: Counter = field(default_factory=Counter)
    misses: Counter = field(default_factory=Counter)
    dodges: Counter = field(default_factory=Counter)
    crits: Counter = field(default_factory=Counter)
    kills: Counter = field(default_factory=Counter)
    healing: Counter = field(default_factory=Counter)
    max_single_hit: Dict[str, int] = field(default_factory=dict)
    rounds: int = 0

    def summary(self, unit_id: str) -> Dict[str, int]:
        return {
            "damage_dealt": self.damage_dealt[unit_id],
            "damage_taken": self.damage_taken[unit_id],
            "hits": self.hits[unit_id],
            "misses": self.misses[unit_id],
            "dodges": self.dodges[unit_id],
            "crits": self.crits[unit_id],
            "kills": self.kills[unit_id],
            "healing": self.healing[unit_id],
            "max_single_hit": self.max_single_hit.get(unit_id, 0),
        }


class StatisticsCollector:
    """统计收集器, 作为回调订阅调度器事件"""

    def __init__(self) -> None:
        self.stats = BattleStatistics()

    def attach(self, scheduler) -> "StatisticsCollector":
        scheduler.subscribe(self.on_event)
        return self

    def on_event(self, event: BattleEvent) -> None:
        self.stats.rounds = max(self.stats.rounds, event.round_number)
        actor, target = event.actor_id, event.target_id

        if event.kind in _DAMAGE_KINDS:
            self.stats.damage_dealt[actor] += event.amount
            self.stats.damage_taken[target] += event.amount
            self.stats.hits[actor] += 1
            if event.amount > self.stats.max_single_hit.get(actor, 0):
                self.stats.max_single_hit[actor] = event.amount
            if event.kind == EventKind.CRIT:
                self.stats.crits[actor] += 1
        elif event.kind == EventKind.MISS:
            self.stats.misses[actor] += 1
        elif event.kind == EventKind.DODGE:
            self.stats.dodges[target] += 1
        elif event.kind == EventKind.LIFE_STEAL:
            self.stats.healing[actor] += event.amount
        elif event.kind == EventKind.DEATH and actor is not None:
            self.stats.kills[actor] += 1
