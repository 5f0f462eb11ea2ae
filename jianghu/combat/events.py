"""
战斗事件
每条叙述日志都对应一个结构化事件, 订阅者按调度器实例注册
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class EventKind(str, Enum):
    """事件类型"""
    BATTLE_START = "battle_start"
    ROUND_START = "round_start"
    TURN_START = "turn_start"
    STATUS = "status"
    SKIP = "skip"
    NO_TARGET = "no_target"
    SKILL = "skill"
    FALLBACK = "fallback"
    MISS = "miss"
    DODGE = "dodge"
    HIT = "hit"
    CRIT = "crit"
    SEQUENCE = "sequence"
    COMBO = "combo"
    COUNTER = "counter"
    LIFE_STEAL = "life_steal"
    DEATH = "death"
    ROUND_END = "round_end"
    BATTLE_END = "battle_end"


@dataclass
class BattleEvent:
    """结构化战斗事件"""
    round_number: int
    kind: EventKind
    message: str
    actor_id: Optional[str] = None
    target_id: Optional[str] = None
    amount: int = 0
    skill_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


EventCallback = Callable[[BattleEvent], None]


class BattleEventBus:
    """战斗事件分发 (实例级订阅, 多场战斗互不干扰)"""

    def __init__(self) -> None:
        self._subscribers: List[EventCallback] = []

    def subscribe(self, callback: EventCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, event: BattleEvent) -> None:
        for callback in list(self._subscribers):
            callback(event)
