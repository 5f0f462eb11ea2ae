"""
战斗棋盘
曼哈顿距离网格, 每格最多一个单位
"""

from typing import Dict, List, Optional

from ..config import Config
from ..models import Position, Unit


class CombatArena:
    """战斗棋盘"""

    def __init__(self, width: int = Config.ARENA_WIDTH, height: int = Config.ARENA_HEIGHT) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"棋盘尺寸非法: {width}x{height}")
        self.width: int = width
        self.height: int = height
        # 插入顺序即放置顺序
        self._cells: Dict[Position, Unit] = {}

    def in_bounds(self, position: Position) -> bool:
        return 0 <= position.x < self.width and 0 <= position.y < self.height

    def place(self, unit: Unit, position: Position) -> bool:
        """放置单位。越界或格子已被占用时返回 False。"""
        if not self.in_bounds(position) or position in self._cells:
            return False
        self._cells[position] = unit
        unit.position = position
        return True

    def remove(self, position: Position) -> Optional[Unit]:
        unit = self._cells.pop(position, None)
        if unit is not None:
            unit.position = None
        return unit

    def remove_unit(self, unit: Unit) -> bool:
        """按单位移除 (阵亡时使用)"""
        for position, occupant in self._cells.items():
            if occupant is unit:
                self.remove(position)
                return True
        return False

    def get(self, position: Position) -> Optional[Unit]:
        return self._cells.get(position)

    @staticmethod
    def distance(a: Position, b: Position) -> int:
        """曼哈顿距离"""
        return abs(a.x - b.x) + abs(a.y - b.y)

    def units(self) -> List[Unit]:
        return list(self._cells.values())

    def alive_enemies_of(self, team: str) -> List[Unit]:
        return [u for u in self._cells.values() if u.team != team and u.is_alive]

    def alive_allies_of(self, team: str) -> List[Unit]:
        return [u for u in self._cells.values() if u.team == team and u.is_alive]
