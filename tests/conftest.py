"""
pytest 共享配置和 Fixtures
这个文件会被 pytest 自动加载，所有测试都可以使用这里定义的 fixtures
"""

import random
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

# 确保 jianghu 模块能被导入
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ============================================================================
# 导入项目模块
# ============================================================================
from jianghu.config import Config
from jianghu.loader import Catalog, DataLoader
from jianghu.models import Skill, Unit
from jianghu.factory import UnitFactory

# ============================================================================
# 测试辅助类
# ============================================================================

class ScriptedRandom(random.Random):
    """按脚本返回 random() 的随机数生成器

    脚本用完后一直返回 default。randint/sample 等方法仍使用真实随机源。
    """

    def __init__(self, values: Iterable[float] = (), default: float = 0.5) -> None:
        super().__init__(0)
        self.values: List[float] = list(values)
        self.default = default
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return self.default


# ============================================================================
# 测试辅助函数
# ============================================================================

def make_unit(unit_id: str, name: Optional[str] = None, **kwargs) -> Unit:
    """
    创建测试单位 (默认 1000 生命, 100 攻击, 0 防御, 100 速度)

    参数:
        unit_id: 单位 id
        name: 名称, 默认与 id 相同
        **kwargs: 覆盖 Unit 的其他字段
    """
    defaults = {
        "max_hp": 1000,
        "attack": 100,
        "defense": 0,
        "speed": 100,
    }
    defaults.update(kwargs)
    return Unit(id=unit_id, name=name or unit_id, **defaults)


def effective_stats(unit: Unit) -> Dict[str, float]:
    """单位当前生效的全部受约束属性"""
    return {stat: getattr(unit, stat) for stat in Config.STAT_LIMITS}


def make_skill(skill_id: str = "skill_test", **kwargs) -> Skill:
    """创建测试技能 (默认单段, 消耗 10 真气)"""
    defaults = {
        "name": skill_id,
        "executor": "strike",
        "energy_cost": 10,
    }
    defaults.update(kwargs)
    return Skill(id=skill_id, **defaults)


# ============================================================================
# 基础 Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def catalog() -> Catalog:
    """包内自带的配置目录"""
    return DataLoader().load_all()


@pytest.fixture
def factory(catalog) -> UnitFactory:
    return UnitFactory(catalog)


@pytest.fixture
def hero() -> Unit:
    """标准单位"""
    return make_unit("hero", "侠客")


@pytest.fixture
def dummy() -> Unit:
    """高血量木桩 (无攻击能力之外的特殊属性)"""
    return make_unit("dummy", "木桩", max_hp=100000, attack=1, speed=1)
