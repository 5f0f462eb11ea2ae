"""
角色工厂 (Factory)
负责将模板/属性包转换为带技能、天赋和门派的战斗单位 (Unit)
"""

import itertools
import logging
from typing import Any, Dict, Optional, Union

from .loader import Catalog
from .models import Team, Unit, UnitTemplate
from .talents import TalentAndSectResolver
from .trial import GeneratedAttributes, trial_stats

logger = logging.getLogger(__name__)

DEFAULT_OPPONENT = "opp_fengchong"
PLAYER_TEMPLATE = "player"


class UnitFactory:
    """战斗单位工厂"""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self.resolver = TalentAndSectResolver(catalog)
        self._serial = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._serial)}"

    def create_unit(self, template: Union[UnitTemplate, Dict[str, Any]], team: str = Team.A.value,
                    unit_id: Optional[str] = None) -> Unit:
        """由模板创建单位

        1. 展开属性包
        2. 解析技能与天赋 id (找不到的记录日志并跳过)
        3. 加入门派 (门派天赋随之获得)

        Args:
            template: 角色模板或等价的字典
            team: 阵营
            unit_id: 单位 id, 默认自动生成

        Returns:
            Unit: 加成已结算完毕的单位
        """
        if isinstance(template, dict):
            template = UnitTemplate.model_validate(template)

        skills = []
        for skill_id in template.skills:
            skill = self.catalog.find_skill(skill_id)
            if skill is None:
                logger.warning("模板 %s 引用了不存在的技能 %s", template.id, skill_id)
                continue
            skills.append(skill.model_copy(deep=True))

        talents = []
        for talent_id in template.talents:
            talent = self.catalog.find_talent(talent_id)
            if talent is None:
                logger.warning("模板 %s 引用了不存在的天赋 %s", template.id, talent_id)
                continue
            talents.append(talent.model_copy(deep=True))

        unit = Unit(
            id=unit_id or self._next_id(template.id),
            name=template.name,
            team=team,
            unit_type=template.unit_type,
            skills=skills,
            talents=talents,
            attack_strategy=template.attack_strategy,
            **template.stats,
        )

        if template.sect and not self.resolver.join_sect(unit, template.sect):
            logger.warning("模板 %s 无法加入门派 %s", template.id, template.sect)
        return unit

    def create_opponent(self, name: str, team: str = Team.B.value) -> Unit:
        """按名称创建对手, 未知名称使用默认对手"""
        template = self.catalog.find_template(name)
        if template is None:
            logger.info("未找到对手 %s, 使用默认对手", name)
            template = self.catalog.get_template(DEFAULT_OPPONENT)
        return self.create_unit(template, team=team)

    def create_player(self, name: Optional[str] = None, team: str = Team.A.value) -> Unit:
        """创建默认玩家角色"""
        template = self.catalog.get_template(PLAYER_TEMPLATE)
        if name:
            template = template.model_copy(update={"name": name})
        return self.create_unit(template, team=team)

    def create_from_trial(self, attributes: GeneratedAttributes, name: str, team: str = Team.A.value,
                          skills: Optional[list] = None) -> Unit:
        """由红尘劫生成的属性创建角色"""
        stats, masteries = trial_stats(attributes)
        template = UnitTemplate(
            id="trial",
            name=name,
            stats={**stats, **masteries},
            skills=list(skills) if skills is not None else list(self.catalog.get_template(PLAYER_TEMPLATE).skills),
            talents=list(attributes.talents),
        )
        return self.create_unit(template, team=team)
