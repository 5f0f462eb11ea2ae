"""
数据加载器 (Loader)
负责从 YAML 文件读取并解析为 Pydantic 配置模型, 汇总为只读目录 (Catalog)
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, Field

from .config import Config
from .models import SectDefinition, Skill, Talent, UnitTemplate
from .trial import TrialConfig

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


class Catalog(BaseModel):
    """只读配置目录, 通过构造函数注入到需要它的组件"""
    talents: Dict[str, Talent] = {}
    sects: Dict[str, SectDefinition] = {}
    skills: Dict[str, Skill] = {}
    templates: Dict[str, UnitTemplate] = {}
    trial: TrialConfig = Field(default_factory=TrialConfig)

    @staticmethod
    def _find(container: Dict[str, T], key: str) -> Optional[T]:
        """按 id 或名称查找"""
        if key in container:
            return container[key]
        return next((item for item in container.values() if getattr(item, "name", None) == key), None)

    def find_talent(self, key: str) -> Optional[Talent]:
        return self._find(self.talents, key)

    def find_sect(self, key: str) -> Optional[SectDefinition]:
        return self._find(self.sects, key)

    def find_skill(self, key: str) -> Optional[Skill]:
        return self._find(self.skills, key)

    def find_template(self, key: str) -> Optional[UnitTemplate]:
        return self._find(self.templates, key)

    # ============= 获取方法 (不存在时抛出 KeyError) =============

    def get_talent(self, key: str) -> Talent:
        talent = self.find_talent(key)
        if talent is None:
            raise KeyError(f"天赋配置不存在: {key}")
        return talent

    def get_sect(self, key: str) -> SectDefinition:
        sect = self.find_sect(key)
        if sect is None:
            raise KeyError(f"门派配置不存在: {key}")
        return sect

    def get_skill(self, key: str) -> Skill:
        skill = self.find_skill(key)
        if skill is None:
            raise KeyError(f"技能配置不存在: {key}")
        return skill

    def get_template(self, key: str) -> UnitTemplate:
        template = self.find_template(key)
        if template is None:
            raise KeyError(f"角色模板不存在: {key}")
        return template


class DataLoader:
    """数据加载器 - 配置表驱动中心"""

    def __init__(self, data_dir: Union[str, Path, None] = None) -> None:
        """
        初始化数据加载器

        Args:
            data_dir: 数据文件目录路径, 默认使用包内 data/
        """
        self.data_dir: Path = Path(data_dir) if data_dir is not None else Config.DATA_DIR

        self.talents: Dict[str, Talent] = {}
        self.sects: Dict[str, SectDefinition] = {}
        self.skills: Dict[str, Skill] = {}
        self.templates: Dict[str, UnitTemplate] = {}
        self.trial: TrialConfig = TrialConfig()

    def load_all(self) -> Catalog:
        """加载所有静态配置并返回目录"""
        self._load_from_yaml("talents.yaml", "talents", Talent, self.talents)
        self._load_from_yaml("sects.yaml", "sects", SectDefinition, self.sects)
        self._load_from_yaml("skills.yaml", "skills", Skill, self.skills)
        self._load_from_yaml("units.yaml", "units", UnitTemplate, self.templates)
        self.trial = self._load_trial("trial.yaml")
        return self.catalog

    @property
    def catalog(self) -> Catalog:
        return Catalog(
            talents=dict(self.talents),
            sects=dict(self.sects),
            skills=dict(self.skills),
            templates=dict(self.templates),
            trial=self.trial,
        )

    def _read_yaml(self, filename: str) -> Any:
        file_path = self.data_dir / filename
        if not file_path.exists():
            raise FileNotFoundError(f"配置文件不存在: {file_path}")
        with open(file_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def _load_from_yaml(self, filename: str, section: str, model_cls: Type[T], container: Dict[str, T]) -> None:
        """通用的 YAML 加载方法, 单条记录解析失败时记录日志并跳过"""
        raw_data = self._read_yaml(filename)
        for item in raw_data.get(section, []) or []:
            try:
                obj = model_cls.model_validate(item)
                container[obj.id] = obj  # type: ignore[attr-defined]
            except Exception as e:
                item_id = item.get('id', 'unknown') if isinstance(item, dict) else 'unknown'
                logger.warning("加载 %s 中的项失败: %s. 错误: %s", filename, item_id, e)

    def _load_trial(self, filename: str) -> TrialConfig:
        raw_data = self._read_yaml(filename)
        return TrialConfig.model_validate(raw_data)

    # ============= 获取方法 =============

    def get_talent(self, talent_id: str) -> Talent:
        if talent_id not in self.talents:
            raise KeyError(f"天赋配置不存在: {talent_id}")
        return self.talents[talent_id]

    def get_sect(self, sect_id: str) -> SectDefinition:
        if sect_id not in self.sects:
            raise KeyError(f"门派配置不存在: {sect_id}")
        return self.sects[sect_id]

    def get_skill(self, skill_id: str) -> Skill:
        if skill_id not in self.skills:
            raise KeyError(f"技能配置不存在: {skill_id}")
        return self.skills[skill_id]

    def get_template(self, template_id: str) -> UnitTemplate:
        if template_id not in self.templates:
            raise KeyError(f"角色模板不存在: {template_id}")
        return self.templates[template_id]
