"""
面板结构模型
每次解析使用的只读快照：启用了哪些面板，每个面板按顺序启用了哪些字段
"""
from typing import Dict, FrozenSet, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_ENTITY_PREFIX = "entity"


class FieldDescriptor(BaseModel):
    """面板子项（字段）"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(min_length=1, description="字段键")
    display_name: str = Field("", alias="displayName", description="显示名称")
    enabled: bool = Field(True, description="是否启用")

    @model_validator(mode="before")
    @classmethod
    def derive_key(cls, data):
        """兼容只写了 name 的子项：name 小写、空白替换为下划线后作为 key"""
        if isinstance(data, dict) and not data.get("key") and data.get("name"):
            data = dict(data)
            data["key"] = "_".join(str(data["name"]).lower().split())
            if not data.get("display_name") and not data.get("displayName"):
                data["displayName"] = data["name"]
        return data


class PanelSchema(BaseModel):
    """
    单个面板的结构
    sub_items: 全部字段（含未启用），顺序即操作指令中的列号顺序
    entity_prefix: 多实体面板的实体前缀，如 interaction 面板的 npc
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    sub_items: Tuple[FieldDescriptor, ...] = Field((), alias="subItems")
    multi_entity: bool = False
    entity_prefix: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def prefix_implies_multi_entity(cls, data):
        if isinstance(data, dict) and data.get("entity_prefix") and not data.get("multi_entity"):
            data = dict(data)
            data["multi_entity"] = True
        return data

    @property
    def enabled_fields(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(item for item in self.sub_items if item.enabled)

    @property
    def column_count(self) -> int:
        return len(self.enabled_fields)

    @property
    def canonical_prefix(self) -> Optional[str]:
        if not self.multi_entity:
            return None
        return self.entity_prefix or DEFAULT_ENTITY_PREFIX

    def resolve_field(self, name: str) -> Optional[str]:
        """
        按字段键或显示名称查找启用的字段，返回字段键
        先精确匹配，再忽略大小写匹配
        """
        enabled = self.enabled_fields
        for item in enabled:
            if name == item.key or (item.display_name and name == item.display_name):
                return item.key
        folded = name.casefold()
        for item in enabled:
            if folded == item.key.casefold() or (item.display_name and folded == item.display_name.casefold()):
                return item.key
        return None

    def column_map(self) -> Dict[int, str]:
        """列号(从1开始) -> 字段键"""
        return {index: item.key for index, item in enumerate(self.enabled_fields, start=1)}


class Schema(BaseModel):
    """面板结构快照"""
    model_config = ConfigDict(frozen=True)

    panels: Dict[str, PanelSchema] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_panel_ids(self):
        for panel_id, panel in self.panels.items():
            if panel_id != panel.id:
                raise ValueError(f"面板键 '{panel_id}' 与面板 id '{panel.id}' 不一致")
        return self

    @property
    def supported_panels(self) -> FrozenSet[str]:
        return frozenset(self.panels)

    def is_supported(self, panel_id: str) -> bool:
        return panel_id in self.panels

    def get_panel(self, panel_id: str) -> Optional[PanelSchema]:
        return self.panels.get(panel_id)

    def enabled_fields(self, panel_id: str) -> Tuple[FieldDescriptor, ...]:
        panel = self.panels.get(panel_id)
        return panel.enabled_fields if panel else ()

    def column_count(self, panel_id: str) -> int:
        return len(self.enabled_fields(panel_id))
