"""
面板结构加载
支持三种来源：
1. 普通字典 / YAML 文件
   panels:
     personal:
       fields: [name, age]
     interaction:
       entity_prefix: npc
       fields:
         - {key: name, display_name: 姓名}
         - {key: mood, enabled: false}
2. 宿主扩展设置（基础面板的 subItems + customPanels）
"""
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from ..core import get_logger
from ..core.exceptions import SchemaConfigError
from .models import FieldDescriptor, PanelSchema, Schema

logger = get_logger(__name__)

BASIC_PANEL_IDS = (
    'personal', 'world', 'interaction', 'tasks', 'organization',
    'news', 'inventory', 'abilities', 'plot', 'cultivation',
    'fantasy', 'modern', 'historical', 'magic', 'training',
)

# 基础面板中按多实体建模的面板及其实体前缀
DEFAULT_ENTITY_PANELS = {
    'interaction': 'npc',
    'organization': 'org',
}


def _build_field(item: Any) -> Dict[str, Any]:
    if isinstance(item, str):
        return {"key": item}
    if isinstance(item, Mapping):
        return dict(item)
    raise SchemaConfigError(f"无法识别的字段定义: {item!r}")


def _build_panel(panel_id: str, definition: Any) -> Optional[PanelSchema]:
    if definition is None:
        definition = {}
    if isinstance(definition, (list, tuple)):
        definition = {"fields": list(definition)}
    if not isinstance(definition, Mapping):
        raise SchemaConfigError(f"面板 '{panel_id}' 的定义必须是字典或字段列表")

    if definition.get("enabled", True) is False:
        logger.debug(f"跳过未启用的面板: {panel_id}")
        return None

    raw_fields = definition.get("fields", definition.get("subItems", [])) or []
    try:
        return PanelSchema(
            id=panel_id,
            sub_items=tuple(FieldDescriptor(**_build_field(item)) for item in raw_fields),
            multi_entity=bool(definition.get("multi_entity", False)),
            entity_prefix=definition.get("entity_prefix"),
        )
    except ValidationError as e:
        raise SchemaConfigError(f"面板 '{panel_id}' 定义无效: {e}") from e


def schema_from_mapping(data: Mapping[str, Any]) -> Schema:
    """
    从字典构建面板结构
    顶层可以是 {"panels": {...}}，也可以直接是 面板ID -> 定义
    """
    if not isinstance(data, Mapping):
        raise SchemaConfigError("面板结构必须是字典")

    panels_data = data.get("panels", data)
    if not isinstance(panels_data, Mapping):
        raise SchemaConfigError("panels 必须是字典")

    panels: Dict[str, PanelSchema] = {}
    for panel_id, definition in panels_data.items():
        panel = _build_panel(str(panel_id), definition)
        if panel is not None:
            panels[panel.id] = panel

    logger.debug(f"面板结构加载完成，共 {len(panels)} 个面板")
    return Schema(panels=panels)


def load_schema(path: Union[str, Path]) -> Schema:
    """从 YAML 文件加载面板结构"""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise SchemaConfigError(f"无法读取面板结构文件 {path}: {e}") from e
    except yaml.YAMLError as e:
        raise SchemaConfigError(f"面板结构文件 {path} 不是合法的 YAML: {e}") from e
    return schema_from_mapping(data)


def _sub_items(config: Mapping[str, Any]) -> List[Dict[str, Any]]:
    items = config.get("subItems") or []
    result = []
    for item in items:
        if not isinstance(item, Mapping) or not (item.get("key") or item.get("name")):
            continue
        result.append({
            "key": item.get("key") or "",
            "name": item.get("name") or "",
            "displayName": item.get("displayName") or item.get("name") or "",
            "enabled": item.get("enabled") is not False,
        })
    return result


def schema_from_extension_settings(configs: Mapping[str, Any]) -> Schema:
    """
    从宿主扩展设置构建面板结构
    基础面板默认启用，自定义面板只有 enabled 为真时才加入
    """
    configs = configs or {}
    panels: Dict[str, Any] = {}

    for panel_id in BASIC_PANEL_IDS:
        panel_config = configs.get(panel_id) or {}
        if panel_config.get("enabled", True) is False:
            continue
        panels[panel_id] = {
            "fields": _sub_items(panel_config),
            "entity_prefix": DEFAULT_ENTITY_PANELS.get(panel_id),
        }

    for panel_id, panel_config in (configs.get("customPanels") or {}).items():
        if not isinstance(panel_config, Mapping) or not panel_config.get("enabled"):
            continue
        key = panel_config.get("key") or panel_id
        panels[key] = {"fields": _sub_items(panel_config)}
        logger.debug(f"添加自定义面板支持: {key}")

    return schema_from_mapping({"panels": panels})
