"""
Schema 模块
面板结构快照及其加载方式
"""
from .models import FieldDescriptor, PanelSchema, Schema, DEFAULT_ENTITY_PREFIX
from .loader import (
    BASIC_PANEL_IDS,
    DEFAULT_ENTITY_PANELS,
    load_schema,
    schema_from_mapping,
    schema_from_extension_settings,
)

__all__ = [
    # 模型
    "FieldDescriptor",
    "PanelSchema",
    "Schema",
    "DEFAULT_ENTITY_PREFIX",
    # 加载
    "BASIC_PANEL_IDS",
    "DEFAULT_ENTITY_PANELS",
    "load_schema",
    "schema_from_mapping",
    "schema_from_extension_settings",
]
